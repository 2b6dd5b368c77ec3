"""Piper binary and voice provisioning, synthesis and playback."""

from .binary_manager import ENGINE_NAME, BinaryManager
from .engine import (
    SpeechEngine,
    cleanup_temp_file,
    generate_audio,
    get_audio_duration,
    play_audio,
)
from .model_manager import (
    VOICE_BASE_URL,
    DownloadCheck,
    ModelManager,
    describe_voice,
    format_voice_size,
    prompt_for_voice,
    prompt_selector,
)

__all__ = [
    "ENGINE_NAME",
    "VOICE_BASE_URL",
    "BinaryManager",
    "DownloadCheck",
    "ModelManager",
    "SpeechEngine",
    "cleanup_temp_file",
    "describe_voice",
    "format_voice_size",
    "generate_audio",
    "get_audio_duration",
    "play_audio",
    "prompt_for_voice",
    "prompt_selector",
]
