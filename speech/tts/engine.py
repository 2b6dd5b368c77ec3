"""
Piper TTS engine wrapper.

Runs the ``piper`` executable to turn text into a WAV file, then hands
the file to the platform's audio player.
"""

import logging
import tempfile
import time
import wave
from pathlib import Path
from typing import Optional, Union

from speech.errors import PlaybackFailure, SynthesisFailure
from speech.setup.platform import PlatformProfile
from speech.utils.archive import run_tool
from speech.utils.downloader import remove_partial

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Subprocess steps
# ------------------------------------------------------------------


async def generate_audio(
    piper_path: Union[str, Path],
    model_path: Union[str, Path],
    text: str,
    output_path: Union[str, Path],
) -> None:
    """
    Synthesise *text* into *output_path*.

    The text is written to piper's stdin, which is then closed.

    Raises:
        ToolNotFound:     If piper cannot be launched.
        SynthesisFailure: If piper exits non-zero.
    """
    args = ["--model", str(model_path), "--output_file", str(output_path)]
    code, stderr = await run_tool(str(piper_path), args, stdin_data=text.encode("utf-8"))
    if code != 0:
        raise SynthesisFailure(code, stderr)


async def play_audio(audio_path: Union[str, Path], profile: PlatformProfile) -> None:
    """
    Play a WAV file and wait for playback to finish.

    Raises:
        ToolNotFound:    If the player cannot be launched.
        PlaybackFailure: If the player exits non-zero.
    """
    args = profile.audio_player_args(str(audio_path))
    code, stderr = await run_tool(profile.audio_player, args)
    if code != 0:
        raise PlaybackFailure(code, stderr)


def cleanup_temp_file(path: Union[str, Path]) -> None:
    """Delete a temporary file; a missing file is not an error."""
    remove_partial(path)


def get_audio_duration(wav_path: Union[str, Path]) -> float:
    """Return the duration in seconds of a WAV file (0.0 if unreadable)."""
    try:
        with wave.open(str(wav_path), "rb") as wf:
            frames = wf.getnframes()
            rate = wf.getframerate()
            return frames / rate if rate > 0 else 0.0
    except (OSError, EOFError, wave.Error):
        return 0.0


# ------------------------------------------------------------------
# Engine
# ------------------------------------------------------------------


class SpeechEngine:
    """
    Speaks text through a local piper binary and voice model.

    Usage::

        engine = SpeechEngine(piper_path, model_path, profile)
        await engine.speak("Hello world")
    """

    def __init__(
        self,
        piper_path: Union[str, Path],
        model_path: Union[str, Path],
        profile: PlatformProfile,
        temp_dir: Optional[Union[str, Path]] = None,
    ):
        self.piper_path = Path(piper_path)
        self.model_path = Path(model_path)
        self.profile = profile
        self.temp_dir = Path(temp_dir) if temp_dir else Path(tempfile.gettempdir())

    def temp_output_path(self) -> Path:
        """Unique-per-call WAV path: ``speak-<epoch ms>.wav``."""
        return self.temp_dir / f"speak-{int(time.time() * 1000)}.wav"

    async def speak(self, text: str) -> Path:
        """
        Synthesise and play *text*.

        The temporary WAV is deleted whether or not either step fails.

        Returns:
            The (already deleted) temporary path used, for logging.
        """
        out_path = self.temp_output_path()
        try:
            await generate_audio(self.piper_path, self.model_path, text, out_path)
            logger.debug("Generated %.2fs of audio", get_audio_duration(out_path))
            await play_audio(out_path, self.profile)
        finally:
            cleanup_temp_file(out_path)
        return out_path

    def __repr__(self) -> str:
        return f"SpeechEngine(piper={self.piper_path}, model={self.model_path.name})"
