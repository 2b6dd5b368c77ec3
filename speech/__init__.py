"""
Speak: local Piper text-to-speech for agent processes.

Provisions the piper binary and a voice model, keeps the selection in
a small JSON config, and speaks text through the platform audio player.
"""

from .pipeline import SpeakConfig, SpeakService, format_catalog_report

__all__ = [
    "SpeakConfig",
    "SpeakService",
    "format_catalog_report",
]
