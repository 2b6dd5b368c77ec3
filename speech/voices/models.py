"""
Data models for the remote Piper voice catalog.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

DEFAULT_LOCALE = "en_US"

# Quality tier → rank; anything else ranks 0
QUALITY_RANK = {
    "high": 3,
    "medium": 2,
    "low": 1,
}


def quality_rank(quality: str) -> int:
    return QUALITY_RANK.get(quality, 0)


@dataclass(frozen=True)
class VoiceLanguage:
    code: str = DEFAULT_LOCALE
    name_english: str = "English"
    country_english: str = "United States"


@dataclass(frozen=True)
class VoiceFile:
    size_bytes: int = 0
    md5_digest: str = ""


@dataclass(frozen=True)
class VoiceDescriptor:
    """
    One selectable voice from the catalog.

    Attributes:
        key:      Unique, locale-prefixed identifier (``en_US-amy-high``).
        name:     Display name (the catalog's speaker name).
        language: Language/region of the voice.
        quality:  ``"low"``, ``"medium"`` or ``"high"``.
        files:    Remote path (relative to the voice repository) → file info.
    """

    key: str
    name: str
    language: VoiceLanguage = field(default_factory=VoiceLanguage)
    quality: str = "medium"
    files: Dict[str, VoiceFile] = field(default_factory=dict)

    @property
    def quality_rank(self) -> int:
        return quality_rank(self.quality)

    @property
    def model_file(self) -> Optional[str]:
        """Remote path of the ``.onnx`` model, if the voice lists one."""
        for remote_path in self.files:
            if remote_path.endswith(".onnx"):
                return remote_path
        return None

    @property
    def size_bytes(self) -> int:
        """Size of the first listed file (the model, in catalog order)."""
        for info in self.files.values():
            return info.size_bytes
        return 0
