"""Remote voice catalog and identifier matching."""

from .catalog import VOICES_JSON_URL, VoiceCatalog, decode_catalog, find_voice, parse_catalog
from .models import (
    DEFAULT_LOCALE,
    QUALITY_RANK,
    VoiceDescriptor,
    VoiceFile,
    VoiceLanguage,
    quality_rank,
)
from .resolver import match_voice, resolve_voice

__all__ = [
    "DEFAULT_LOCALE",
    "QUALITY_RANK",
    "VOICES_JSON_URL",
    "VoiceCatalog",
    "VoiceDescriptor",
    "VoiceFile",
    "VoiceLanguage",
    "decode_catalog",
    "find_voice",
    "match_voice",
    "parse_catalog",
    "quality_rank",
    "resolve_voice",
]
