"""
Remote voice catalog.

Fetches ``voices.json`` from the Piper voice repository, keeps the
voices of one locale, and orders them best quality first.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from speech.errors import CatalogParseFailure
from speech.utils.downloader import AssetFetcher

from .models import DEFAULT_LOCALE, VoiceDescriptor, VoiceFile, VoiceLanguage

logger = logging.getLogger(__name__)

VOICES_JSON_URL = "https://huggingface.co/rhasspy/piper-voices/raw/main/voices.json"


# ------------------------------------------------------------------
# Parsing
# ------------------------------------------------------------------


def _parse_language(raw: Any) -> VoiceLanguage:
    if not isinstance(raw, dict):
        return VoiceLanguage()
    default = VoiceLanguage()
    return VoiceLanguage(
        code=str(raw.get("code") or default.code),
        name_english=str(raw.get("name_english") or default.name_english),
        country_english=str(raw.get("country_english") or default.country_english),
    )


def _parse_files(raw: Any) -> Dict[str, VoiceFile]:
    if not isinstance(raw, dict):
        return {}
    files = {}
    for remote_path, info in raw.items():
        info = info if isinstance(info, dict) else {}
        try:
            size = int(info.get("size_bytes") or 0)
        except (TypeError, ValueError):
            size = 0
        files[str(remote_path)] = VoiceFile(
            size_bytes=size,
            md5_digest=str(info.get("md5_digest") or ""),
        )
    return files


def parse_catalog(document: Any, locale: str = DEFAULT_LOCALE) -> List[VoiceDescriptor]:
    """
    Turn a decoded ``voices.json`` document into sorted descriptors.

    Only keys starting with ``"<locale>-"`` are kept.  Missing optional
    fields fall back to placeholders.  The result is sorted by quality
    tier (high first); voices of equal tier keep catalog order.

    Raises:
        CatalogParseFailure: If *document* is not a JSON object.
    """
    if not isinstance(document, dict):
        raise CatalogParseFailure(
            f"Failed to parse voices JSON: expected an object, got {type(document).__name__}"
        )

    prefix = f"{locale}-"
    voices = []
    for key, raw in document.items():
        if not key.startswith(prefix):
            continue
        raw = raw if isinstance(raw, dict) else {}
        voices.append(
            VoiceDescriptor(
                key=key,
                name=str(raw.get("name") or key),
                language=_parse_language(raw.get("language")),
                quality=str(raw.get("quality") or "medium"),
                files=_parse_files(raw.get("files")),
            )
        )

    # sorted() is stable, so equal tiers keep catalog order
    return sorted(voices, key=lambda v: v.quality_rank, reverse=True)


def decode_catalog(text: str, locale: str = DEFAULT_LOCALE) -> List[VoiceDescriptor]:
    """Parse the raw body of ``voices.json``."""
    if not text or not text.strip():
        raise CatalogParseFailure("Failed to parse voices JSON: empty document")
    try:
        document = json.loads(text)
    except ValueError as e:
        raise CatalogParseFailure(f"Failed to parse voices JSON: {e}") from e
    return parse_catalog(document, locale)


# ------------------------------------------------------------------
# Fetching
# ------------------------------------------------------------------


class VoiceCatalog:
    """
    Fetches the catalog fresh on every call; nothing is cached.

    Args:
        fetcher: Shared :class:`AssetFetcher`.
        url:     Location of ``voices.json``.
        locale:  Locale prefix to keep (``en_US``).
    """

    def __init__(
        self,
        fetcher: AssetFetcher,
        url: str = VOICES_JSON_URL,
        locale: str = DEFAULT_LOCALE,
    ):
        self.fetcher = fetcher
        self.url = url
        self.locale = locale

    async def fetch_available(self) -> List[VoiceDescriptor]:
        """
        Download and parse the catalog.

        Raises:
            NetworkFailure:      Non-2xx response or transport error.
            CatalogParseFailure: Empty or malformed document.
        """
        logger.info("Fetching available voices...")
        text = await self.fetcher.fetch_text(self.url)
        voices = decode_catalog(text, self.locale)
        logger.debug("Catalog lists %d %s voices", len(voices), self.locale)
        return voices


def find_voice(voices: List[VoiceDescriptor], key: str) -> Optional[VoiceDescriptor]:
    """Return the voice whose key is *key*, if listed."""
    for voice in voices:
        if voice.key == key:
            return voice
    return None
