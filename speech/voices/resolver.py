"""
Free-form voice identifier matching.

A user may name a voice by its list number, its full key, its key
without the locale prefix, or any fragment of its key or display name.
Stages are tried in that order and the first hit wins:

1. **Numeric index**: ``"3"`` selects the third catalog entry (1-based).
2. **Exact key**: ``"en_US-amy-high"``.
3. **Locale-prefixed key**: ``"amy-high"`` → ``"en_US-amy-high"``.
4. **Substring** (case-insensitive, key or name): ``"amy"``.  When
   several voices match, the highest quality tier wins and ties go to
   the voice listed first.

The last stage can pick an unrelated voice that happens to share a
fragment with the identifier; earlier stages always take precedence.
"""

from typing import List, Optional, Sequence

from speech.errors import VoiceNotFound

from .catalog import find_voice
from .models import DEFAULT_LOCALE, VoiceDescriptor


def _by_index(identifier: str, catalog: Sequence[VoiceDescriptor]) -> Optional[VoiceDescriptor]:
    try:
        n = int(identifier.strip())
    except ValueError:
        return None
    if 1 <= n <= len(catalog):
        return catalog[n - 1]
    return None


def _by_substring(identifier: str, catalog: Sequence[VoiceDescriptor]) -> Optional[VoiceDescriptor]:
    needle = identifier.lower()
    matches: List[VoiceDescriptor] = [
        v for v in catalog if needle in v.key.lower() or needle in v.name.lower()
    ]
    best = None
    for voice in matches:
        if best is None or voice.quality_rank > best.quality_rank:
            best = voice
    return best


def match_voice(
    identifier: str,
    catalog: Sequence[VoiceDescriptor],
    locale: str = DEFAULT_LOCALE,
) -> Optional[VoiceDescriptor]:
    """Return the voice *identifier* selects, or ``None``."""
    if not catalog:
        return None
    return (
        _by_index(identifier, catalog)
        or find_voice(catalog, identifier)
        or find_voice(catalog, f"{locale}-{identifier}")
        or _by_substring(identifier, catalog)
    )


def resolve_voice(
    identifier: str,
    catalog: Sequence[VoiceDescriptor],
    locale: str = DEFAULT_LOCALE,
) -> VoiceDescriptor:
    """
    Like :func:`match_voice` but raises when nothing matches.

    Raises:
        VoiceNotFound: If the catalog is empty or no stage matches.
    """
    voice = match_voice(identifier, catalog, locale)
    if voice is None:
        raise VoiceNotFound(f"Voice '{identifier}' not found.")
    return voice
