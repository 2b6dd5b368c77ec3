"""Host platform detection."""

from .platform import (
    PIPER_VERSION,
    RELEASE_BASE_URL,
    PlatformProfile,
    current_platform,
    resolve_platform,
)

__all__ = [
    "PIPER_VERSION",
    "RELEASE_BASE_URL",
    "PlatformProfile",
    "current_platform",
    "resolve_platform",
]
