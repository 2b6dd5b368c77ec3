"""
Exception taxonomy for provisioning, voice resolution and playback.

Every error raised by the package derives from :class:`SpeakError` and
carries a short ``error_kind`` string so the calling layer can report
or branch on the failure class without matching on messages.
"""

from typing import Iterable, Optional

ERROR_KIND_PLATFORM = "platform_unsupported"
ERROR_KIND_DIRECTORY = "directory_creation"
ERROR_KIND_NETWORK = "network"
ERROR_KIND_REDIRECTS = "too_many_redirects"
ERROR_KIND_EXTRACTION = "extraction"
ERROR_KIND_TOOL_NOT_FOUND = "tool_not_found"
ERROR_KIND_PERMISSION = "permission"
ERROR_KIND_CATALOG_PARSE = "catalog_parse"
ERROR_KIND_CATALOG_EMPTY = "catalog_empty"
ERROR_KIND_VOICE_NOT_FOUND = "voice_not_found"
ERROR_KIND_VOICE_INCOMPLETE = "voice_asset_incomplete"
ERROR_KIND_INSTALLATION = "installation"
ERROR_KIND_VOICE_SETUP = "voice_setup"
ERROR_KIND_VOICE_DOWNLOAD = "voice_download"
ERROR_KIND_SYNTHESIS = "synthesis"
ERROR_KIND_PLAYBACK = "playback"
ERROR_KIND_NOT_PROVISIONED = "not_provisioned"
ERROR_KIND_CONFIG_SAVE = "config_save"
ERROR_KIND_UNKNOWN = "unknown"


class SpeakError(RuntimeError):
    """Base class for every failure raised by the ``speech`` package."""

    error_kind = ERROR_KIND_UNKNOWN


class PlatformUnsupported(SpeakError):
    error_kind = ERROR_KIND_PLATFORM

    def __init__(self, system: str):
        super().__init__(f"Unsupported platform: {system}")
        self.system = system


class DirectoryCreationFailure(SpeakError):
    error_kind = ERROR_KIND_DIRECTORY

    def __init__(self, path, reason: object):
        super().__init__(f"Failed to create directory {path}: {reason}")
        self.path = path


class NetworkFailure(SpeakError):
    """HTTP transfer failed, optionally with the terminal status code."""

    error_kind = ERROR_KIND_NETWORK

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TooManyRedirects(NetworkFailure):
    error_kind = ERROR_KIND_REDIRECTS

    def __init__(self, url: str, hops: int):
        super().__init__(f"Too many redirects ({hops}) while fetching {url}")
        self.url = url
        self.hops = hops


class ExtractionFailure(SpeakError):
    error_kind = ERROR_KIND_EXTRACTION

    def __init__(self, exit_code: int, stderr: str):
        super().__init__(f"Extraction failed with code {exit_code}: {stderr}")
        self.exit_code = exit_code
        self.stderr = stderr


class ToolNotFound(SpeakError):
    """An external executable could not be launched."""

    error_kind = ERROR_KIND_TOOL_NOT_FOUND

    def __init__(self, tool: str, reason: object = None):
        detail = f": {reason}" if reason else ""
        super().__init__(f"Failed to run {tool}{detail}")
        self.tool = tool


class PermissionFailure(SpeakError):
    error_kind = ERROR_KIND_PERMISSION


class CatalogParseFailure(SpeakError):
    error_kind = ERROR_KIND_CATALOG_PARSE


class CatalogEmpty(SpeakError):
    error_kind = ERROR_KIND_CATALOG_EMPTY


class VoiceNotFound(SpeakError):
    error_kind = ERROR_KIND_VOICE_NOT_FOUND


class InvalidSelection(VoiceNotFound):
    """Interactive prompt answer did not name a listed voice."""


class VoiceAssetIncomplete(SpeakError):
    error_kind = ERROR_KIND_VOICE_INCOMPLETE


class InstallationFailure(SpeakError):
    error_kind = ERROR_KIND_INSTALLATION


class VoiceSetupFailure(SpeakError):
    error_kind = ERROR_KIND_VOICE_SETUP


class VoiceDownloadFailure(SpeakError):
    error_kind = ERROR_KIND_VOICE_DOWNLOAD


class ConfigSaveFailure(SpeakError):
    error_kind = ERROR_KIND_CONFIG_SAVE

    def __init__(self, path, reason: object):
        super().__init__(f"Failed to save config {path}: {reason}")
        self.path = path


class _ProcessFailure(SpeakError):
    _label = "Process"

    def __init__(self, exit_code: int, stderr: str):
        super().__init__(f"{self._label} failed with code {exit_code}: {stderr}")
        self.exit_code = exit_code
        self.stderr = stderr


class SynthesisFailure(_ProcessFailure):
    error_kind = ERROR_KIND_SYNTHESIS
    _label = "Piper"


class PlaybackFailure(_ProcessFailure):
    error_kind = ERROR_KIND_PLAYBACK
    _label = "Audio player"


class NotProvisioned(SpeakError):
    error_kind = ERROR_KIND_NOT_PROVISIONED


def _iter_exception_chain(exc: BaseException) -> Iterable[BaseException]:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        yield current
        seen.add(id(current))
        current = current.__cause__ or current.__context__


def error_kind_of(exc: BaseException) -> str:
    """Return the kind of the outermost :class:`SpeakError` in *exc*'s chain."""
    for item in _iter_exception_chain(exc):
        if isinstance(item, SpeakError):
            return item.error_kind
    return ERROR_KIND_UNKNOWN
