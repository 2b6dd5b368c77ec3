"""
Host platform detection.

Maps the host operating system and CPU architecture onto the Piper
release archive that runs there and the command used to play a WAV
file.  The profile is derived once per process and never persisted.
"""

import functools
import platform as _platform
from dataclasses import dataclass
from typing import Callable, List, Optional

from speech.errors import PlatformUnsupported

# Piper release the local cache is pinned to
PIPER_VERSION = "2023.11.14-2"

RELEASE_BASE_URL = "https://github.com/rhasspy/piper/releases/download"

_ARM_MACHINES = {"arm64", "aarch64", "armv8", "armv8l"}


def _single_path_args(audio_path: str) -> List[str]:
    return [audio_path]


def _powershell_args(audio_path: str) -> List[str]:
    return ["-c", f"(New-Object Media.SoundPlayer '{audio_path}').PlaySync()"]


@dataclass(frozen=True)
class PlatformProfile:
    """
    Immutable description of the host as far as provisioning cares.

    Attributes:
        os:                   ``"linux"``, ``"darwin"`` or ``"windows"``.
        arch:                 ``"x64"`` or ``"arm64"``.
        binary_archive_name:  Release asset file name for this host.
        binary_download_url:  Full URL of that asset.
        audio_player:         Executable used for playback.
        audio_player_builder: Builds the player's argument list from a path.
    """

    os: str
    arch: str
    binary_archive_name: str
    binary_download_url: str
    audio_player: str
    audio_player_builder: Callable[[str], List[str]]

    @property
    def binary_name(self) -> str:
        return "piper.exe" if self.os == "windows" else "piper"

    def audio_player_args(self, audio_path: str) -> List[str]:
        return self.audio_player_builder(audio_path)

    def audio_player_command(self, audio_path: str) -> List[str]:
        """Full argv (executable first) to play *audio_path*."""
        return [self.audio_player, *self.audio_player_args(audio_path)]


def resolve_platform(
    system: str,
    machine: str,
    release_base_url: str = RELEASE_BASE_URL,
    version: str = PIPER_VERSION,
) -> PlatformProfile:
    """
    Build a :class:`PlatformProfile` from raw host identifiers.

    Args:
        system:  OS name as reported by :func:`platform.system`
                 (case-insensitive; ``"win32"`` is accepted too).
        machine: CPU architecture as reported by :func:`platform.machine`.
                 Anything not recognised as ARM is treated as x64.

    Raises:
        PlatformUnsupported: If the OS is not Linux, macOS or Windows.
    """
    name = (system or "").strip().lower()
    is_arm = (machine or "").strip().lower() in _ARM_MACHINES

    if name == "darwin":
        os_name = "darwin"
        arch = "arm64" if is_arm else "x64"
        archive = "piper_macos_aarch64.tar.gz" if is_arm else "piper_macos_x86_64.tar.gz"
        player, builder = "afplay", _single_path_args
    elif name == "linux":
        os_name = "linux"
        arch = "arm64" if is_arm else "x64"
        archive = "piper_linux_aarch64.tar.gz" if is_arm else "piper_linux_x86_64.tar.gz"
        player, builder = "aplay", _single_path_args
    elif name in ("windows", "win32"):
        # Piper only ships an amd64 Windows build
        os_name = "windows"
        arch = "x64"
        archive = "piper_windows_amd64.zip"
        player, builder = "powershell", _powershell_args
    else:
        raise PlatformUnsupported(system)

    return PlatformProfile(
        os=os_name,
        arch=arch,
        binary_archive_name=archive,
        binary_download_url=f"{release_base_url.rstrip('/')}/{version}/{archive}",
        audio_player=player,
        audio_player_builder=builder,
    )


@functools.lru_cache(maxsize=None)
def current_platform(release_base_url: Optional[str] = None) -> PlatformProfile:
    """Profile of the running host, computed on first call only."""
    return resolve_platform(
        _platform.system(),
        _platform.machine(),
        release_base_url=release_base_url or RELEASE_BASE_URL,
    )
