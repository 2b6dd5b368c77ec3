"""
Piper binary manager.

Finds a usable ``piper`` executable, in order of preference:

1. one already on the search path (recorded as version ``"system"``),
2. the copy cached under ``<bin_dir>/piper/`` by an earlier run, if it
   was installed for the pinned :data:`PIPER_VERSION`,
3. a fresh download of the release archive for this platform.
"""

import dataclasses
import logging
import tempfile
from pathlib import Path
from typing import Optional, Tuple, Union

from speech.config.models import SYSTEM_VERSION, InstalledBinaryRecord, PersistentState
from speech.errors import InstallationFailure
from speech.setup.platform import PIPER_VERSION, PlatformProfile
from speech.utils.archive import ensure_directory, extract_archive, make_executable
from speech.utils.downloader import AssetFetcher, remove_partial
from speech.utils.locator import ExecutableLocator

logger = logging.getLogger(__name__)

ENGINE_NAME = "piper"


class BinaryManager:
    """
    Resolves the Piper executable and installs it when needed.

    Usage::

        mgr = BinaryManager(bin_dir, fetcher)
        path, state = await mgr.ensure_installed(profile, state)

    Args:
        bin_dir:  Cache root; the release unpacks to ``bin_dir/piper/``.
        fetcher:  Downloader used for the release archive.
        locator:  Search-path lookup (defaults to the real ``PATH``).
        temp_dir: Where the archive is staged (defaults to the system
                  temp directory).
        version:  Release the cache must match.
    """

    def __init__(
        self,
        bin_dir: Union[str, Path],
        fetcher: AssetFetcher,
        locator: Optional[ExecutableLocator] = None,
        temp_dir: Optional[Union[str, Path]] = None,
        version: str = PIPER_VERSION,
    ):
        self.bin_dir = Path(bin_dir)
        self.fetcher = fetcher
        self.locator = locator or ExecutableLocator()
        self.temp_dir = Path(temp_dir) if temp_dir else Path(tempfile.gettempdir())
        self.version = version

    def cached_binary_path(self, profile: PlatformProfile) -> Path:
        """Where the unpacked release puts the executable."""
        return self.bin_dir / ENGINE_NAME / profile.binary_name

    async def ensure_installed(
        self, profile: PlatformProfile, state: PersistentState
    ) -> Tuple[Path, PersistentState]:
        """
        Return a usable binary path and the state recording it.

        The returned state differs from *state* whenever the caller
        should persist it.

        Raises:
            InstallationFailure: If a download is needed and fails.
        """
        system_binary = self.locator.find(ENGINE_NAME)
        if system_binary is not None:
            logger.info("Using system piper at %s", system_binary)
            return system_binary, self._record(state, system_binary, SYSTEM_VERSION, profile)

        cached = self.cached_binary_path(profile)
        recorded = state.piper_binary
        if cached.exists() and recorded is not None and recorded.version == self.version:
            logger.info("Using existing piper binary at %s", cached)
            return cached, state

        if cached.exists():
            logger.info(
                "Cached piper does not match version %s, reinstalling", self.version
            )

        path = await self.install(profile)
        return path, self._record(state, path, self.version, profile)

    async def install(self, profile: PlatformProfile) -> Path:
        """
        Download, unpack and chmod the release for *profile*.

        The staged archive is removed on every exit path.

        Raises:
            InstallationFailure: Wrapping the underlying failure.
        """
        archive_path = self.temp_dir / profile.binary_archive_name
        logger.info("Downloading piper binary...")
        try:
            ensure_directory(self.bin_dir)
            await self.fetcher.fetch(
                profile.binary_download_url, archive_path, label="piper"
            )

            logger.info("Extracting piper binary...")
            await extract_archive(archive_path, self.bin_dir)

            binary_path = self.cached_binary_path(profile)
            if not binary_path.exists():
                raise FileNotFoundError(f"{binary_path} not found in release archive")
            make_executable(binary_path, is_windows=profile.os == "windows")
        except Exception as e:
            raise InstallationFailure(f"Failed to install piper binary: {e}") from e
        finally:
            remove_partial(archive_path)

        logger.info("Piper binary installed successfully")
        return binary_path

    @staticmethod
    def _record(
        state: PersistentState,
        path: Path,
        version: str,
        profile: PlatformProfile,
    ) -> PersistentState:
        record = InstalledBinaryRecord(
            path=str(path),
            version=version,
            platform=profile.os,
            arch=profile.arch,
        )
        return dataclasses.replace(state, piper_binary=record)

    def __repr__(self) -> str:
        return f"BinaryManager(dir='{self.bin_dir}', version={self.version})"
