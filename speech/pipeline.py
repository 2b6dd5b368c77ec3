"""
Speak service: provisioning, voice management and playback.

Coordinates the whole workflow on behalf of a long-lived caller:

1. **Provisioning**: load the saved state, make sure a piper binary is
   available (system install, cached release, or fresh download), and
   make sure a voice model is selected and present on disk.
2. **Speaking**: synthesise text with piper and play it.
3. **Voice management**: list the remote catalog and switch voices by
   free-form identifier.

Every public operation except :meth:`SpeakService.provision` converts
failures into a textual result, so one failed call never affects the
next.

Usage::

    from speech.pipeline import SpeakConfig, SpeakService

    async with SpeakService(SpeakConfig.from_env()) as service:
        await service.provision()
        print(await service.synthesize_and_play("Hello there"))
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Mapping, Optional

from speech.config.models import PersistentState
from speech.config.store import ConfigStore
from speech.errors import NotProvisioned
from speech.setup.platform import RELEASE_BASE_URL, PlatformProfile, current_platform
from speech.tts.binary_manager import BinaryManager
from speech.tts.engine import SpeechEngine
from speech.tts.model_manager import (
    VOICE_BASE_URL,
    ModelManager,
    VoiceSelector,
    describe_voice,
)
from speech.utils.archive import ensure_directory
from speech.utils.downloader import AssetFetcher
from speech.utils.locator import ExecutableLocator
from speech.voices.catalog import VOICES_JSON_URL, VoiceCatalog, find_voice
from speech.voices.models import DEFAULT_LOCALE, VoiceDescriptor

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "SPEAK_CONFIG_DIR"

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "speak-mcp"


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


@dataclass
class SpeakConfig:
    """
    All tuneable parameters for the speak service.

    Attributes:
        config_dir:       Root for the binary cache, voices and config file.
        catalog_url:      Location of the remote ``voices.json``.
        voice_base_url:   Prefix for voice file downloads.
        release_base_url: Prefix for piper release downloads.
        locale:           Locale whose voices are offered.
        temp_dir:         Staging directory for archives and WAV output
                          (``None`` for the system temp directory).
        disable_tqdm:     Suppress download progress bars.
    """

    config_dir: Path = DEFAULT_CONFIG_DIR
    catalog_url: str = VOICES_JSON_URL
    voice_base_url: str = VOICE_BASE_URL
    release_base_url: str = RELEASE_BASE_URL
    locale: str = DEFAULT_LOCALE
    temp_dir: Optional[Path] = None
    disable_tqdm: bool = False

    def __post_init__(self):
        self.config_dir = Path(self.config_dir).expanduser()
        if self.temp_dir is not None:
            self.temp_dir = Path(self.temp_dir)

    @property
    def bin_dir(self) -> Path:
        return self.config_dir / "bin"

    @property
    def voices_dir(self) -> Path:
        return self.config_dir / "voices"

    @property
    def config_file(self) -> Path:
        return self.config_dir / "config.json"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "SpeakConfig":
        """Build a config, taking ``config_dir`` from ``$SPEAK_CONFIG_DIR`` if set."""
        environ = os.environ if environ is None else environ
        env_dir = environ.get(CONFIG_DIR_ENV)
        if env_dir and overrides.get("config_dir") is None:
            overrides["config_dir"] = Path(env_dir)
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return cls(**overrides)


# ------------------------------------------------------------------
# Catalog report
# ------------------------------------------------------------------


def format_catalog_report(
    voices: List[VoiceDescriptor],
    downloaded: Iterable[str],
    current_key: Optional[str] = None,
) -> str:
    """
    Format the voice listing shown to the user.

    Voices not yet downloaded are numbered in catalog order; the
    selected voice is marked with ``*``.
    """
    if not voices:
        return "No voices available."

    downloaded = set(downloaded)
    lines = [f"Available voices ({len(voices)} total):", ""]

    current = find_voice(voices, current_key) if current_key else None
    if current is not None:
        lines += [f"Currently selected: {describe_voice(current)} *", ""]

    to_download = [v for v in voices if v.key not in downloaded]
    if to_download:
        lines.append("Available to download:")
        for idx, voice in enumerate(to_download, start=1):
            lines.append(f"{idx}. {describe_voice(voice)}")
        lines.append("")

    cached = [v for v in voices if v.key in downloaded]
    if cached:
        lines.append("Already downloaded:")
        for voice in cached:
            marker = " *" if voice.key == current_key else ""
            lines.append(f"• {describe_voice(voice)}{marker}")

    return "\n".join(lines).rstrip("\n") + "\n"


# ------------------------------------------------------------------
# Service
# ------------------------------------------------------------------


class SpeakService:
    """
    Long-lived owner of the provisioning state.

    Components are created up front but nothing touches the network or
    disk until :meth:`provision` runs.

    Args:
        config:   Service configuration.
        fetcher:  Shared downloader (created from *config* if omitted).
        locator:  Search-path lookup for a system piper.
        profile:  Host profile (detected if omitted).
        select:   Voice chooser used when no voice is saved yet
                  (interactive prompt if omitted).
    """

    def __init__(
        self,
        config: Optional[SpeakConfig] = None,
        fetcher: Optional[AssetFetcher] = None,
        locator: Optional[ExecutableLocator] = None,
        profile: Optional[PlatformProfile] = None,
        select: Optional[VoiceSelector] = None,
    ):
        self.config = config or SpeakConfig()
        cfg = self.config

        self.fetcher = fetcher or AssetFetcher(disable_tqdm=cfg.disable_tqdm)
        self.store = ConfigStore(cfg.config_file)
        self.catalog = VoiceCatalog(self.fetcher, url=cfg.catalog_url, locale=cfg.locale)
        self.binary_mgr = BinaryManager(
            cfg.bin_dir, self.fetcher, locator=locator, temp_dir=cfg.temp_dir
        )
        self.model_mgr = ModelManager(
            cfg.voices_dir, self.fetcher, self.catalog, voice_base_url=cfg.voice_base_url
        )

        self._profile = profile
        self._select = select
        self._state = PersistentState()
        self._engine: Optional[SpeechEngine] = None
        self._provisioned = False

    async def __aenter__(self) -> "SpeakService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.fetcher.close()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> PersistentState:
        return self._state

    @property
    def is_provisioned(self) -> bool:
        return self._provisioned

    @property
    def profile(self) -> PlatformProfile:
        if self._profile is None:
            self._profile = current_platform(self.config.release_base_url)
        return self._profile

    def _commit(self, state: PersistentState) -> None:
        """Adopt *state*, flushing it to disk if it changed."""
        if state != self._state:
            self.store.save(state)
        self._state = state

    def _require_engine(self) -> SpeechEngine:
        if not self._provisioned or self._engine is None:
            raise NotProvisioned("Speak service not provisioned")
        return self._engine

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    async def provision(self) -> None:
        """
        Make sure a binary and a voice are available.  Idempotent.

        Raises:
            SpeakError: Any provisioning failure (e.g.
                        :class:`InstallationFailure`,
                        :class:`VoiceSetupFailure`).
        """
        if self._provisioned:
            return

        cfg = self.config
        logger.info("Initializing speak service with TTS...")

        for directory in (cfg.config_dir, cfg.bin_dir, cfg.voices_dir):
            ensure_directory(directory)

        self._state = self.store.load()

        piper_path, state = await self.binary_mgr.ensure_installed(self.profile, self._state)
        self._commit(state)

        model_path, state = await self.model_mgr.ensure_selected(self._state, self._select)
        self._commit(state)

        self._engine = SpeechEngine(piper_path, model_path, self.profile, temp_dir=cfg.temp_dir)
        self._provisioned = True
        logger.info("TTS initialization complete")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def synthesize_and_play(self, text: str) -> str:
        """Speak *text*; returns a status line, never raises."""
        if not isinstance(text, str) or not text.strip():
            return "Failed to play audio: message is required and must be a non-empty string"
        try:
            engine = self._require_engine()
            await engine.speak(text)
        except Exception as e:
            logger.error("Speaking failed: %s", e)
            return f"Failed to play audio: {e}"
        return "Audio played successfully"

    async def list_catalog_report(self) -> str:
        """Describe the catalog and local cache; never raises."""
        try:
            self._require_engine()
            voices = await self.catalog.fetch_available()
            downloaded = [v.key for v in voices if self.model_mgr.is_downloaded(v.key)]
            current = self._state.selected_voice
            return format_catalog_report(voices, downloaded, current.key if current else None)
        except Exception as e:
            logger.error("Listing voices failed: %s", e)
            return f"Failed to list voices: {e}"

    async def select_voice(self, identifier: str) -> str:
        """Switch voices by identifier; returns a status message, never raises."""
        if not isinstance(identifier, str) or not identifier.strip():
            return "Failed to change voice: voice identifier is required"
        try:
            engine = self._require_engine()
            message, state = await self.model_mgr.change_voice(identifier.strip(), self._state)
            self._commit(state)
        except Exception as e:
            logger.error("Changing voice failed: %s", e)
            return f"Failed to change voice: {e}"

        self._engine = SpeechEngine(
            engine.piper_path,
            state.selected_voice.model_path,
            self.profile,
            temp_dir=self.config.temp_dir,
        )
        return message

    def __repr__(self) -> str:
        return (
            f"SpeakService(dir='{self.config.config_dir}', "
            f"provisioned={self._provisioned})"
        )
