"""
Piper voice model manager.

Downloads, caches, and locates Piper TTS voice models.
Each voice lives in its own directory named after its catalog key::

    <voices_dir>/en_US-amy-medium/en_US-amy-medium.onnx
    <voices_dir>/en_US-amy-medium/en_US-amy-medium.onnx.json
"""

import asyncio
import dataclasses
import enum
import inspect
import logging
import posixpath
import shutil
import sys
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence, TextIO, Tuple, Union

from speech.config.models import (
    MODEL_SUFFIX,
    PersistentState,
    SelectedVoiceRecord,
    companion_config_path,
)
from speech.errors import (
    CatalogEmpty,
    InvalidSelection,
    VoiceAssetIncomplete,
    VoiceDownloadFailure,
    VoiceNotFound,
    VoiceSetupFailure,
)
from speech.utils.archive import ensure_directory
from speech.utils.downloader import AssetFetcher, remove_partial
from speech.voices.catalog import VoiceCatalog
from speech.voices.models import VoiceDescriptor
from speech.voices.resolver import resolve_voice

logger = logging.getLogger(__name__)

# Base URL for Piper voice file downloads
VOICE_BASE_URL = "https://huggingface.co/rhasspy/piper-voices/resolve/main"

VoiceSelector = Callable[
    [List[VoiceDescriptor]], Union[VoiceDescriptor, Awaitable[VoiceDescriptor]]
]


class DownloadCheck(enum.Enum):
    """Outcome of looking for a voice in the local cache."""

    PRESENT = "present"
    ABSENT = "absent"
    CHECK_FAILED = "check_failed"  # filesystem error while looking


def format_voice_size(size_bytes: int) -> str:
    """``121634816`` → ``"116.0MB"``."""
    return f"{size_bytes / 1024 / 1024:.1f}MB"


def describe_voice(voice: VoiceDescriptor) -> str:
    """``"amy (high quality, 116.0MB)"``."""
    return f"{voice.name} ({voice.quality} quality, {format_voice_size(voice.size_bytes)})"


def prompt_for_voice(
    voices: Sequence[VoiceDescriptor],
    input_fn: Callable[[str], str] = input,
    stream: Optional[TextIO] = None,
) -> VoiceDescriptor:
    """
    Print a numbered voice list and read a 1-based choice.

    The list goes to *stream* (stderr by default) so stdout stays free
    for the calling protocol.

    Raises:
        InvalidSelection: If the answer is not a listed number.
    """
    stream = stream or sys.stderr
    print("\nAvailable voices:", file=stream)
    for idx, voice in enumerate(voices, start=1):
        print(f"{idx}. {describe_voice(voice)}", file=stream)

    answer = input_fn("\nSelect a voice (enter number): ")
    try:
        selection = int(answer.strip())
    except (ValueError, AttributeError):
        raise InvalidSelection(f"Invalid selection: {answer!r}")
    if not 1 <= selection <= len(voices):
        raise InvalidSelection(f"Invalid selection: {answer!r}")
    return voices[selection - 1]


async def prompt_selector(voices: List[VoiceDescriptor]) -> VoiceDescriptor:
    """Run :func:`prompt_for_voice` without blocking the event loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, prompt_for_voice, voices)


class ModelManager:
    """
    Manages Piper TTS voice model downloads and the voice selection.

    Usage::

        mgr = ModelManager(voices_dir, fetcher, catalog)
        model_path, state = await mgr.ensure_selected(state)
        message, state = await mgr.change_voice("amy", state)

    Every operation returns a new :class:`PersistentState`; the caller
    decides when to persist it.
    """

    def __init__(
        self,
        voices_dir: Union[str, Path],
        fetcher: AssetFetcher,
        catalog: VoiceCatalog,
        voice_base_url: str = VOICE_BASE_URL,
    ):
        self.voices_dir = Path(voices_dir)
        self.fetcher = fetcher
        self.catalog = catalog
        self.voice_base_url = voice_base_url.rstrip("/")

    # ------------------------------------------------------------------
    # Local cache
    # ------------------------------------------------------------------

    def get_voice_dir(self, voice_key: str) -> Path:
        return self.voices_dir / voice_key

    def check_downloaded(self, voice_key: str) -> DownloadCheck:
        """
        Look for a model file in the voice's directory.

        Filesystem errors are reported as ``CHECK_FAILED``, never raised.
        """
        voice_dir = self.get_voice_dir(voice_key)
        try:
            if not voice_dir.is_dir():
                return DownloadCheck.ABSENT
            has_model = any(p.name.endswith(MODEL_SUFFIX) for p in voice_dir.iterdir())
        except OSError as e:
            logger.debug("Could not inspect %s: %s", voice_dir, e)
            return DownloadCheck.CHECK_FAILED
        return DownloadCheck.PRESENT if has_model else DownloadCheck.ABSENT

    def is_downloaded(self, voice_key: str) -> bool:
        return self.check_downloaded(voice_key) is DownloadCheck.PRESENT

    def find_local_model(self, voice_key: str) -> Optional[Path]:
        """Path of the cached ``.onnx`` for *voice_key*, if any."""
        voice_dir = self.get_voice_dir(voice_key)
        try:
            models = sorted(p for p in voice_dir.iterdir() if p.name.endswith(MODEL_SUFFIX))
        except OSError:
            return None
        return models[0] if models else None

    # ------------------------------------------------------------------
    # Downloading
    # ------------------------------------------------------------------

    async def download_voice(self, voice: VoiceDescriptor) -> Path:
        """
        Fetch every file the descriptor lists into its voice directory.

        If any file fails, the files fetched by this call are removed
        (the whole directory if this call created it) before re-raising.

        Returns:
            Local path to the ``.onnx`` model.

        Raises:
            VoiceAssetIncomplete: If the descriptor lists no model file.
        """
        model_remote = voice.model_file
        if model_remote is None:
            raise VoiceAssetIncomplete(f"No {MODEL_SUFFIX} file found for voice {voice.key}")

        logger.info("Downloading voice model: %s...", voice.name)
        voice_dir = self.get_voice_dir(voice.key)
        created_dir = not voice_dir.exists()
        ensure_directory(voice_dir)

        fetched: List[Path] = []
        try:
            for remote_path in voice.files:
                file_name = posixpath.basename(remote_path)
                logger.info("Downloading %s...", file_name)
                dest = voice_dir / file_name
                fetched.append(dest)
                await self.fetcher.fetch(
                    f"{self.voice_base_url}/{remote_path}", dest, label=file_name
                )
        except Exception:
            # A voice is usable only with every file present
            self._discard(voice_dir, fetched, created_dir)
            raise

        logger.info("Voice model downloaded successfully")
        return voice_dir / posixpath.basename(model_remote)

    @staticmethod
    def _discard(voice_dir: Path, fetched: List[Path], created_dir: bool) -> None:
        """Undo a failed :meth:`download_voice`."""
        logger.debug("Discarding incomplete download in %s", voice_dir)
        if created_dir:
            shutil.rmtree(voice_dir, ignore_errors=True)
            return
        for path in fetched:
            remove_partial(path)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    @staticmethod
    def _select_record(
        state: PersistentState, voice: VoiceDescriptor, model_path: Path
    ) -> PersistentState:
        record = SelectedVoiceRecord(
            key=voice.key,
            name=voice.name,
            language_code=voice.language.code,
            quality=voice.quality,
            model_path=str(model_path),
            config_path=companion_config_path(str(model_path)),
        )
        return dataclasses.replace(state, selected_voice=record)

    async def ensure_selected(
        self,
        state: PersistentState,
        select: Optional[VoiceSelector] = None,
    ) -> Tuple[Path, PersistentState]:
        """
        Return the selected model, choosing and downloading one if needed.

        A saved selection is reused only while its model file exists.

        Args:
            state:  Current persisted state.
            select: Picks one voice from the fetched catalog; may be sync
                    or async.  Defaults to an interactive prompt.

        Raises:
            VoiceSetupFailure: Wrapping any catalog, selection or
                               download failure.
        """
        current = state.selected_voice
        if current is not None and current.model_path:
            if Path(current.model_path).is_file():
                logger.info("Using existing voice: %s", current.name)
                return Path(current.model_path), state
            logger.warning("Configured voice not found, selecting a new one...")

        select = select or prompt_selector
        try:
            voices = await self.catalog.fetch_available()
            if not voices:
                raise CatalogEmpty("No voices available")

            chosen = select(voices)
            if inspect.isawaitable(chosen):
                chosen = await chosen

            model_path = await self.download_voice(chosen)
        except Exception as e:
            raise VoiceSetupFailure(f"Failed to setup voice: {e}") from e

        return model_path, self._select_record(state, chosen, model_path)

    async def change_voice(
        self, identifier: str, state: PersistentState
    ) -> Tuple[str, PersistentState]:
        """
        Switch to the voice *identifier* names, downloading it if needed.

        On failure the caller's state is left as it was.

        Returns:
            ``(confirmation_message, new_state)``.

        Raises:
            VoiceNotFound:        If nothing in the catalog matches.
            VoiceDownloadFailure: If the voice could not be downloaded.
        """
        voices = await self.catalog.fetch_available()
        try:
            voice = resolve_voice(identifier, voices, self.catalog.locale)
        except VoiceNotFound as e:
            raise VoiceNotFound(
                f"{e} Use the list-voices command to see available voices."
            ) from e

        model_path = None
        if self.is_downloaded(voice.key):
            model_path = self.find_local_model(voice.key)

        if model_path is None:
            logger.info(
                "Voice not cached. Downloading %s (this may take 1-2 minutes)...",
                voice.name,
            )
            try:
                model_path = await self.download_voice(voice)
            except Exception as e:
                raise VoiceDownloadFailure(
                    f"Failed to download voice {voice.name}: {e}"
                ) from e

        new_state = self._select_record(state, voice, model_path)
        message = (
            f"Voice changed successfully to: {describe_voice(voice)}\n"
            "Ready to use immediately."
        )
        return message, new_state

    def __repr__(self) -> str:
        return f"ModelManager(dir='{self.voices_dir}')"
