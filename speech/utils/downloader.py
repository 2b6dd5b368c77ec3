"""
Streaming HTTP downloader.

Fetches release archives, voice models and the voice catalog over
HTTP(S) with a bounded number of redirects.  Partial files never
survive a failed transfer.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union
from urllib.parse import urljoin

import aiohttp
from tqdm import tqdm

from speech.errors import NetworkFailure, TooManyRedirects

logger = logging.getLogger(__name__)

REDIRECT_STATUSES = frozenset({301, 302, 307, 308})

MAX_REDIRECTS = 5

_CHUNK_SIZE = 64 * 1024

# Progress is logged in steps of at least this many percentage points
_PROGRESS_STEP = 10


def remove_partial(path: Union[str, Path]) -> None:
    """Delete *path* if present; errors are ignored."""
    try:
        Path(path).unlink()
    except OSError:
        pass


class AssetFetcher:
    """
    Downloads files and documents through a shared ``aiohttp`` session.

    Usage::

        async with AssetFetcher() as fetcher:
            await fetcher.fetch(url, Path("/tmp/piper.tar.gz"))
            text = await fetcher.fetch_text(catalog_url)

    No request timeout is applied and failures are never retried; a
    stalled server stalls the caller.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        max_redirects: int = MAX_REDIRECTS,
        disable_tqdm: bool = False,
    ):
        self._session = session
        self._owns_session = session is None
        self.max_redirects = max_redirects
        self.disable_tqdm = disable_tqdm

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "AssetFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=None)
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def _open(self, url: str) -> Tuple[aiohttp.ClientResponse, str]:
        """
        GET *url*, following redirects by hand.

        Returns:
            ``(response, final_url)``.  The caller must release the
            response.

        Raises:
            TooManyRedirects: After more than ``max_redirects`` hops.
            NetworkFailure:   On transport errors or a redirect without
                              a ``Location`` header.
        """
        session = self._get_session()
        current = url
        hops = 0
        while True:
            try:
                response = await session.get(current, allow_redirects=False)
            except aiohttp.ClientError as e:
                raise NetworkFailure(f"Request to {current} failed: {e}") from e

            if response.status not in REDIRECT_STATUSES:
                return response, current

            location = response.headers.get("Location")
            status = response.status
            response.release()
            if not location:
                raise NetworkFailure("Redirect without location header", status)

            hops += 1
            if hops > self.max_redirects:
                raise TooManyRedirects(url, hops)

            current = urljoin(current, location)
            logger.debug("Following redirect to %s", current)

    @staticmethod
    def _check_status(response: aiohttp.ClientResponse, url: str) -> None:
        if not 200 <= response.status < 300:
            raise NetworkFailure(
                f"Failed to download {url}: HTTP {response.status}",
                response.status,
            )

    async def fetch(
        self,
        url: str,
        dest_path: Union[str, Path],
        label: Optional[str] = None,
    ) -> None:
        """
        Stream *url* into *dest_path*.

        Args:
            url:       Source URL.
            dest_path: File to create or overwrite.
            label:     Short name for progress output (defaults to the
                       destination file name).

        Raises:
            NetworkFailure:   Non-2xx terminal status or transport error.
            TooManyRedirects: Redirect chain longer than allowed.
        """
        dest = Path(dest_path)
        label = label or dest.name
        try:
            response, final_url = await self._open(url)
            try:
                self._check_status(response, final_url)
                await self._stream_to_file(response, dest, label)
            finally:
                response.release()
        except Exception:
            remove_partial(dest)
            raise
        logger.info("Download complete: %s", label)

    async def _stream_to_file(
        self, response: aiohttp.ClientResponse, dest: Path, label: str
    ) -> None:
        total = response.content_length or 0
        downloaded = 0
        last_logged = 0

        pbar = tqdm(
            total=total or None,
            desc=label,
            unit="B",
            unit_scale=True,
            unit_divisor=1024,
            disable=self.disable_tqdm,
        )
        try:
            with open(dest, "wb") as fh:
                try:
                    async for chunk in response.content.iter_chunked(_CHUNK_SIZE):
                        fh.write(chunk)
                        downloaded += len(chunk)
                        pbar.update(len(chunk))
                        if total > 0:
                            pct = downloaded * 100 // total
                            if pct >= last_logged + _PROGRESS_STEP:
                                logger.info("Download progress: %d%%", pct)
                                last_logged = pct
                except aiohttp.ClientError as e:
                    raise NetworkFailure(f"Transfer of {label} failed: {e}") from e
        finally:
            pbar.close()

    async def fetch_text(self, url: str) -> str:
        """Return the decoded body of *url*.  Non-2xx raises NetworkFailure."""
        response, final_url = await self._open(url)
        try:
            self._check_status(response, final_url)
            try:
                body = await response.read()
            except aiohttp.ClientError as e:
                raise NetworkFailure(f"Reading {final_url} failed: {e}") from e
            return body.decode(response.charset or "utf-8", errors="replace")
        finally:
            response.release()
