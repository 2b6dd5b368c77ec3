"""
Archive extraction and file-permission helpers.

Delegates decompression to the system ``tar`` / ``unzip`` tools, the
same ones a user would run by hand on the downloaded release.
"""

import asyncio
import logging
import os
import stat
from pathlib import Path
from typing import List, Optional, Tuple, Union

from speech.errors import (
    DirectoryCreationFailure,
    ExtractionFailure,
    PermissionFailure,
    ToolNotFound,
)

logger = logging.getLogger(__name__)


def ensure_directory(path: Union[str, Path]) -> Path:
    """Create *path* (and parents) if missing."""
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryCreationFailure(path, e) from e
    return path


def extraction_command(
    archive_path: Union[str, Path], dest_dir: Union[str, Path]
) -> Tuple[str, List[str]]:
    """Return ``(tool, args)`` for unpacking *archive_path* into *dest_dir*."""
    archive = str(archive_path)
    if archive.lower().endswith(".zip"):
        return "unzip", ["-q", archive, "-d", str(dest_dir)]
    return "tar", ["-xzf", archive, "-C", str(dest_dir)]


async def run_tool(
    tool: str, args: List[str], stdin_data: Optional[bytes] = None
) -> Tuple[int, str]:
    """
    Run an external tool to completion.

    Returns:
        ``(exit_code, stderr_text)``.

    Raises:
        ToolNotFound: If the executable cannot be launched.
    """
    stdin = asyncio.subprocess.DEVNULL
    if stdin_data is not None:
        stdin = asyncio.subprocess.PIPE
    try:
        proc = await asyncio.create_subprocess_exec(
            tool,
            *args,
            stdin=stdin,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ToolNotFound(tool, e) from e

    _, stderr = await proc.communicate(stdin_data)
    return proc.returncode, stderr.decode("utf-8", errors="replace").strip()


async def extract_archive(archive_path: Union[str, Path], dest_dir: Union[str, Path]) -> None:
    """
    Unpack a ``.tar.gz`` or ``.zip`` archive into *dest_dir*.

    Raises:
        DirectoryCreationFailure: If *dest_dir* cannot be created.
        ToolNotFound:             If ``tar``/``unzip`` cannot be run.
        ExtractionFailure:        If the tool exits non-zero.
    """
    ensure_directory(dest_dir)
    tool, args = extraction_command(archive_path, dest_dir)
    logger.debug("Running %s %s", tool, " ".join(args))

    code, stderr = await run_tool(tool, args)
    if code != 0:
        raise ExtractionFailure(code, stderr)


def make_executable(path: Union[str, Path], is_windows: Optional[bool] = None) -> None:
    """chmod 755 *path*; a no-op on Windows."""
    if is_windows is None:
        is_windows = os.name == "nt"
    if is_windows:
        return
    try:
        os.chmod(
            path,
            stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH,
        )
    except OSError as e:
        raise PermissionFailure(f"Failed to make {path} executable: {e}") from e
