"""Tests for archive extraction and permission helpers."""

import os
import shutil
import stat
import tarfile

import pytest

from speech.errors import DirectoryCreationFailure, ExtractionFailure, ToolNotFound
from speech.utils import archive
from speech.utils.archive import (
    ensure_directory,
    extract_archive,
    extraction_command,
    make_executable,
    run_tool,
)


def test_extraction_command_for_tarball():
    assert extraction_command("/tmp/p.tar.gz", "/opt/bin") == (
        "tar",
        ["-xzf", "/tmp/p.tar.gz", "-C", "/opt/bin"],
    )


def test_extraction_command_for_zip():
    tool, args = extraction_command("/tmp/piper_windows_amd64.ZIP", "/opt/bin")
    assert tool == "unzip"
    assert args == ["-q", "/tmp/piper_windows_amd64.ZIP", "-d", "/opt/bin"]


def test_ensure_directory_creates_parents(tmp_path):
    target = ensure_directory(tmp_path / "a" / "b")
    assert target.is_dir()


def test_ensure_directory_failure(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("")
    with pytest.raises(DirectoryCreationFailure):
        ensure_directory(blocker / "child")


@pytest.mark.skipif(shutil.which("tar") is None, reason="tar not installed")
async def test_extract_tarball(tmp_path):
    src = tmp_path / "src" / "piper"
    src.mkdir(parents=True)
    (src / "piper").write_text("binary")
    archive_path = tmp_path / "piper.tar.gz"
    with tarfile.open(archive_path, "w:gz") as tf:
        tf.add(src, arcname="piper")

    dest = tmp_path / "bin"
    await extract_archive(archive_path, dest)
    assert (dest / "piper" / "piper").read_text() == "binary"


@pytest.mark.skipif(shutil.which("tar") is None, reason="tar not installed")
async def test_extract_corrupt_archive_fails(tmp_path):
    bogus = tmp_path / "bogus.tar.gz"
    bogus.write_bytes(b"not a tarball")
    with pytest.raises(ExtractionFailure) as info:
        await extract_archive(bogus, tmp_path / "out")
    assert info.value.exit_code != 0


async def test_missing_tool_raises_tool_not_found(tmp_path, monkeypatch):
    monkeypatch.setattr(
        archive,
        "extraction_command",
        lambda a, d: ("definitely-not-a-real-tool-xyz", [str(a)]),
    )
    with pytest.raises(ToolNotFound, match="definitely-not-a-real-tool-xyz"):
        await extract_archive(tmp_path / "a.tar.gz", tmp_path / "out")


async def test_run_tool_passes_stdin(tmp_path, posix_only):
    out = tmp_path / "echo.txt"
    code, stderr = await run_tool("sh", ["-c", f'cat > "{out}"'], stdin_data=b"hello")
    assert code == 0
    assert stderr == ""
    assert out.read_bytes() == b"hello"


async def test_run_tool_captures_stderr(posix_only):
    code, stderr = await run_tool("sh", ["-c", "echo boom >&2; exit 3"])
    assert code == 3
    assert stderr == "boom"


@pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
def test_make_executable_sets_755(tmp_path):
    target = tmp_path / "piper"
    target.write_text("")
    target.chmod(0o600)
    make_executable(target, is_windows=False)
    assert stat.S_IMODE(target.stat().st_mode) == 0o755


def test_make_executable_is_noop_on_windows(tmp_path):
    make_executable(tmp_path / "missing.exe", is_windows=True)
