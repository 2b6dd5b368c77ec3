"""Tests for search-path executable lookup."""

import os

from speech.utils.locator import ExecutableLocator

from conftest import write_executable


def test_finds_first_executable_on_path(tmp_path, posix_only):
    first = tmp_path / "first"
    second = tmp_path / "second"
    write_executable(second / "piper", "exit 0")
    write_executable(first / "piper", "exit 0")

    locator = ExecutableLocator({"PATH": os.pathsep.join([str(first), str(second)])})
    assert locator.find("piper") == first / "piper"


def test_skips_non_executable_files(tmp_path, posix_only):
    (tmp_path / "piper").write_text("not executable")
    locator = ExecutableLocator({"PATH": str(tmp_path)})
    assert locator.find("piper") is None


def test_skips_directories_named_like_the_tool(tmp_path, posix_only):
    (tmp_path / "piper").mkdir()
    assert ExecutableLocator({"PATH": str(tmp_path)}).find("piper") is None


def test_missing_path_variable():
    assert ExecutableLocator({}).find("piper") is None
    assert ExecutableLocator({"PATH": ""}).find("piper") is None
