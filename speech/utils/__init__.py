"""Download, extraction and executable-lookup helpers."""

from .archive import (
    ensure_directory,
    extract_archive,
    extraction_command,
    make_executable,
    run_tool,
)
from .downloader import MAX_REDIRECTS, AssetFetcher, remove_partial
from .locator import ExecutableLocator

__all__ = [
    "AssetFetcher",
    "ExecutableLocator",
    "MAX_REDIRECTS",
    "ensure_directory",
    "extract_archive",
    "extraction_command",
    "make_executable",
    "remove_partial",
    "run_tool",
]
