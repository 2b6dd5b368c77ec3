"""Shared fixtures: sample catalogs, fake downloader, local HTTP server, fake tools."""

from __future__ import annotations

import json
import os
import stat
from pathlib import Path

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from speech.setup.platform import PlatformProfile, resolve_platform
from speech.utils.downloader import AssetFetcher
from speech.voices.models import VoiceDescriptor, VoiceFile


def voice_entry(key: str, quality: str = "medium", name: str | None = None, size: int = 1024) -> dict:
    """One raw ``voices.json`` entry with a model and its metadata file."""
    speaker = key.split("-")[1] if "-" in key else key
    base = f"en/en_US/{speaker}/{quality}/{key}"
    return {
        "key": key,
        "name": name or speaker,
        "language": {
            "code": "en_US",
            "name_english": "English",
            "country_english": "United States",
        },
        "quality": quality,
        "files": {
            f"{base}.onnx": {"size_bytes": size, "md5_digest": "abc"},
            f"{base}.onnx.json": {"size_bytes": 100, "md5_digest": "def"},
        },
    }


def make_voice(key: str, quality: str = "medium", name: str | None = None) -> VoiceDescriptor:
    speaker = key.split("-")[1] if "-" in key else key
    return VoiceDescriptor(
        key=key,
        name=name or speaker,
        quality=quality,
        files={f"en/en_US/{speaker}/{quality}/{key}.onnx": VoiceFile(size_bytes=2048)},
    )


@pytest.fixture
def catalog_document() -> dict:
    return {
        "en_US-amy-medium": voice_entry("en_US-amy-medium", "medium"),
        "de_DE-thorsten-high": voice_entry("de_DE-thorsten-high", "high"),
        "en_US-amy-low": voice_entry("en_US-amy-low", "low"),
        "en_US-lessac-high": voice_entry("en_US-lessac-high", "high"),
        "en_US-ryan-high": voice_entry("en_US-ryan-high", "high"),
    }


def write_executable(path: Path, body: str) -> Path:
    """Write a ``/bin/sh`` script and mark it executable."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n" + body + "\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def linux_profile() -> PlatformProfile:
    return resolve_platform("Linux", "x86_64", release_base_url="http://releases.invalid")


class FakeFetcher:
    """
    Stand-in for :class:`AssetFetcher` that never touches the network.

    ``documents`` maps URL → text for :meth:`fetch_text`; :meth:`fetch`
    writes ``files[url]`` (or a placeholder) to the destination.
    """

    def __init__(self, documents=None, files=None, fail_urls=()):
        self.documents = dict(documents or {})
        self.files = dict(files or {})
        self.fail_urls = set(fail_urls)
        self.calls: list[str] = []
        self.closed = False

    async def fetch(self, url, dest_path, label=None):
        self.calls.append(url)
        if url in self.fail_urls:
            from speech.errors import NetworkFailure

            raise NetworkFailure(f"Failed to download {url}: HTTP 404", 404)
        Path(dest_path).write_bytes(self.files.get(url, b"payload"))

    async def fetch_text(self, url):
        self.calls.append(url)
        return self.documents[url]

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_fetcher_factory():
    return FakeFetcher


@pytest.fixture
async def fetcher():
    f = AssetFetcher(disable_tqdm=True)
    yield f
    await f.close()


@pytest.fixture
async def serve():
    """Start an in-process aiohttp server for a list of routes."""
    servers = []

    async def _serve(routes) -> TestServer:
        app = web.Application()
        app.router.add_routes(routes)
        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        return server

    yield _serve
    for server in servers:
        await server.close()


@pytest.fixture
def catalog_json(catalog_document) -> str:
    return json.dumps(catalog_document)


@pytest.fixture
def posix_only():
    if os.name == "nt":
        pytest.skip("requires a POSIX shell")
