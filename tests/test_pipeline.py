"""Tests for the speak service: provisioning, speaking and voice management."""

import dataclasses
import json

import pytest

from speech.config.store import ConfigStore
from speech.errors import (
    ConfigSaveFailure,
    InstallationFailure,
    VoiceSetupFailure,
    error_kind_of,
)
from speech.pipeline import CONFIG_DIR_ENV, SpeakConfig, SpeakService, format_catalog_report
from speech.utils.locator import ExecutableLocator

from conftest import make_voice, write_executable

CATALOG_URL = "http://voices.invalid/voices.json"
VOICE_BASE = "http://voices.invalid/resolve"


def _first(voices):
    return voices[0]


@pytest.fixture
def config(tmp_path):
    (tmp_path / "tmp").mkdir()
    return SpeakConfig(
        config_dir=tmp_path / "cfg",
        catalog_url=CATALOG_URL,
        voice_base_url=VOICE_BASE,
        temp_dir=tmp_path / "tmp",
        disable_tqdm=True,
    )


@pytest.fixture
def tools(tmp_path, linux_profile, posix_only):
    """A fake piper on a private PATH and a profile with a fake player."""
    path_dir = tmp_path / "path"
    write_executable(path_dir / "piper", 'cat > "$4"')
    played = tmp_path / "played.txt"
    player = write_executable(tmp_path / "player", f'echo "$1" >> "{played}"')
    locator = ExecutableLocator({"PATH": str(path_dir)})
    profile = dataclasses.replace(linux_profile, audio_player=str(player))
    return locator, profile, played


@pytest.fixture
def make_service(config, tools, fake_fetcher_factory, catalog_json):
    locator, profile, _ = tools

    def make(select=_first, **fetcher_kwargs):
        fetcher_kwargs.setdefault("documents", {CATALOG_URL: catalog_json})
        fetcher = fake_fetcher_factory(**fetcher_kwargs)
        service = SpeakService(
            config, fetcher=fetcher, locator=locator, profile=profile, select=select
        )
        return service, fetcher

    return make


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


def test_config_layout(tmp_path):
    cfg = SpeakConfig(config_dir=tmp_path)
    assert cfg.bin_dir == tmp_path / "bin"
    assert cfg.voices_dir == tmp_path / "voices"
    assert cfg.config_file == tmp_path / "config.json"


def test_config_from_env(tmp_path):
    cfg = SpeakConfig.from_env({CONFIG_DIR_ENV: str(tmp_path)}, config_dir=None)
    assert cfg.config_dir == tmp_path


def test_config_override_beats_env(tmp_path):
    cfg = SpeakConfig.from_env({CONFIG_DIR_ENV: "/elsewhere"}, config_dir=tmp_path)
    assert cfg.config_dir == tmp_path


# ------------------------------------------------------------------
# Provisioning
# ------------------------------------------------------------------


async def test_provision_first_run(make_service, config):
    service, fetcher = make_service()

    await service.provision()

    assert service.is_provisioned
    assert service.state.piper_binary.version == "system"
    assert service.state.selected_voice.key == "en_US-lessac-high"
    saved = ConfigStore(config.config_file).load()
    assert saved == service.state
    assert fetcher.calls[0] == CATALOG_URL


async def test_provision_is_idempotent(make_service):
    service, fetcher = make_service()
    await service.provision()
    calls = list(fetcher.calls)

    await service.provision()
    assert fetcher.calls == calls


async def test_second_run_reuses_saved_voice(make_service, config):
    first, _ = make_service()
    await first.provision()
    mtime = config.config_file.stat().st_mtime_ns

    def never(voices):
        raise AssertionError("selector should not run")

    second, fetcher = make_service(select=never)
    await second.provision()

    assert fetcher.calls == []
    assert second.state == first.state
    assert config.config_file.stat().st_mtime_ns == mtime


async def test_provision_voice_failure(make_service):
    service, _ = make_service(documents={CATALOG_URL: "not json"})
    with pytest.raises(VoiceSetupFailure):
        await service.provision()
    assert not service.is_provisioned


async def test_provision_install_failure(config, fake_fetcher_factory, linux_profile):
    fetcher = fake_fetcher_factory(fail_urls={linux_profile.binary_download_url})
    service = SpeakService(
        config,
        fetcher=fetcher,
        locator=ExecutableLocator({"PATH": ""}),
        profile=linux_profile,
        select=_first,
    )
    with pytest.raises(InstallationFailure):
        await service.provision()


# ------------------------------------------------------------------
# Operations
# ------------------------------------------------------------------


async def test_operations_before_provisioning(make_service):
    service, _ = make_service()
    assert await service.synthesize_and_play("hi") == (
        "Failed to play audio: Speak service not provisioned"
    )
    assert (await service.list_catalog_report()).startswith("Failed to list voices")
    assert (await service.select_voice("amy")).startswith("Failed to change voice")


async def test_synthesize_and_play(make_service, tools):
    _, _, played = tools
    service, _ = make_service()
    await service.provision()

    assert await service.synthesize_and_play("All tests passed") == "Audio played successfully"
    assert played.read_text().strip().endswith(".wav")


@pytest.mark.parametrize("text", ["", "   "])
async def test_synthesize_rejects_empty_text(make_service, text):
    service, _ = make_service()
    await service.provision()
    assert (await service.synthesize_and_play(text)).startswith("Failed to play audio")


async def test_playback_failure_is_reported(make_service, tmp_path):
    service, _ = make_service()
    await service.provision()
    write_executable(tmp_path / "player", "echo busy >&2; exit 1")

    result = await service.synthesize_and_play("hello")
    assert result == "Failed to play audio: Audio player failed with code 1: busy"


async def test_select_voice_switches_and_persists(make_service, config):
    service, _ = make_service()
    await service.provision()

    message = await service.select_voice("amy")

    assert message.startswith("Voice changed successfully to: amy (medium quality")
    assert service.state.selected_voice.key == "en_US-amy-medium"
    saved = json.loads(config.config_file.read_text())
    assert saved["selectedVoice"]["key"] == "en_US-amy-medium"
    assert service._engine.model_path.name == "en_US-amy-medium.onnx"


async def test_select_voice_not_found_keeps_state(make_service):
    service, _ = make_service()
    await service.provision()
    before = service.state

    message = await service.select_voice("zelda")

    assert message == (
        "Failed to change voice: Voice 'zelda' not found. "
        "Use the list-voices command to see available voices."
    )
    assert service.state == before


async def test_list_catalog_report(make_service):
    service, _ = make_service()
    await service.provision()

    report = await service.list_catalog_report()

    assert report.startswith("Available voices (4 total):")
    assert "Currently selected: lessac (high quality, 0.0MB) *" in report
    assert "• lessac (high quality, 0.0MB) *" in report
    assert "1. ryan (high quality, 0.0MB)" in report


async def test_list_catalog_report_fetch_failure(make_service):
    service, fetcher = make_service()
    await service.provision()
    fetcher.documents[CATALOG_URL] = ""

    assert (await service.list_catalog_report()).startswith(
        "Failed to list voices: Failed to parse voices JSON"
    )


async def test_close_closes_fetcher(make_service):
    service, fetcher = make_service()
    async with service:
        pass
    assert fetcher.closed


# ------------------------------------------------------------------
# Report formatting
# ------------------------------------------------------------------


def test_format_catalog_report_empty():
    assert format_catalog_report([], []) == "No voices available."


def test_format_catalog_report_sections():
    voices = [
        make_voice("en_US-a-high", "high"),
        make_voice("en_US-b-medium", "medium"),
        make_voice("en_US-c-low", "low"),
    ]
    report = format_catalog_report(voices, ["en_US-b-medium"], "en_US-b-medium")
    assert report == (
        "Available voices (3 total):\n"
        "\n"
        "Currently selected: b (medium quality, 0.0MB) *\n"
        "\n"
        "Available to download:\n"
        "1. a (high quality, 0.0MB)\n"
        "2. c (low quality, 0.0MB)\n"
        "\n"
        "Already downloaded:\n"
        "• b (medium quality, 0.0MB) *\n"
    )


def test_format_catalog_report_without_selection():
    voices = [make_voice("en_US-a-high", "high")]
    report = format_catalog_report(voices, [])
    assert "Currently selected" not in report
    assert "Already downloaded" not in report


async def test_unwritable_config_is_a_speak_error(make_service, config):
    config.config_file.mkdir(parents=True)
    service, _ = make_service()

    with pytest.raises(ConfigSaveFailure) as info:
        await service.provision()
    assert error_kind_of(info.value) == "config_save"
    assert not service.is_provisioned
