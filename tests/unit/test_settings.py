from __future__ import annotations

from pathlib import Path

import pytest

from intentstream.runtime.settings import load_settings
from intentstream.runtime.dependencies import build_runtime_deps, build_audio_profile

from tests.fakes import FakeBackend


def test_defaults() -> None:
    settings = load_settings()

    assert settings.server.port == 8000
    assert settings.limits.max_concurrent_connections == 100
    assert settings.websocket.max_frame_bytes == 4 * 1024 * 1024
    assert settings.dialogflow.credentials_path == Path("dialogflow_credentials.json")
    assert settings.dialogflow.language_code == "en-US"
    assert settings.dialogflow.sample_rate_hz == 16000
    assert settings.bridge.end_sentinel == b"EOS"
    assert settings.bridge.drain_timeout_s == 30.0
    assert settings.bridge.disconnect_policy == "finalize"
    assert settings.bridge.max_frame_bytes == settings.websocket.max_frame_bytes


def test_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DIALOGFLOW_CREDENTIALS", "~/keys/agent.json")
    monkeypatch.setenv("DIALOGFLOW_PROJECT_ID", "my-agent")
    monkeypatch.setenv("DIALOGFLOW_LANGUAGE_CODE", "de-DE")
    monkeypatch.setenv("BRIDGE_END_SENTINEL", "END")
    monkeypatch.setenv("BRIDGE_DISCONNECT_POLICY", " Abandon ")
    monkeypatch.setenv("WS_MAX_FRAME_BYTES", "65536")

    settings = load_settings()

    assert settings.dialogflow.credentials_path == Path("~/keys/agent.json").expanduser()
    assert settings.dialogflow.project_id == "my-agent"
    assert settings.dialogflow.language_code == "de-DE"
    assert settings.bridge.end_sentinel == b"END"
    assert settings.bridge.disconnect_policy == "abandon"
    assert settings.bridge.max_frame_bytes == 65536


def test_empty_credentials_means_application_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DIALOGFLOW_CREDENTIALS", "")

    assert load_settings().dialogflow.credentials_path is None


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("SERVER_PORT", "not-a-port"),
        ("BRIDGE_DRAIN_TIMEOUT_S", "-1"),
        ("DIALOGFLOW_SAMPLE_RATE_HZ", "22050"),
        ("WS_MAX_FRAME_BYTES", "0"),
    ],
)
def test_invalid_numbers_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    defaults = load_settings()
    monkeypatch.setenv(name, value)

    assert load_settings() == defaults


@pytest.mark.parametrize("sentinel", ["EO", "EOS!", "ÉOS"])
def test_sentinel_must_be_three_bytes(monkeypatch: pytest.MonkeyPatch, sentinel: str) -> None:
    monkeypatch.setenv("BRIDGE_END_SENTINEL", sentinel)

    with pytest.raises(ValueError, match="BRIDGE_END_SENTINEL"):
        load_settings()


def test_unknown_disconnect_policy_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BRIDGE_DISCONNECT_POLICY", "ignore")

    with pytest.raises(ValueError, match="BRIDGE_DISCONNECT_POLICY"):
        load_settings()


def test_runtime_deps_wiring(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAX_CONCURRENT_CONNECTIONS", "3")
    monkeypatch.setenv("DIALOGFLOW_SAMPLE_RATE_HZ", "8000")
    backend = FakeBackend()

    deps = build_runtime_deps(backend=backend)

    assert deps.connections.max_connections == 3
    assert deps.bridges.backend is backend
    assert deps.bridges.registry is deps.registry
    assert deps.bridges.profile == build_audio_profile(deps.settings)
    assert deps.bridges.profile.sample_rate_hz == 8000
    assert deps.bridges.profile.encoding == "AUDIO_ENCODING_LINEAR_16"
