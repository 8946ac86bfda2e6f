from __future__ import annotations

import pytest

from intentstream.handlers.registry import SessionRegistry

from tests.fakes import FakeBackend, make_bridge_settings


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def bridge_settings():
    return make_bridge_settings()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # Settings are read from the environment; keep the developer's shell out of the tests.
    for name in (
        "DIALOGFLOW_CREDENTIALS",
        "DIALOGFLOW_PROJECT_ID",
        "DIALOGFLOW_LANGUAGE_CODE",
        "DIALOGFLOW_SAMPLE_RATE_HZ",
        "DIALOGFLOW_API_ENDPOINT",
        "BRIDGE_END_SENTINEL",
        "BRIDGE_DRAIN_TIMEOUT_S",
        "BRIDGE_CLOSE_TIMEOUT_S",
        "BRIDGE_DISCONNECT_POLICY",
        "WS_MAX_FRAME_BYTES",
        "WS_IDLE_TIMEOUT_S",
        "WS_WATCHDOG_TICK_S",
        "WS_MAX_CONNECTION_DURATION_S",
        "MAX_CONCURRENT_CONNECTIONS",
        "SERVER_HOST",
        "SERVER_PORT",
    ):
        monkeypatch.delenv(name, raising=False)
