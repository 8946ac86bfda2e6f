"""Environment parsing for runtime settings."""

from __future__ import annotations

import os
from pathlib import Path

from intentstream.config.server import ENV_SERVER_HOST, ENV_SERVER_PORT, DEFAULT_SERVER_HOST, DEFAULT_SERVER_PORT
from intentstream.state.settings import (
    AppSettings,
    BridgeSettings,
    LimitsSettings,
    ServerSettings,
    WebSocketSettings,
    DialogflowSettings,
)
from intentstream.config.limits import ENV_MAX_CONCURRENT_CONNECTIONS, DEFAULT_MAX_CONCURRENT_CONNECTIONS
from intentstream.config.websocket import (
    ENV_WS_IDLE_TIMEOUT_S,
    ENV_WS_MAX_FRAME_BYTES,
    ENV_WS_WATCHDOG_TICK_S,
    DEFAULT_WS_IDLE_TIMEOUT_S,
    DEFAULT_WS_MAX_FRAME_BYTES,
    DEFAULT_WS_WATCHDOG_TICK_S,
    ENV_WS_MAX_CONNECTION_DURATION_S,
    DEFAULT_WS_MAX_CONNECTION_DURATION_S,
)
from intentstream.config.bridge import (
    DISCONNECT_POLICIES,
    END_SENTINEL_LENGTH,
    ENV_BRIDGE_END_SENTINEL,
    ENV_BRIDGE_CLOSE_TIMEOUT_S,
    ENV_BRIDGE_DRAIN_TIMEOUT_S,
    DEFAULT_BRIDGE_END_SENTINEL,
    ENV_BRIDGE_DISCONNECT_POLICY,
    DEFAULT_BRIDGE_CLOSE_TIMEOUT_S,
    DEFAULT_BRIDGE_DRAIN_TIMEOUT_S,
    DEFAULT_BRIDGE_DISCONNECT_POLICY,
)
from intentstream.config.dialogflow import (
    ENV_DIALOGFLOW_PROJECT_ID,
    ENV_DIALOGFLOW_CREDENTIALS,
    ENV_DIALOGFLOW_API_ENDPOINT,
    DEFAULT_DIALOGFLOW_PROJECT_ID,
    ENV_DIALOGFLOW_LANGUAGE_CODE,
    ENV_DIALOGFLOW_SAMPLE_RATE_HZ,
    SUPPORTED_SAMPLE_RATES_HZ,
    DEFAULT_DIALOGFLOW_CREDENTIALS,
    DEFAULT_DIALOGFLOW_API_ENDPOINT,
    DEFAULT_DIALOGFLOW_LANGUAGE_CODE,
    DEFAULT_DIALOGFLOW_SAMPLE_RATE_HZ,
)


def _str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except Exception:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except Exception:
        return default


def _path_env(name: str, default: Path | None) -> Path | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = raw.strip()
    # Explicitly empty: fall back to application default credentials.
    return Path(v).expanduser() if v else None


def _validate_sentinel(raw: str) -> bytes:
    sentinel = raw.encode("utf-8")
    if len(sentinel) != END_SENTINEL_LENGTH:
        raise ValueError(f"{ENV_BRIDGE_END_SENTINEL} must encode to exactly {END_SENTINEL_LENGTH} bytes, got {raw!r}")
    return sentinel


def _validate_policy(raw: str) -> str:
    policy = raw.strip().lower()
    if policy not in DISCONNECT_POLICIES:
        raise ValueError(f"{ENV_BRIDGE_DISCONNECT_POLICY} must be one of {', '.join(DISCONNECT_POLICIES)}, got {raw!r}")
    return policy


def _load_server_settings() -> ServerSettings:
    return ServerSettings(
        host=_str_env(ENV_SERVER_HOST, DEFAULT_SERVER_HOST),
        port=_int_env(ENV_SERVER_PORT, DEFAULT_SERVER_PORT),
    )


def _load_limits_settings() -> LimitsSettings:
    max_connections = _int_env(ENV_MAX_CONCURRENT_CONNECTIONS, DEFAULT_MAX_CONCURRENT_CONNECTIONS)
    return LimitsSettings(max_concurrent_connections=max(1, max_connections))


def _load_websocket_settings() -> WebSocketSettings:
    idle_timeout = _float_env(ENV_WS_IDLE_TIMEOUT_S, DEFAULT_WS_IDLE_TIMEOUT_S)
    watchdog_tick = _float_env(ENV_WS_WATCHDOG_TICK_S, DEFAULT_WS_WATCHDOG_TICK_S)
    max_duration = _float_env(ENV_WS_MAX_CONNECTION_DURATION_S, DEFAULT_WS_MAX_CONNECTION_DURATION_S)
    max_frame_bytes = _int_env(ENV_WS_MAX_FRAME_BYTES, DEFAULT_WS_MAX_FRAME_BYTES)
    if watchdog_tick <= 0:
        watchdog_tick = DEFAULT_WS_WATCHDOG_TICK_S
    if max_frame_bytes <= 0:
        max_frame_bytes = DEFAULT_WS_MAX_FRAME_BYTES

    return WebSocketSettings(
        idle_timeout_s=idle_timeout,
        watchdog_tick_s=watchdog_tick,
        max_connection_duration_s=max_duration,
        max_frame_bytes=max_frame_bytes,
    )


def _load_dialogflow_settings() -> DialogflowSettings:
    sample_rate = _int_env(ENV_DIALOGFLOW_SAMPLE_RATE_HZ, DEFAULT_DIALOGFLOW_SAMPLE_RATE_HZ)
    if sample_rate not in SUPPORTED_SAMPLE_RATES_HZ:
        sample_rate = DEFAULT_DIALOGFLOW_SAMPLE_RATE_HZ

    return DialogflowSettings(
        credentials_path=_path_env(ENV_DIALOGFLOW_CREDENTIALS, DEFAULT_DIALOGFLOW_CREDENTIALS),
        project_id=_str_env(ENV_DIALOGFLOW_PROJECT_ID, DEFAULT_DIALOGFLOW_PROJECT_ID),
        language_code=_str_env(ENV_DIALOGFLOW_LANGUAGE_CODE, DEFAULT_DIALOGFLOW_LANGUAGE_CODE),
        sample_rate_hz=sample_rate,
        api_endpoint=_str_env(ENV_DIALOGFLOW_API_ENDPOINT, DEFAULT_DIALOGFLOW_API_ENDPOINT),
    )


def _load_bridge_settings(websocket: WebSocketSettings) -> BridgeSettings:
    sentinel_raw = os.getenv(ENV_BRIDGE_END_SENTINEL)
    if sentinel_raw is None or not sentinel_raw:
        sentinel = DEFAULT_BRIDGE_END_SENTINEL
    else:
        sentinel = _validate_sentinel(sentinel_raw)

    drain_timeout = _float_env(ENV_BRIDGE_DRAIN_TIMEOUT_S, DEFAULT_BRIDGE_DRAIN_TIMEOUT_S)
    if drain_timeout <= 0:
        drain_timeout = DEFAULT_BRIDGE_DRAIN_TIMEOUT_S
    close_timeout = _float_env(ENV_BRIDGE_CLOSE_TIMEOUT_S, DEFAULT_BRIDGE_CLOSE_TIMEOUT_S)
    if close_timeout <= 0:
        close_timeout = DEFAULT_BRIDGE_CLOSE_TIMEOUT_S

    return BridgeSettings(
        end_sentinel=sentinel,
        drain_timeout_s=drain_timeout,
        close_timeout_s=close_timeout,
        disconnect_policy=_validate_policy(_str_env(ENV_BRIDGE_DISCONNECT_POLICY, DEFAULT_BRIDGE_DISCONNECT_POLICY)),
        max_frame_bytes=websocket.max_frame_bytes,
    )


def load_settings() -> AppSettings:
    websocket = _load_websocket_settings()
    return AppSettings(
        server=_load_server_settings(),
        limits=_load_limits_settings(),
        websocket=websocket,
        dialogflow=_load_dialogflow_settings(),
        bridge=_load_bridge_settings(websocket),
    )


__all__ = ["load_settings"]
