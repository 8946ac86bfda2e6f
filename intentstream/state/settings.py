"""Runtime settings (dataclasses only)."""

from __future__ import annotations

from pathlib import Path
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ServerSettings:
    host: str
    port: int


@dataclass(frozen=True, slots=True)
class LimitsSettings:
    max_concurrent_connections: int


@dataclass(frozen=True, slots=True)
class WebSocketSettings:
    idle_timeout_s: float
    watchdog_tick_s: float
    max_connection_duration_s: float
    max_frame_bytes: int


@dataclass(frozen=True, slots=True)
class DialogflowSettings:
    credentials_path: Path | None
    project_id: str
    language_code: str
    sample_rate_hz: int
    api_endpoint: str


@dataclass(frozen=True, slots=True)
class BridgeSettings:
    end_sentinel: bytes
    drain_timeout_s: float
    close_timeout_s: float
    disconnect_policy: str
    max_frame_bytes: int


@dataclass(frozen=True, slots=True)
class AppSettings:
    server: ServerSettings
    limits: LimitsSettings
    websocket: WebSocketSettings
    dialogflow: DialogflowSettings
    bridge: BridgeSettings


__all__ = [
    "AppSettings",
    "BridgeSettings",
    "DialogflowSettings",
    "LimitsSettings",
    "ServerSettings",
    "WebSocketSettings",
]
