"""WebSocket protocol configuration and constants."""

from __future__ import annotations

WS_ENDPOINT_PATH = "/intent"

# Sent instead of a JSON result when the backend produced no response.
EMPTY_RESPONSE_TEXT = "Response is Empty"

# Error envelope keys
WS_KEY_TYPE = "type"
WS_KEY_CONNECTION_ID = "connection_id"
WS_KEY_PAYLOAD = "payload"

# Close codes
WS_CLOSE_NORMAL_CODE = 1000
WS_CLOSE_ESTABLISHMENT_FAILED_CODE = 1011
WS_CLOSE_IDLE_CODE = 4000
WS_CLOSE_BUSY_CODE = 4002
WS_CLOSE_MAX_DURATION_CODE = 4003

WS_CLOSE_NORMAL_REASON = "recognition complete"
WS_CLOSE_IDLE_REASON = "idle timeout"
WS_CLOSE_MAX_DURATION_REASON = "max connection duration"
WS_CLOSE_ESTABLISHMENT_FAILED_REASON = "recognition unavailable"

ENV_WS_IDLE_TIMEOUT_S = "WS_IDLE_TIMEOUT_S"
ENV_WS_WATCHDOG_TICK_S = "WS_WATCHDOG_TICK_S"
ENV_WS_MAX_CONNECTION_DURATION_S = "WS_MAX_CONNECTION_DURATION_S"
ENV_WS_MAX_FRAME_BYTES = "WS_MAX_FRAME_BYTES"

DEFAULT_WS_IDLE_TIMEOUT_S = 150.0
DEFAULT_WS_WATCHDOG_TICK_S = 5.0
DEFAULT_WS_MAX_CONNECTION_DURATION_S = 3600.0
# Browsers send whole recorder blobs; 4 MiB in both directions.
DEFAULT_WS_MAX_FRAME_BYTES = 4 * 1024 * 1024

# Errors (payload.code values)
WS_ERROR_SERVER_AT_CAPACITY = "server_at_capacity"
WS_ERROR_ESTABLISHMENT_FAILED = "establishment_failed"
WS_ERROR_FRAME_TOO_LARGE = "frame_too_large"
WS_ERROR_UNSUPPORTED_FRAME = "unsupported_frame"
WS_ERROR_BACKEND_STREAM = "backend_stream_error"
WS_ERROR_INTERNAL = "internal_error"

__all__ = [
    "DEFAULT_WS_IDLE_TIMEOUT_S",
    "DEFAULT_WS_MAX_CONNECTION_DURATION_S",
    "DEFAULT_WS_MAX_FRAME_BYTES",
    "DEFAULT_WS_WATCHDOG_TICK_S",
    "EMPTY_RESPONSE_TEXT",
    "ENV_WS_IDLE_TIMEOUT_S",
    "ENV_WS_MAX_CONNECTION_DURATION_S",
    "ENV_WS_MAX_FRAME_BYTES",
    "ENV_WS_WATCHDOG_TICK_S",
    "WS_CLOSE_BUSY_CODE",
    "WS_CLOSE_ESTABLISHMENT_FAILED_CODE",
    "WS_CLOSE_ESTABLISHMENT_FAILED_REASON",
    "WS_CLOSE_IDLE_CODE",
    "WS_CLOSE_IDLE_REASON",
    "WS_CLOSE_MAX_DURATION_CODE",
    "WS_CLOSE_MAX_DURATION_REASON",
    "WS_CLOSE_NORMAL_CODE",
    "WS_CLOSE_NORMAL_REASON",
    "WS_ENDPOINT_PATH",
    "WS_ERROR_BACKEND_STREAM",
    "WS_ERROR_ESTABLISHMENT_FAILED",
    "WS_ERROR_FRAME_TOO_LARGE",
    "WS_ERROR_INTERNAL",
    "WS_ERROR_SERVER_AT_CAPACITY",
    "WS_ERROR_UNSUPPORTED_FRAME",
    "WS_KEY_CONNECTION_ID",
    "WS_KEY_PAYLOAD",
    "WS_KEY_TYPE",
]
