"""Configuration module exports (env names and defaults only)."""

from .websocket import WS_ENDPOINT_PATH, EMPTY_RESPONSE_TEXT

__all__ = [
    "EMPTY_RESPONSE_TEXT",
    "WS_ENDPOINT_PATH",
]
