"""Logging initialization."""

from __future__ import annotations

import logging
from typing import Any
from collections.abc import MutableMapping

from intentstream.config.logging import LOG_LEVEL, LOG_FORMAT, SHOW_GRPC_LOGS, THIRD_PARTY_LOGGERS


def configure_logging() -> None:
    if not SHOW_GRPC_LOGS:
        for name in THIRD_PARTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)


class ConnectionLogger(logging.LoggerAdapter):
    """Prefix every record with the connection id it belongs to."""

    def __init__(self, logger: logging.Logger, connection_id: str) -> None:
        super().__init__(logger, {"connection_id": connection_id})
        self.connection_id = connection_id

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.connection_id}] {msg}", kwargs


def connection_logger(logger: logging.Logger, connection_id: str) -> ConnectionLogger:
    return ConnectionLogger(logger, connection_id)


__all__ = ["ConnectionLogger", "configure_logging", "connection_logger"]
