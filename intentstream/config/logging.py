"""Logging configuration."""

from __future__ import annotations

import os

LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# gRPC and google-auth are chatty at DEBUG; keep them quiet unless asked.
SHOW_GRPC_LOGS = (os.getenv("SHOW_GRPC_LOGS") or "").strip().lower() in {"1", "true", "yes"}
THIRD_PARTY_LOGGERS = ("grpc", "google.auth", "google.api_core", "urllib3")

__all__ = ["LOG_FORMAT", "LOG_LEVEL", "SHOW_GRPC_LOGS", "THIRD_PARTY_LOGGERS"]
