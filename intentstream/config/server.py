"""HTTP server bind configuration (env names and defaults only)."""

from __future__ import annotations

ENV_SERVER_HOST = "SERVER_HOST"
ENV_SERVER_PORT = "SERVER_PORT"

DEFAULT_SERVER_HOST = "0.0.0.0"  # noqa: S104
DEFAULT_SERVER_PORT = 8000

__all__ = ["DEFAULT_SERVER_HOST", "DEFAULT_SERVER_PORT", "ENV_SERVER_HOST", "ENV_SERVER_PORT"]
