"""WebSocket admission control and connection ids."""

from __future__ import annotations

import uuid
import asyncio
from collections.abc import Callable


def new_connection_id() -> str:
    return uuid.uuid4().hex


class ConnectionManager:
    """Admit up to ``max_connections`` sockets, each under a fresh opaque id."""

    def __init__(self, *, max_connections: int, id_factory: Callable[[], str] | None = None) -> None:
        self._max = max(1, int(max_connections))
        self._id_factory = id_factory or new_connection_id
        self._lock = asyncio.Lock()
        self._active: set[str] = set()

    async def admit(self) -> str | None:
        """Reserve a slot before the socket is accepted; None when at capacity."""
        async with self._lock:
            if len(self._active) >= self._max:
                return None
            connection_id = self._id_factory()
            while connection_id in self._active:
                connection_id = self._id_factory()
            self._active.add(connection_id)
            return connection_id

    async def release(self, connection_id: str) -> None:
        async with self._lock:
            self._active.discard(connection_id)

    def is_active(self, connection_id: str) -> bool:
        return connection_id in self._active

    def get_connection_count(self) -> int:
        return len(self._active)

    @property
    def max_connections(self) -> int:
        return self._max


__all__ = ["ConnectionManager", "new_connection_id"]
