"""Typed runtime state objects for dependency wiring."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from intentstream.state.settings import AppSettings
    from intentstream.handlers.registry import SessionRegistry
    from intentstream.handlers.connections import ConnectionManager
    from intentstream.handlers.websocket.bridge import BridgeFactory


@dataclass(slots=True)
class RuntimeDeps:
    connections: ConnectionManager
    registry: SessionRegistry
    bridges: BridgeFactory
    settings: AppSettings

    async def shutdown(self) -> None:
        # Connection tasks finalize their own streams; anything left here leaked.
        leaked = len(self.registry)
        if leaked:
            logger.warning("runtime shutdown with %s registered recognition stream(s)", leaked)
        for connection_id, stream in self.registry.drain():
            try:
                await stream.abort()
            except Exception:
                logger.exception("[%s] abort on shutdown failed", connection_id)


__all__ = ["RuntimeDeps"]
