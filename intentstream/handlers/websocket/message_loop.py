"""Receive loop for the binary audio WebSocket protocol."""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from dataclasses import dataclass

from intentstream.runtime.logging import connection_logger
from intentstream.config.websocket import WS_ERROR_UNSUPPORTED_FRAME

from .errors import send_error
from .bridge import SessionBridge
from .lifecycle import WebSocketLifecycle

logger = logging.getLogger(__name__)

LOOP_FINALIZED = "finalized"
LOOP_DISCONNECTED = "disconnected"
LOOP_EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class LoopExit:
    reason: str
    close_code: int | None = None


async def _recv_with_watchdog(ws: Any, lifecycle: WebSocketLifecycle) -> tuple[dict[str, Any] | None, bool]:
    try:
        message = await asyncio.wait_for(
            ws.receive(),
            timeout=lifecycle.watchdog_tick_s * 2,
        )
        return message, False
    except TimeoutError:
        return None, lifecycle.should_close()


async def run_message_loop(ws: Any, lifecycle: WebSocketLifecycle, bridge: SessionBridge) -> LoopExit:
    """Feed binary frames to the bridge in arrival order until it finalizes or the socket goes away."""
    log = connection_logger(logger, bridge.connection_id)
    while True:
        if lifecycle.should_close():
            return LoopExit(LOOP_EXPIRED)

        message, should_exit = await _recv_with_watchdog(ws, lifecycle)
        if should_exit:
            return LoopExit(LOOP_EXPIRED)
        if message is None:
            continue

        if message.get("type") == "websocket.disconnect":
            return LoopExit(LOOP_DISCONNECTED, message.get("code"))

        lifecycle.touch()

        data = message.get("bytes")
        if data is None:
            log.debug("ignoring text frame")
            await send_error(
                ws,
                connection_id=bridge.connection_id,
                error_code=WS_ERROR_UNSUPPORTED_FRAME,
                message="only binary audio frames are accepted",
                reason_code="text_frame",
            )
            continue

        if await bridge.handle_frame(data):
            return LoopExit(LOOP_FINALIZED)


__all__ = ["LOOP_DISCONNECTED", "LOOP_EXPIRED", "LOOP_FINALIZED", "LoopExit", "run_message_loop"]
