"""Primary WebSocket connection handler orchestration."""

from __future__ import annotations

import logging
from typing import Any

from intentstream.errors import EstablishmentError
from intentstream.state.runtime import RuntimeDeps
from intentstream.runtime.logging import ConnectionLogger, connection_logger
from intentstream.config.websocket import (
    WS_CLOSE_BUSY_CODE,
    WS_ERROR_SERVER_AT_CAPACITY,
    WS_CLOSE_ESTABLISHMENT_FAILED_CODE,
    WS_CLOSE_ESTABLISHMENT_FAILED_REASON,
)

from .lifecycle import WebSocketLifecycle
from .bridge import BridgeState, SessionBridge
from .message_loop import LOOP_FINALIZED, run_message_loop
from .errors import safe_close, reject_connection, send_bridge_error

logger = logging.getLogger(__name__)


async def _establish(ws: Any, bridge: SessionBridge, log: ConnectionLogger) -> bool:
    try:
        await bridge.open()
    except EstablishmentError as exc:
        log.warning("%s", exc)
        await send_bridge_error(ws, exc)
        await safe_close(ws, code=WS_CLOSE_ESTABLISHMENT_FAILED_CODE, reason=WS_CLOSE_ESTABLISHMENT_FAILED_REASON)
        return False
    return True


async def handle_websocket_connection(ws: Any, runtime_deps: RuntimeDeps) -> None:
    connection_id = await runtime_deps.connections.admit()
    if connection_id is None:
        logger.warning(
            "rejecting connection: at capacity (%s active)",
            runtime_deps.connections.get_connection_count(),
        )
        await reject_connection(
            ws,
            connection_id="-",
            error_code=WS_ERROR_SERVER_AT_CAPACITY,
            message="Server cannot accept new connections. Please try again later.",
            close_code=WS_CLOSE_BUSY_CODE,
        )
        return

    log = connection_logger(logger, connection_id)
    ws_settings = runtime_deps.settings.websocket
    bridge: SessionBridge | None = None
    lifecycle: WebSocketLifecycle | None = None
    try:
        await ws.accept()
        log.info("WebSocket connection accepted. Active: %s", runtime_deps.connections.get_connection_count())

        bridge = runtime_deps.bridges.new_bridge(ws, connection_id)
        if not await _establish(ws, bridge, log):
            return

        lifecycle = WebSocketLifecycle(
            ws,
            connection_id=connection_id,
            is_busy_fn=bridge.is_busy,
            idle_timeout_s=ws_settings.idle_timeout_s,
            watchdog_tick_s=ws_settings.watchdog_tick_s,
            max_connection_duration_s=ws_settings.max_connection_duration_s,
        )
        lifecycle.start()

        loop_exit = await run_message_loop(ws, lifecycle, bridge)
        log.info("message loop ended reason=%s", loop_exit.reason)
        if loop_exit.reason != LOOP_FINALIZED:
            await bridge.on_transport_closed(loop_exit.close_code)
    except Exception:
        log.exception("connection handler failed")
    finally:
        if lifecycle is not None:
            await lifecycle.stop()

        if bridge is not None and bridge.state is not BridgeState.CLOSED:
            try:
                await bridge.on_transport_closed()
            except Exception:
                log.exception("cleanup after failure did not complete")

        await runtime_deps.connections.release(connection_id)
        log.info("WebSocket connection closed. Active: %s", runtime_deps.connections.get_connection_count())


__all__ = ["handle_websocket_connection"]
