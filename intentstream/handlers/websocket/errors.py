"""Send helpers and the error envelope for the WebSocket protocol."""

from __future__ import annotations

import logging
import contextlib
from typing import Any

import orjson
from fastapi import WebSocketDisconnect

from intentstream.errors import BridgeError
from intentstream.config.websocket import (
    WS_KEY_TYPE,
    WS_ERROR_INTERNAL,
    WS_KEY_PAYLOAD,
    WS_KEY_CONNECTION_ID,
    WS_ERROR_BACKEND_STREAM,
    WS_ERROR_FRAME_TOO_LARGE,
    WS_ERROR_ESTABLISHMENT_FAILED,
)

logger = logging.getLogger(__name__)

_ERROR_CODES: dict[str, str] = {
    "establishment_failed": WS_ERROR_ESTABLISHMENT_FAILED,
    "frame_too_large": WS_ERROR_FRAME_TOO_LARGE,
    "backend_stream_error": WS_ERROR_BACKEND_STREAM,
}


def error_code_for(exc: BridgeError) -> str:
    return _ERROR_CODES.get(exc.kind, WS_ERROR_INTERNAL)


def build_error_payload(
    code: str,
    message: str,
    *,
    details: dict[str, Any] | None = None,
    reason_code: str | None = None,
) -> dict[str, Any]:
    payload_details = dict(details or {})
    if reason_code:
        payload_details.setdefault("reason_code", reason_code)
    return {"code": code, "message": message, "details": payload_details}


def build_error_envelope(connection_id: str, payload: dict[str, Any]) -> dict[str, Any]:
    return {
        WS_KEY_TYPE: "error",
        WS_KEY_CONNECTION_ID: connection_id,
        WS_KEY_PAYLOAD: payload,
    }


async def safe_send_text(ws: Any, text: str) -> bool:
    try:
        await ws.send_text(text)
    except WebSocketDisconnect:
        return False
    except Exception:
        logger.debug("WebSocket send failed", exc_info=True)
        return False
    return True


async def safe_close(ws: Any, *, code: int, reason: str = "") -> bool:
    try:
        await ws.close(code=code, reason=reason)
    except Exception:
        logger.debug("WebSocket close failed", exc_info=True)
        return False
    return True


async def send_error(
    ws: Any,
    *,
    connection_id: str,
    error_code: str,
    message: str,
    reason_code: str | None = None,
    details: dict[str, Any] | None = None,
) -> bool:
    payload = build_error_payload(error_code, message, details=details, reason_code=reason_code)
    envelope = build_error_envelope(connection_id, payload)
    return await safe_send_text(ws, orjson.dumps(envelope).decode("utf-8"))


async def send_bridge_error(ws: Any, exc: BridgeError, *, details: dict[str, Any] | None = None) -> bool:
    return await send_error(
        ws,
        connection_id=exc.connection_id,
        error_code=error_code_for(exc),
        message=exc.detail or exc.kind,
        reason_code=exc.kind,
        details=details,
    )


async def reject_connection(
    ws: Any,
    *,
    connection_id: str,
    error_code: str,
    message: str,
    close_code: int,
) -> None:
    # Accept so we can send a structured error, then close.
    try:
        await ws.accept()
    except Exception:
        return
    await send_error(
        ws,
        connection_id=connection_id,
        error_code=error_code,
        message=message,
        reason_code=error_code,
    )
    with contextlib.suppress(Exception):
        await ws.close(code=close_code, reason=message)


__all__ = [
    "build_error_envelope",
    "build_error_payload",
    "error_code_for",
    "reject_connection",
    "safe_close",
    "safe_send_text",
    "send_bridge_error",
    "send_error",
]
