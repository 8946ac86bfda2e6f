"""Per-connection WebSocket watchdog (idle and max-duration enforcement)."""

from __future__ import annotations

import time
import asyncio
import logging
import contextlib
from typing import Any
from collections.abc import Callable

from intentstream.runtime.logging import connection_logger
from intentstream.config.websocket import (
    WS_CLOSE_IDLE_CODE,
    WS_CLOSE_IDLE_REASON,
    DEFAULT_WS_IDLE_TIMEOUT_S,
    WS_CLOSE_MAX_DURATION_CODE,
    DEFAULT_WS_WATCHDOG_TICK_S,
    WS_CLOSE_MAX_DURATION_REASON,
    DEFAULT_WS_MAX_CONNECTION_DURATION_S,
)

logger = logging.getLogger(__name__)

EXPIRED_IDLE = "idle"
EXPIRED_MAX_DURATION = "max_duration"


class WebSocketLifecycle:
    """Close a connection that stops sending audio or outlives its budget.

    A timeout of 0 disables that check. While ``is_busy_fn`` returns True both
    checks are skipped, so a connection waiting on the backend for its result
    is neither reaped for being quiet nor cut off at its duration budget.
    """

    def __init__(
        self,
        websocket: Any,
        *,
        connection_id: str = "-",
        is_busy_fn: Callable[[], bool] | None = None,
        idle_timeout_s: float | None = None,
        watchdog_tick_s: float | None = None,
        max_connection_duration_s: float | None = None,
        now_fn: Callable[[], float] | None = None,
    ) -> None:
        self._ws = websocket
        self._log = connection_logger(logger, connection_id)
        self._is_busy_fn = is_busy_fn or (lambda: False)
        self._idle_timeout_s = float(DEFAULT_WS_IDLE_TIMEOUT_S if idle_timeout_s is None else idle_timeout_s)
        self._watchdog_tick_s = float(DEFAULT_WS_WATCHDOG_TICK_S if watchdog_tick_s is None else watchdog_tick_s)
        self._max_connection_duration_s = float(
            DEFAULT_WS_MAX_CONNECTION_DURATION_S if max_connection_duration_s is None else max_connection_duration_s
        )
        self._now = now_fn or time.monotonic
        self._connection_start = self._now()
        self._last_activity = self._connection_start
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self.expired_reason: str | None = None

    @property
    def watchdog_tick_s(self) -> float:
        return self._watchdog_tick_s

    def touch(self) -> None:
        self._last_activity = self._now()

    def should_close(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> asyncio.Task:
        if self._task is None:
            self._task = asyncio.create_task(self._watchdog_loop())
        return self._task

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(Exception, asyncio.CancelledError):
            await self._task
        self._task = None

    def check(self) -> str | None:
        """Return why the connection has expired, or None while it is healthy."""
        # Finalizing has its own drain deadline; closing now would lose the result.
        if self._is_busy_fn():
            return None
        now = self._now()
        if self._max_connection_duration_s > 0 and (now - self._connection_start) >= self._max_connection_duration_s:
            return EXPIRED_MAX_DURATION
        if self._idle_timeout_s > 0 and (now - self._last_activity) >= self._idle_timeout_s:
            return EXPIRED_IDLE
        return None

    async def _expire(self, reason: str) -> None:
        self.expired_reason = reason
        self._stop_event.set()
        if reason == EXPIRED_MAX_DURATION:
            code, text = WS_CLOSE_MAX_DURATION_CODE, WS_CLOSE_MAX_DURATION_REASON
        else:
            code, text = WS_CLOSE_IDLE_CODE, WS_CLOSE_IDLE_REASON
        self._log.info("watchdog closing connection reason=%s", reason)
        with contextlib.suppress(Exception):
            await self._ws.close(code=code, reason=text)

    async def _watchdog_loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                await asyncio.sleep(self._watchdog_tick_s)
                if self._stop_event.is_set():
                    break
                reason = self.check()
                if reason is not None:
                    await self._expire(reason)
                    break
        except asyncio.CancelledError:
            return
        except Exception:
            self._log.debug("watchdog exiting due to unexpected error", exc_info=True)


__all__ = ["EXPIRED_IDLE", "EXPIRED_MAX_DURATION", "WebSocketLifecycle"]
