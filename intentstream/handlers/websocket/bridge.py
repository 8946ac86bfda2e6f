"""Per-connection bridge between a WebSocket and one recognition stream.

Lifecycle::

    INITIALIZING --open()--> STREAMING --sentinel/disconnect--> FINALIZING --> CLOSED

Any failure during INITIALIZING goes straight to CLOSED. All methods are called
from the connection's own task, one at a time, so the bridge keeps no lock of
its own; the only shared structure is the SessionRegistry.
"""

from __future__ import annotations

import enum
import uuid
import asyncio
import logging
from typing import Any, Protocol
from dataclasses import dataclass
from collections.abc import Callable

from intentstream.state.settings import BridgeSettings
from intentstream.handlers.registry import SessionRegistry
from intentstream.runtime.logging import connection_logger
from intentstream.recognition.result import serialize_result
from intentstream.config.websocket import WS_CLOSE_NORMAL_CODE, WS_CLOSE_NORMAL_REASON
from intentstream.config.bridge import DISCONNECT_POLICY_DRAIN, DISCONNECT_POLICY_ABANDON
from intentstream.recognition import AudioProfile, RecognitionResult, RecognitionStream, RecognitionBackend
from intentstream.errors import (
    BridgeError,
    LateFrameError,
    TransportError,
    BackendStreamError,
    EstablishmentError,
    FrameTooLargeError,
    DuplicateSessionError,
    SessionNotFoundError,
)

from .errors import safe_close, safe_send_text, send_bridge_error

logger = logging.getLogger(__name__)


class BridgeState(enum.Enum):
    INITIALIZING = "initializing"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    CLOSED = "closed"


class BridgeTransport(Protocol):
    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


@dataclass(frozen=True, slots=True)
class FinalizeOutcome:
    trigger: str
    result: RecognitionResult | None
    responses: int
    timed_out: bool
    error: BackendStreamError | None
    reported: bool


def new_session_id() -> str:
    return str(uuid.uuid4())


class SessionBridge:
    def __init__(
        self,
        transport: BridgeTransport | Any,
        *,
        connection_id: str,
        registry: SessionRegistry,
        backend: RecognitionBackend,
        settings: BridgeSettings,
        profile: AudioProfile,
        session_id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._transport = transport
        self.connection_id = connection_id
        self._registry = registry
        self._backend = backend
        self._settings = settings
        self._profile = profile
        self._session_id_factory = session_id_factory or new_session_id
        self._log = connection_logger(logger, connection_id)

        self._state = BridgeState.INITIALIZING
        self._stream: RecognitionStream | None = None
        self._outcome: FinalizeOutcome | None = None
        self.frames_forwarded = 0

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def outcome(self) -> FinalizeOutcome | None:
        return self._outcome

    def is_busy(self) -> bool:
        return self._state is BridgeState.FINALIZING

    async def open(self) -> None:
        """Open and register the recognition stream; raise EstablishmentError on failure."""
        if self._state is not BridgeState.INITIALIZING:
            raise EstablishmentError(self.connection_id, f"cannot open bridge in state {self._state.value}")

        session_id = self._session_id_factory()
        self._log.info("opening recognition stream session=%s", session_id)
        try:
            stream = await self._backend.open_stream(session_id, self._profile, connection_id=self.connection_id)
        except EstablishmentError:
            self._state = BridgeState.CLOSED
            raise
        except Exception as exc:
            self._state = BridgeState.CLOSED
            raise EstablishmentError(self.connection_id, f"backend open failed: {exc}") from exc

        try:
            self._registry.put(self.connection_id, stream)
        except DuplicateSessionError as exc:
            self._state = BridgeState.CLOSED
            await self._release(stream, abort=True)
            raise EstablishmentError(self.connection_id, str(exc)) from exc

        self._stream = stream
        self._state = BridgeState.STREAMING
        self._log.info("recognition stream ready session=%s", session_id)

    async def handle_frame(self, data: bytes) -> bool:
        """Forward one binary frame. Return True once the bridge has finalized."""
        if self._state is not BridgeState.STREAMING:
            self._drop_late_frame(len(data), f"bridge is {self._state.value}")
            return self._state is BridgeState.CLOSED

        try:
            stream = self._registry.get(self.connection_id)
        except SessionNotFoundError:
            self._drop_late_frame(len(data), "no registered stream")
            return False

        if len(data) > self._settings.max_frame_bytes:
            exc = FrameTooLargeError(
                self.connection_id,
                f"frame of {len(data)} bytes exceeds {self._settings.max_frame_bytes}",
                size=len(data),
                limit=self._settings.max_frame_bytes,
            )
            self._log.warning("%s", exc)
            await send_bridge_error(self._transport, exc, details={"size": exc.size, "limit": exc.limit})
            return False

        if data == self._settings.end_sentinel:
            self._log.info("end sentinel received after %s frame(s)", self.frames_forwarded)
            await self.finalize(trigger="sentinel")
            return True

        try:
            await stream.send_audio(data)
        except BackendStreamError as exc:
            self._log.info("audio send failed; finalizing with what was received")
            await self.finalize(trigger="backend_error", cause=exc)
            return True

        self.frames_forwarded += 1
        return False

    def _drop_late_frame(self, size: int, why: str) -> None:
        exc = LateFrameError(self.connection_id, f"dropped {size}-byte frame: {why}")
        self._log.warning("%s", exc)

    async def finalize(
        self,
        *,
        report: bool = True,
        trigger: str = "sentinel",
        cause: BackendStreamError | None = None,
    ) -> FinalizeOutcome | None:
        """Close the send half, drain responses, report the last one and close the socket.

        A backend failure is reported as an error frame ahead of the result.
        Safe to call more than once; later calls return the first outcome.
        """
        if self._state in (BridgeState.FINALIZING, BridgeState.CLOSED):
            return self._outcome

        self._state = BridgeState.FINALIZING
        stream = self._stream
        result: RecognitionResult | None = None
        responses = 0
        timed_out = False
        error: BackendStreamError | None = cause

        try:
            if stream is not None:
                try:
                    await stream.close_send()
                except BackendStreamError as exc:
                    error = error or exc
                result, responses, timed_out, drain_error = await self._drain(stream)
                error = error or drain_error
        finally:
            self._stream = None
            self._registry.remove(self.connection_id)
            if stream is not None:
                await self._release(stream, abort=timed_out)

        if timed_out:
            self._log.warning(
                "drain deadline of %.1fs expired after %s response(s)",
                self._settings.drain_timeout_s,
                responses,
            )
        if error is not None:
            self._log.warning("%s", error)

        reported = False
        if report:
            if error is not None:
                await send_bridge_error(self._transport, error)
            reported = await safe_send_text(self._transport, serialize_result(result))
            await safe_close(self._transport, code=WS_CLOSE_NORMAL_CODE, reason=WS_CLOSE_NORMAL_REASON)

        self._state = BridgeState.CLOSED
        self._outcome = FinalizeOutcome(
            trigger=trigger,
            result=result,
            responses=responses,
            timed_out=timed_out,
            error=error,
            reported=reported,
        )
        self._log.info(
            "finalized trigger=%s responses=%s reported=%s timed_out=%s",
            trigger,
            responses,
            reported,
            timed_out,
        )
        return self._outcome

    async def _drain(
        self, stream: RecognitionStream
    ) -> tuple[RecognitionResult | None, int, bool, BackendStreamError | None]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._settings.drain_timeout_s
        last: RecognitionResult | None = None
        count = 0
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return last, count, True, None
            try:
                item = await stream.receive(remaining)
            except TimeoutError:
                return last, count, True, None
            except BackendStreamError as exc:
                return last, count, False, exc
            if item is None:
                return last, count, False, None
            count += 1
            last = item
            self._log.info(
                "response #%s transcript=%r intent=%r confidence=%.3f fulfillment=%r final=%s",
                count,
                item.transcript,
                item.intent_display_name,
                item.intent_detection_confidence,
                item.fulfillment_text,
                item.is_final,
            )

    async def on_transport_closed(self, code: int | None = None) -> FinalizeOutcome | None:
        """Handle a client disconnect according to the configured policy."""
        if self._state is BridgeState.CLOSED:
            self._registry.remove(self.connection_id)
            return self._outcome
        if self._state is BridgeState.FINALIZING:
            return self._outcome

        exc = TransportError(self.connection_id, f"client disconnected before end sentinel (code={code})")
        self._log.warning("%s; policy=%s", exc, self._settings.disconnect_policy)

        policy = self._settings.disconnect_policy
        if policy == DISCONNECT_POLICY_ABANDON:
            await self.abandon()
            return self._outcome
        if policy == DISCONNECT_POLICY_DRAIN:
            return await self.finalize(report=False, trigger="disconnect")
        return await self.finalize(report=True, trigger="disconnect")

    async def abandon(self) -> None:
        """Drop the recognition stream without draining it."""
        if self._state is BridgeState.CLOSED:
            return
        self._state = BridgeState.FINALIZING
        stream = self._stream
        self._stream = None
        self._registry.remove(self.connection_id)
        if stream is not None:
            await self._release(stream, abort=True)
        self._state = BridgeState.CLOSED
        self._log.info("recognition stream abandoned")

    async def _release(self, stream: RecognitionStream, *, abort: bool) -> None:
        try:
            if abort:
                await stream.abort()
            await stream.aclose(self._settings.close_timeout_s)
        except BridgeError as exc:
            self._log.warning("stream release failed: %s", exc)
        except Exception:
            self._log.exception("stream release failed")


@dataclass(slots=True)
class BridgeFactory:
    registry: SessionRegistry
    backend: RecognitionBackend
    settings: BridgeSettings
    profile: AudioProfile

    def new_bridge(self, transport: BridgeTransport | Any, connection_id: str) -> SessionBridge:
        return SessionBridge(
            transport,
            connection_id=connection_id,
            registry=self.registry,
            backend=self.backend,
            settings=self.settings,
            profile=self.profile,
        )


__all__ = ["BridgeFactory", "BridgeState", "BridgeTransport", "FinalizeOutcome", "SessionBridge"]
