from __future__ import annotations

import json
import uuid

import pytest

from intentstream.handlers.registry import SessionRegistry
from intentstream.recognition.result import serialize_result
from intentstream.config.websocket import EMPTY_RESPONSE_TEXT, WS_ERROR_BACKEND_STREAM, WS_ERROR_FRAME_TOO_LARGE
from intentstream.handlers.websocket.bridge import BridgeState, SessionBridge, BridgeFactory
from intentstream.errors import EstablishmentError, DuplicateSessionError, SessionNotFoundError

from tests.fakes import (
    PROFILE,
    SENTINEL,
    FakeBackend,
    FakeStream,
    FakeWebSocket,
    make_result,
    audio_chunks,
    make_bridge_settings,
)


def _bridge(
    ws: FakeWebSocket,
    registry: SessionRegistry,
    backend: FakeBackend,
    *,
    connection_id: str = "conn-1",
    **settings_overrides,
) -> SessionBridge:
    factory = BridgeFactory(
        registry=registry,
        backend=backend,
        settings=make_bridge_settings(**settings_overrides),
        profile=PROFILE,
    )
    return factory.new_bridge(ws, connection_id)


@pytest.mark.asyncio
async def test_open_registers_stream_with_fresh_session_id(registry: SessionRegistry, backend: FakeBackend) -> None:
    first = _bridge(FakeWebSocket(), registry, backend, connection_id="c1")
    second = _bridge(FakeWebSocket(), registry, backend, connection_id="c2")

    await first.open()
    await second.open()

    assert first.state is BridgeState.STREAMING
    assert registry.get("c1") is backend.streams[0]
    assert registry.get("c2") is backend.streams[1]

    (sid1, profile1, conn1), (sid2, _, conn2) = backend.opened
    assert sid1 != sid2
    uuid.UUID(sid1)
    assert profile1 == PROFILE
    assert (conn1, conn2) == ("c1", "c2")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "failure",
    [
        EstablishmentError("conn-1", "bad credential"),
        PermissionError("credentials file unreadable"),
        ConnectionError("backend unreachable"),
    ],
)
async def test_open_failure_leaves_no_registry_entry(registry: SessionRegistry, failure: BaseException) -> None:
    backend = FakeBackend(fail_open=failure)
    bridge = _bridge(FakeWebSocket(), registry, backend)

    with pytest.raises(EstablishmentError) as exc:
        await bridge.open()

    assert exc.value.connection_id == "conn-1"
    assert bridge.state is BridgeState.CLOSED
    assert len(registry) == 0
    with pytest.raises(SessionNotFoundError):
        registry.get("conn-1")


@pytest.mark.asyncio
async def test_open_with_existing_registration_aborts_new_stream(
    registry: SessionRegistry, backend: FakeBackend
) -> None:
    existing = FakeStream("old", connection_id="conn-1")
    registry.put("conn-1", existing)
    bridge = _bridge(FakeWebSocket(), registry, backend)

    with pytest.raises(EstablishmentError) as exc:
        await bridge.open()

    assert isinstance(exc.value.__cause__, DuplicateSessionError)
    assert backend.streams[0].aborted
    assert registry.get("conn-1") is existing


@pytest.mark.asyncio
async def test_sentinel_reports_only_final_response(registry: SessionRegistry) -> None:
    responses = [make_result(1), make_result(2), make_result(3), make_result(4, final=True)]
    backend = FakeBackend(responses=responses)
    ws = FakeWebSocket()
    bridge = _bridge(ws, registry, backend)
    await bridge.open()

    chunks = audio_chunks(10)
    for chunk in chunks:
        assert await bridge.handle_frame(chunk) is False
    assert await bridge.handle_frame(SENTINEL) is True

    stream = backend.streams[0]
    assert stream.sent == chunks
    assert SENTINEL not in stream.sent
    assert stream.send_closed and stream.closed

    assert ws.sent_text == [serialize_result(responses[-1])]
    payload = json.loads(ws.sent_text[0])
    assert payload["transcript"] == "turn on the lights 4"
    assert payload["intentDisplayName"] == "lights.on"
    assert payload["queryText"] == "turn on the lights 4"
    assert payload["intentDetectionConfidence"] == pytest.approx(0.75)
    assert payload["fulfillmentText"] == "Turning on the lights."
    assert payload["response"]["responseId"] == "r-4"

    assert ws.closed and ws.close_code == 1000
    assert bridge.state is BridgeState.CLOSED
    assert bridge.outcome is not None
    assert bridge.outcome.responses == 4
    assert bridge.outcome.trigger == "sentinel"
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_no_responses_sends_empty_sentinel_text(registry: SessionRegistry, backend: FakeBackend) -> None:
    ws = FakeWebSocket()
    bridge = _bridge(ws, registry, backend)
    await bridge.open()

    await bridge.handle_frame(b"\x00\x01" * 160)
    await bridge.handle_frame(SENTINEL)

    assert ws.sent_text == [EMPTY_RESPONSE_TEXT]
    assert ws.closed


@pytest.mark.asyncio
async def test_same_responses_serialize_identically(registry: SessionRegistry) -> None:
    outputs = []
    for attempt in range(2):
        responses = [make_result(1), make_result(2, final=True)]
        ws = FakeWebSocket()
        bridge = _bridge(ws, registry, FakeBackend(responses=responses), connection_id=f"c{attempt}")
        await bridge.open()
        await bridge.handle_frame(SENTINEL)
        outputs.append(ws.sent_text)

    assert outputs[0] == outputs[1]


@pytest.mark.asyncio
async def test_only_exact_sentinel_finalizes(registry: SessionRegistry, backend: FakeBackend) -> None:
    ws = FakeWebSocket()
    bridge = _bridge(ws, registry, backend)
    await bridge.open()

    assert await bridge.handle_frame(b"abc") is False
    assert await bridge.handle_frame(SENTINEL + b"\x00") is False

    assert backend.streams[0].sent == [b"abc", SENTINEL + b"\x00"]
    assert bridge.state is BridgeState.STREAMING


@pytest.mark.asyncio
async def test_frame_before_open_is_dropped(registry: SessionRegistry, backend: FakeBackend) -> None:
    ws = FakeWebSocket()
    bridge = _bridge(ws, registry, backend, connection_id="never-registered")

    assert await bridge.handle_frame(b"\x00" * 320) is False

    assert backend.opened == []
    assert len(registry) == 0
    assert ws.sent_text == []


@pytest.mark.asyncio
async def test_frame_without_registry_entry_is_dropped(registry: SessionRegistry, backend: FakeBackend) -> None:
    ws = FakeWebSocket()
    bridge = _bridge(ws, registry, backend)
    await bridge.open()
    registry.remove("conn-1")

    assert await bridge.handle_frame(b"\x00" * 320) is False

    assert backend.streams[0].sent == []
    assert len(registry) == 0
    assert bridge.state is BridgeState.STREAMING


@pytest.mark.asyncio
async def test_frame_after_finalize_is_dropped(registry: SessionRegistry, backend: FakeBackend) -> None:
    ws = FakeWebSocket()
    bridge = _bridge(ws, registry, backend)
    await bridge.open()
    await bridge.handle_frame(SENTINEL)

    assert await bridge.handle_frame(b"\x00" * 320) is True
    assert backend.streams[0].sent == []
    assert ws.sent_text == [EMPTY_RESPONSE_TEXT]


@pytest.mark.asyncio
async def test_oversized_frame_is_reported_and_not_forwarded(
    registry: SessionRegistry, backend: FakeBackend
) -> None:
    ws = FakeWebSocket()
    bridge = _bridge(ws, registry, backend, max_frame_bytes=8)
    await bridge.open()

    assert await bridge.handle_frame(b"\x00" * 9) is False
    assert await bridge.handle_frame(b"\x01" * 8) is False

    assert backend.streams[0].sent == [b"\x01" * 8]
    error = json.loads(ws.sent_text[0])
    assert error["type"] == "error"
    assert error["connection_id"] == "conn-1"
    assert error["payload"]["code"] == WS_ERROR_FRAME_TOO_LARGE
    assert error["payload"]["details"]["size"] == 9
    assert bridge.state is BridgeState.STREAMING


@pytest.mark.asyncio
async def test_abrupt_disconnect_still_finalizes(registry: SessionRegistry) -> None:
    backend = FakeBackend(responses=[make_result(1, final=True)])
    ws = FakeWebSocket()
    bridge = _bridge(ws, registry, backend)
    await bridge.open()

    chunks = audio_chunks(2)
    for chunk in chunks:
        await bridge.handle_frame(chunk)
    ws.client_gone = True

    outcome = await bridge.on_transport_closed(1006)

    stream = backend.streams[0]
    assert stream.sent == chunks
    assert stream.send_closed and stream.closed
    assert stream.receive_calls > 0
    assert outcome is not None
    assert outcome.trigger == "disconnect"
    assert outcome.responses == 1
    assert outcome.reported is False
    assert bridge.state is BridgeState.CLOSED
    with pytest.raises(SessionNotFoundError):
        registry.get("conn-1")


@pytest.mark.asyncio
async def test_drain_policy_drains_without_reporting(registry: SessionRegistry) -> None:
    backend = FakeBackend(responses=[make_result(1, final=True)])
    ws = FakeWebSocket()
    bridge = _bridge(ws, registry, backend, disconnect_policy="drain")
    await bridge.open()

    outcome = await bridge.on_transport_closed(1001)

    assert outcome is not None and outcome.responses == 1
    assert ws.sent_text == []
    assert not ws.closed
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_abandon_policy_skips_drain(registry: SessionRegistry) -> None:
    backend = FakeBackend(responses=[make_result(1, final=True)])
    ws = FakeWebSocket()
    bridge = _bridge(ws, registry, backend, disconnect_policy="abandon")
    await bridge.open()

    await bridge.on_transport_closed(1006)

    stream = backend.streams[0]
    assert stream.aborted and stream.closed
    assert stream.receive_calls == 0
    assert ws.sent_text == []
    assert bridge.state is BridgeState.CLOSED
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_hung_backend_hits_drain_deadline(registry: SessionRegistry) -> None:
    partial = make_result(1)
    backend = FakeBackend(responses=[partial], hang_after_responses=True)
    ws = FakeWebSocket()
    bridge = _bridge(ws, registry, backend, drain_timeout_s=0.05)
    await bridge.open()

    await bridge.handle_frame(SENTINEL)

    assert bridge.outcome is not None
    assert bridge.outcome.timed_out
    assert backend.streams[0].aborted
    assert ws.sent_text == [serialize_result(partial)]
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_send_failure_finalizes_with_partial_result(registry: SessionRegistry) -> None:
    partial = make_result(1)
    backend = FakeBackend(responses=[partial], fail_send_after=2)
    ws = FakeWebSocket()
    bridge = _bridge(ws, registry, backend)
    await bridge.open()

    chunks = audio_chunks(3)
    assert await bridge.handle_frame(chunks[0]) is False
    assert await bridge.handle_frame(chunks[1]) is False
    assert await bridge.handle_frame(chunks[2]) is True

    assert bridge.outcome is not None and bridge.outcome.trigger == "backend_error"
    error, result = ws.sent_text
    assert json.loads(error)["payload"]["code"] == WS_ERROR_BACKEND_STREAM
    assert json.loads(error)["payload"]["details"]["reason_code"] == "backend_stream_error"
    assert result == serialize_result(partial)
    assert bridge.outcome.error is not None
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_receive_failure_reports_what_arrived(registry: SessionRegistry) -> None:
    partial = make_result(1)
    backend = FakeBackend(responses=[partial], fail_receive=True)
    ws = FakeWebSocket()
    bridge = _bridge(ws, registry, backend)
    await bridge.open()

    await bridge.handle_frame(SENTINEL)

    assert bridge.outcome is not None
    assert bridge.outcome.error is not None
    assert bridge.outcome.responses == 1
    assert json.loads(ws.sent_text[0])["payload"]["code"] == WS_ERROR_BACKEND_STREAM
    assert ws.sent_text[1:] == [serialize_result(partial)]


@pytest.mark.asyncio
async def test_finalize_is_idempotent(registry: SessionRegistry) -> None:
    backend = FakeBackend(responses=[make_result(1, final=True)])
    ws = FakeWebSocket()
    bridge = _bridge(ws, registry, backend)
    await bridge.open()

    first = await bridge.finalize()
    second = await bridge.finalize()
    after_close = await bridge.on_transport_closed(1000)

    assert first is second is after_close
    assert len(ws.sent_text) == 1
