"""Dialogflow ES streaming detect-intent backend.

The Dialogflow client exposes the bidirectional stream as a blocking call that
consumes a request iterator and yields responses. Each stream therefore runs on
its own daemon thread: requests go in through a ``queue.Queue`` and responses
come back to the event loop through ``call_soon_threadsafe``.
"""

from __future__ import annotations

import queue
import asyncio
import logging
import threading
import contextlib
from typing import Any, Protocol
from dataclasses import dataclass
from collections.abc import Callable, Iterable, Iterator

from google.cloud import dialogflow_v2

from intentstream.runtime.logging import connection_logger
from intentstream.state.settings import DialogflowSettings
from intentstream.errors import BackendStreamError, EstablishmentError
from intentstream.runtime.credentials import BackendCredentials, load_backend_credentials

from .backend import AudioProfile, RecognitionResult

logger = logging.getLogger(__name__)


class DialogflowClient(Protocol):
    def streaming_detect_intent(self, *, requests: Iterable[object]) -> Iterable[object]: ...


ClientFactory = Callable[[BackendCredentials, str], DialogflowClient]
CredentialsLoader = Callable[..., BackendCredentials]


def create_sessions_client(creds: BackendCredentials, api_endpoint: str) -> DialogflowClient:
    return dialogflow_v2.SessionsClient(
        credentials=creds.credentials,
        client_options={"api_endpoint": api_endpoint},
    )


def build_session_path(project_id: str, session_id: str) -> str:
    return dialogflow_v2.SessionsClient.session_path(project_id, session_id)


def build_initial_request(session_path: str, profile: AudioProfile) -> dialogflow_v2.StreamingDetectIntentRequest:
    # The first request carries only the session and audio config, never audio.
    audio_config = dialogflow_v2.InputAudioConfig(
        audio_encoding=dialogflow_v2.AudioEncoding[profile.encoding],
        language_code=profile.language_code,
        sample_rate_hertz=profile.sample_rate_hz,
    )
    return dialogflow_v2.StreamingDetectIntentRequest(
        session=session_path,
        query_input=dialogflow_v2.QueryInput(audio_config=audio_config),
    )


def build_audio_request(chunk: bytes) -> dialogflow_v2.StreamingDetectIntentRequest:
    return dialogflow_v2.StreamingDetectIntentRequest(input_audio=chunk)


def response_to_result(response: Any) -> RecognitionResult:
    recognition = getattr(response, "recognition_result", None)
    query = getattr(response, "query_result", None)
    intent = getattr(query, "intent", None)
    raw = dialogflow_v2.StreamingDetectIntentResponse.to_dict(
        response,
        use_integers_for_enums=False,
        preserving_proto_field_name=False,
    )
    return RecognitionResult(
        transcript=str(getattr(recognition, "transcript", "") or ""),
        intent_display_name=str(getattr(intent, "display_name", "") or ""),
        query_text=str(getattr(query, "query_text", "") or ""),
        intent_detection_confidence=float(getattr(query, "intent_detection_confidence", 0.0) or 0.0),
        fulfillment_text=str(getattr(query, "fulfillment_text", "") or ""),
        is_final=bool(getattr(recognition, "is_final", False)),
        raw=raw,
    )


def _request_iter(q: queue.Queue[object | None]) -> Iterator[object]:
    while True:
        item = q.get()
        if item is None:
            return
        yield item


class DialogflowStream:
    def __init__(
        self,
        *,
        client: DialogflowClient,
        session_path: str,
        session_id: str,
        profile: AudioProfile,
        connection_id: str,
    ) -> None:
        self._client = client
        self._session_path = session_path
        self._session_id = session_id
        self._profile = profile
        self._connection_id = connection_id
        self._log = connection_logger(logger, connection_id)

        self._loop = asyncio.get_running_loop()
        self._requests: queue.Queue[object | None] = queue.Queue()
        self._events: asyncio.Queue[RecognitionResult | BaseException | None] = asyncio.Queue()
        self._done = asyncio.Event()
        self._thread: threading.Thread | None = None

        # Written by the worker thread, read on the loop.
        self._call: Any = None
        self._error: BaseException | None = None

        self._send_closed = False
        self._ended = False
        self._transport_closed = False

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def session_path(self) -> str:
        return self._session_path

    def start(self) -> None:
        if self._thread is not None:
            return
        self._requests.put(build_initial_request(self._session_path, self._profile))
        self._thread = threading.Thread(
            target=self._run,
            name=f"dialogflow-{self._connection_id}",
            daemon=True,
        )
        self._thread.start()

    def _post(self, item: RecognitionResult | BaseException | None) -> None:
        try:
            self._loop.call_soon_threadsafe(self._events.put_nowait, item)
        except RuntimeError:
            # Loop closed during shutdown; nobody is left to read.
            return

    def _run(self) -> None:
        try:
            responses = self._client.streaming_detect_intent(requests=_request_iter(self._requests))
            self._call = responses
            for response in responses:
                self._post(response_to_result(response))
        except Exception as exc:
            self._error = exc
            self._post(exc)
        finally:
            self._post(None)
            with contextlib.suppress(RuntimeError):
                self._loop.call_soon_threadsafe(self._done.set)

    async def send_audio(self, chunk: bytes) -> None:
        if self._send_closed:
            raise BackendStreamError(self._connection_id, "send half already closed")
        if self._error is not None:
            raise BackendStreamError(self._connection_id, f"stream failed: {self._error}")
        if self._done.is_set():
            raise BackendStreamError(self._connection_id, "backend ended the stream")
        self._requests.put(build_audio_request(chunk))

    async def close_send(self) -> None:
        if self._send_closed:
            return
        self._send_closed = True
        self._requests.put(None)

    async def receive(self, timeout: float) -> RecognitionResult | None:
        if self._ended:
            return None
        item = await asyncio.wait_for(self._events.get(), timeout=timeout)
        if item is None:
            self._ended = True
            return None
        if isinstance(item, BaseException):
            raise BackendStreamError(self._connection_id, f"stream failed: {item}") from item
        return item

    async def abort(self) -> None:
        await self.close_send()
        cancel = getattr(self._call, "cancel", None)
        if cancel is not None:
            cancel()
            return
        # The client wrapper blocks until the first response before handing back
        # the call, so there is nothing to cancel yet. Closing the channel ends
        # the pending RPC; the client belongs to this stream alone.
        self._log.info("no call handle yet; closing channel to end the RPC")
        self._close_transport()

    def _close_transport(self) -> None:
        if self._transport_closed:
            return
        self._transport_closed = True
        close = getattr(getattr(self._client, "transport", None), "close", None)
        if close is not None:
            close()

    async def aclose(self, timeout: float) -> None:
        await self.close_send()
        if self._thread is not None and not self._done.is_set():
            try:
                await asyncio.wait_for(self._done.wait(), timeout=timeout)
            except TimeoutError:
                self._log.warning("worker still running after %.1fs; cancelling call", timeout)
                await self.abort()
                try:
                    await asyncio.wait_for(self._done.wait(), timeout=timeout)
                except TimeoutError:
                    self._log.error("worker ignored cancellation; leaving daemon thread behind")

        self._close_transport()


@dataclass(slots=True)
class DialogflowBackend:
    settings: DialogflowSettings
    client_factory: ClientFactory = create_sessions_client
    credentials_loader: CredentialsLoader = load_backend_credentials

    def _connect(self) -> tuple[BackendCredentials, DialogflowClient]:
        # Key file I/O and gRPC channel setup both block; keep them off the loop.
        creds = self.credentials_loader(self.settings.credentials_path, project_id=self.settings.project_id)
        return creds, self.client_factory(creds, self.settings.api_endpoint)

    async def open_stream(
        self,
        session_id: str,
        profile: AudioProfile,
        *,
        connection_id: str,
    ) -> DialogflowStream:
        try:
            creds, client = await asyncio.to_thread(self._connect)
        except Exception as exc:
            raise EstablishmentError(connection_id, f"cannot create Dialogflow client: {exc}") from exc

        stream = DialogflowStream(
            client=client,
            session_path=build_session_path(creds.project_id, session_id),
            session_id=session_id,
            profile=profile,
            connection_id=connection_id,
        )
        stream.start()
        return stream


__all__ = [
    "DialogflowBackend",
    "DialogflowClient",
    "DialogflowStream",
    "build_audio_request",
    "build_initial_request",
    "build_session_path",
    "create_sessions_client",
    "response_to_result",
]
