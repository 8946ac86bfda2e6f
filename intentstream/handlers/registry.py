"""Connection id to recognition stream bookkeeping."""

from __future__ import annotations

import threading

from intentstream.recognition import RecognitionStream
from intentstream.errors import DuplicateSessionError, SessionNotFoundError


class SessionRegistry:
    """Map each connection to its single active recognition stream.

    Every operation takes the lock for a dictionary access only; callers never
    hold it across an await, so a slow drain on one connection cannot stall
    lookups for another.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._streams: dict[str, RecognitionStream] = {}

    def put(self, connection_id: str, stream: RecognitionStream) -> None:
        with self._lock:
            if connection_id in self._streams:
                raise DuplicateSessionError(connection_id, "connection already has an active recognition stream")
            self._streams[connection_id] = stream

    def get(self, connection_id: str) -> RecognitionStream:
        with self._lock:
            stream = self._streams.get(connection_id)
        if stream is None:
            raise SessionNotFoundError(connection_id, "no active recognition stream")
        return stream

    def remove(self, connection_id: str) -> RecognitionStream | None:
        with self._lock:
            return self._streams.pop(connection_id, None)

    def drain(self) -> list[tuple[str, RecognitionStream]]:
        with self._lock:
            items = list(self._streams.items())
            self._streams.clear()
        return items

    def __contains__(self, connection_id: object) -> bool:
        with self._lock:
            return connection_id in self._streams

    def __len__(self) -> int:
        with self._lock:
            return len(self._streams)


__all__ = ["SessionRegistry"]
