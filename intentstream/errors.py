"""Shared error types for the intent streaming bridge.

Every failure a connection can hit is one of these kinds. They carry the
connection id so a log line is enough to trace the failing session.
"""

from __future__ import annotations

from typing import ClassVar
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BridgeError(Exception):
    connection_id: str
    detail: str = ""

    kind: ClassVar[str] = "bridge_error"

    def __str__(self) -> str:
        if self.detail:
            return f"{self.kind} [{self.connection_id}]: {self.detail}"
        return f"{self.kind} [{self.connection_id}]"


@dataclass(frozen=True, slots=True)
class EstablishmentError(BridgeError):
    """Credential load or backend open failed; no recognition for this connection."""

    kind: ClassVar[str] = "establishment_failed"


@dataclass(frozen=True, slots=True)
class LateFrameError(BridgeError):
    """A frame arrived for a connection with no active recognition stream."""

    kind: ClassVar[str] = "late_frame"


@dataclass(frozen=True, slots=True)
class BackendStreamError(BridgeError):
    """The recognition stream failed while sending or receiving."""

    kind: ClassVar[str] = "backend_stream_error"


@dataclass(frozen=True, slots=True)
class TransportError(BridgeError):
    """The client went away without sending the end-of-audio sentinel."""

    kind: ClassVar[str] = "transport_error"


@dataclass(frozen=True, slots=True)
class FrameTooLargeError(BridgeError):
    size: int = 0
    limit: int = 0

    kind: ClassVar[str] = "frame_too_large"


@dataclass(frozen=True, slots=True)
class DuplicateSessionError(BridgeError):
    kind: ClassVar[str] = "duplicate_session"


@dataclass(frozen=True, slots=True)
class SessionNotFoundError(BridgeError):
    kind: ClassVar[str] = "session_not_found"


__all__ = [
    "BackendStreamError",
    "BridgeError",
    "DuplicateSessionError",
    "EstablishmentError",
    "FrameTooLargeError",
    "LateFrameError",
    "SessionNotFoundError",
    "TransportError",
]
