"""Recognition backend interfaces (protocols and value types only)."""

from __future__ import annotations

from typing import Any, Protocol
from dataclasses import field, dataclass


@dataclass(frozen=True, slots=True)
class AudioProfile:
    encoding: str
    sample_rate_hz: int
    language_code: str


@dataclass(frozen=True, slots=True)
class RecognitionResult:
    transcript: str = ""
    intent_display_name: str = ""
    query_text: str = ""
    intent_detection_confidence: float = 0.0
    fulfillment_text: str = ""
    is_final: bool = False
    raw: dict[str, Any] = field(default_factory=dict)


class RecognitionStream(Protocol):
    @property
    def session_id(self) -> str: ...

    async def send_audio(self, chunk: bytes) -> None: ...

    async def close_send(self) -> None: ...

    async def receive(self, timeout: float) -> RecognitionResult | None: ...

    async def abort(self) -> None: ...

    async def aclose(self, timeout: float) -> None: ...


class RecognitionBackend(Protocol):
    async def open_stream(
        self,
        session_id: str,
        profile: AudioProfile,
        *,
        connection_id: str,
    ) -> RecognitionStream: ...


__all__ = ["AudioProfile", "RecognitionBackend", "RecognitionResult", "RecognitionStream"]
