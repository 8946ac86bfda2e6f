"""Client-facing result payload."""

from __future__ import annotations

from typing import Any

import orjson

from intentstream.config.websocket import EMPTY_RESPONSE_TEXT

from .backend import RecognitionResult


def result_to_payload(result: RecognitionResult) -> dict[str, Any]:
    return {
        "transcript": result.transcript,
        "intentDisplayName": result.intent_display_name,
        "queryText": result.query_text,
        "intentDetectionConfidence": result.intent_detection_confidence,
        "fulfillmentText": result.fulfillment_text,
        "response": result.raw,
    }


def serialize_result(result: RecognitionResult | None) -> str:
    """Render the last backend response as the single text frame sent to the client."""
    if result is None:
        return EMPTY_RESPONSE_TEXT
    return orjson.dumps(result_to_payload(result)).decode("utf-8")


__all__ = ["EMPTY_RESPONSE_TEXT", "result_to_payload", "serialize_result"]
