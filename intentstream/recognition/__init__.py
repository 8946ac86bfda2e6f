from .result import serialize_result, result_to_payload
from .backend import AudioProfile, RecognitionResult, RecognitionStream, RecognitionBackend

__all__ = [
    "AudioProfile",
    "RecognitionBackend",
    "RecognitionResult",
    "RecognitionStream",
    "result_to_payload",
    "serialize_result",
]
