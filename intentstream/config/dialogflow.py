"""Dialogflow backend configuration (env names and defaults only)."""

from __future__ import annotations

from pathlib import Path

ENV_DIALOGFLOW_CREDENTIALS = "DIALOGFLOW_CREDENTIALS"
ENV_DIALOGFLOW_PROJECT_ID = "DIALOGFLOW_PROJECT_ID"
ENV_DIALOGFLOW_LANGUAGE_CODE = "DIALOGFLOW_LANGUAGE_CODE"
ENV_DIALOGFLOW_SAMPLE_RATE_HZ = "DIALOGFLOW_SAMPLE_RATE_HZ"
ENV_DIALOGFLOW_API_ENDPOINT = "DIALOGFLOW_API_ENDPOINT"

# Service-account key file; an empty value means application default credentials.
DEFAULT_DIALOGFLOW_CREDENTIALS: Path | None = Path("dialogflow_credentials.json")
DEFAULT_DIALOGFLOW_PROJECT_ID = ""
DEFAULT_DIALOGFLOW_LANGUAGE_CODE = "en-US"
DEFAULT_DIALOGFLOW_SAMPLE_RATE_HZ = 16000
DEFAULT_DIALOGFLOW_API_ENDPOINT = "dialogflow.googleapis.com"

# Browser capture is converted to mono PCM16 client-side; the server never resamples.
AUDIO_ENCODING_NAME = "AUDIO_ENCODING_LINEAR_16"
SUPPORTED_SAMPLE_RATES_HZ = (8000, 16000, 44100, 48000)

__all__ = [
    "AUDIO_ENCODING_NAME",
    "DEFAULT_DIALOGFLOW_API_ENDPOINT",
    "DEFAULT_DIALOGFLOW_CREDENTIALS",
    "DEFAULT_DIALOGFLOW_LANGUAGE_CODE",
    "DEFAULT_DIALOGFLOW_PROJECT_ID",
    "DEFAULT_DIALOGFLOW_SAMPLE_RATE_HZ",
    "ENV_DIALOGFLOW_API_ENDPOINT",
    "ENV_DIALOGFLOW_CREDENTIALS",
    "ENV_DIALOGFLOW_LANGUAGE_CODE",
    "ENV_DIALOGFLOW_PROJECT_ID",
    "ENV_DIALOGFLOW_SAMPLE_RATE_HZ",
    "SUPPORTED_SAMPLE_RATES_HZ",
]
