"""Runtime dependency construction (recognition backend + admission control)."""

from __future__ import annotations

import logging

from intentstream.state import RuntimeDeps
from intentstream.recognition import AudioProfile
from intentstream.state.settings import AppSettings
from intentstream.handlers.registry import SessionRegistry
from intentstream.config.dialogflow import AUDIO_ENCODING_NAME
from intentstream.handlers.connections import ConnectionManager
from intentstream.recognition.dialogflow import DialogflowBackend
from intentstream.recognition.backend import RecognitionBackend
from intentstream.handlers.websocket.bridge import BridgeFactory

from .settings import load_settings

logger = logging.getLogger(__name__)


def build_audio_profile(settings: AppSettings) -> AudioProfile:
    return AudioProfile(
        encoding=AUDIO_ENCODING_NAME,
        sample_rate_hz=settings.dialogflow.sample_rate_hz,
        language_code=settings.dialogflow.language_code,
    )


def build_runtime_deps(
    settings: AppSettings | None = None,
    *,
    backend: RecognitionBackend | None = None,
) -> RuntimeDeps:
    settings = settings or load_settings()
    backend = backend or DialogflowBackend(settings=settings.dialogflow)
    registry = SessionRegistry()

    bridges = BridgeFactory(
        registry=registry,
        backend=backend,
        settings=settings.bridge,
        profile=build_audio_profile(settings),
    )
    connections = ConnectionManager(max_connections=settings.limits.max_concurrent_connections)

    logger.info(
        "runtime: language=%s sample_rate=%s max_connections=%s drain_timeout=%.1fs disconnect_policy=%s",
        settings.dialogflow.language_code,
        settings.dialogflow.sample_rate_hz,
        settings.limits.max_concurrent_connections,
        settings.bridge.drain_timeout_s,
        settings.bridge.disconnect_policy,
    )
    return RuntimeDeps(
        connections=connections,
        registry=registry,
        bridges=bridges,
        settings=settings,
    )


__all__ = ["RuntimeDeps", "build_audio_profile", "build_runtime_deps"]
