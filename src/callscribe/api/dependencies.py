"""
FastAPI dependency injection for the HTTP layer.

Everything is resolved from the AppContainer stored on ``app.state`` by
``create_app``; there are no module-level singletons, so tests can build
an app around their own container.
"""

from fastapi import Depends, Request

from callscribe.config import Settings
from callscribe.container import AppContainer
from callscribe.orchestration.recording_callback import RecordingCallbackOrchestrator
from callscribe.persistence.repository import CallRecordStore
from callscribe.resilience.transcription import ResilientTranscriptionClient
from callscribe.resilience.voice import ResilientVoiceClient


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def get_settings(container: AppContainer = Depends(get_container)) -> Settings:
    return container.settings


def get_voice_client(container: AppContainer = Depends(get_container)) -> ResilientVoiceClient:
    """
    Get the resilient voice facade.

    Breaker state is per facade instance, so every request must share
    the container's instance.
    """
    return container.voice


def get_transcription_client(
    container: AppContainer = Depends(get_container),
) -> ResilientTranscriptionClient:
    return container.transcription


def get_store(container: AppContainer = Depends(get_container)) -> CallRecordStore:
    return container.store


def get_orchestrator(
    container: AppContainer = Depends(get_container),
) -> RecordingCallbackOrchestrator:
    return container.orchestrator
