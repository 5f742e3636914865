"""Integration test fixtures.

Builds the full application around an AppContainer whose provider clients
are mocks: the managers, resilient facades, orchestrator and in-memory
store are the real ones, so requests flow through every layer without
network access.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from callscribe.clients.deepgram_client import DeepgramClient
from callscribe.clients.plivo_client import PlivoClient
from callscribe.container import AppContainer
from callscribe.main import create_app
from callscribe.managers.deepgram_manager import DeepgramManager, DeepgramManagerConfig
from callscribe.managers.plivo_manager import PlivoManager, PlivoManagerConfig
from callscribe.models.telephony import MakeCallResponse
from callscribe.orchestration.recording_callback import RecordingCallbackOrchestrator
from callscribe.persistence.repository import InMemoryCallRecordStore
from callscribe.resilience.transcription import ResilientTranscriptionClient
from callscribe.resilience.voice import ResilientVoiceClient


@pytest.fixture
def plivo_client():
    client = AsyncMock(spec=PlivoClient)
    client.make_call.return_value = MakeCallResponse(
        message="call fired",
        request_uuid="9834029e-58b6-11e1-8ef0-7b2b1a0a8c8d",
        api_id="97ceeb52-58b6-11e1-86da-77300b68f8bb",
    )
    return client


@pytest.fixture
def deepgram_client(transcription_result):
    client = AsyncMock(spec=DeepgramClient)
    client.transcribe_url_simplified.return_value = transcription_result
    return client


@pytest.fixture
def store():
    return InMemoryCallRecordStore()


@pytest.fixture
def container(test_settings, plivo_client, deepgram_client, store, resilience_config, no_sleep):
    """Real object graph on top of mocked provider clients."""
    voice = ResilientVoiceClient(
        PlivoManager(
            plivo_client,
            PlivoManagerConfig(
                default_phone_number=test_settings.PLIVO_PHONE_NUMBER,
                app_base_url=test_settings.APP_BASE_URL,
            ),
        ),
        resilience_config,
        sleep=no_sleep,
    )
    transcription = ResilientTranscriptionClient(
        DeepgramManager(deepgram_client, DeepgramManagerConfig()),
        resilience_config,
        sleep=no_sleep,
    )
    return AppContainer(
        settings=test_settings,
        voice=voice,
        transcription=transcription,
        store=store,
        orchestrator=RecordingCallbackOrchestrator(transcription, store),
        clients=[plivo_client, deepgram_client],
    )


@pytest.fixture
def app(test_settings, container):
    return create_app(test_settings, container)


@pytest.fixture
def client(app):
    """TestClient with startup/shutdown events run around each test."""
    with TestClient(app) as test_client:
        yield test_client
