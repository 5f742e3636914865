"""
Application container (composition root).

Builds every long-lived component once per application: HTTP clients,
managers, resilient facades, the call record store and the recording
callback orchestrator. The container lives on ``app.state.container`` so
tests can inject their own.
"""

from dataclasses import dataclass, field
from typing import Optional

import structlog

from callscribe.clients.base_client import BaseAPIClient
from callscribe.clients.deepgram_client import create_deepgram_client
from callscribe.clients.plivo_client import create_plivo_client
from callscribe.config import Settings
from callscribe.managers.deepgram_manager import DeepgramManager, DeepgramManagerConfig
from callscribe.managers.plivo_manager import PlivoManager, PlivoManagerConfig
from callscribe.orchestration.recording_callback import RecordingCallbackOrchestrator
from callscribe.persistence.redis_client import RedisClient
from callscribe.persistence.repository import (
    CallRecordRepository,
    CallRecordStore,
    InMemoryCallRecordStore,
)
from callscribe.resilience.models import ResilienceConfig
from callscribe.resilience.transcription import ResilientTranscriptionClient
from callscribe.resilience.voice import ResilientVoiceClient

logger = structlog.get_logger(__name__)


@dataclass
class AppContainer:
    """
    Long-lived components shared by all requests.

    Attributes:
        settings: Application settings
        voice: Resilient voice facade
        transcription: Resilient transcription facade
        store: Call record store
        orchestrator: Recording callback orchestrator
        clients: HTTP clients closed on shutdown
        uses_redis: Whether the shared Redis pool must be closed on shutdown
    """

    settings: Settings
    voice: ResilientVoiceClient
    transcription: ResilientTranscriptionClient
    store: CallRecordStore
    orchestrator: RecordingCallbackOrchestrator
    clients: list[BaseAPIClient] = field(default_factory=list)
    uses_redis: bool = False

    @classmethod
    def build(cls, settings: Settings) -> "AppContainer":
        """
        Wire the production object graph from settings.

        Raises:
            ValueError: If provider credentials are missing or STORAGE_BACKEND is unknown
        """
        plivo_client = create_plivo_client(
            settings.PLIVO_AUTH_ID,
            settings.PLIVO_AUTH_TOKEN,
            base_url=settings.PLIVO_BASE_URL,
            timeout=settings.PLIVO_HTTP_TIMEOUT,
        )
        deepgram_client = create_deepgram_client(
            settings.DEEPGRAM_API_KEY,
            base_url=settings.DEEPGRAM_BASE_URL,
            timeout=settings.DEEPGRAM_HTTP_TIMEOUT,
        )

        plivo_manager = PlivoManager(
            plivo_client,
            PlivoManagerConfig(
                default_phone_number=settings.PLIVO_PHONE_NUMBER,
                app_base_url=settings.APP_BASE_URL,
                default_time_limit=settings.PLIVO_DEFAULT_TIME_LIMIT,
                default_ring_timeout=settings.PLIVO_DEFAULT_RING_TIMEOUT,
            ),
        )
        deepgram_manager = DeepgramManager(
            deepgram_client,
            DeepgramManagerConfig(
                default_model=settings.DEEPGRAM_MODEL,
                default_language=settings.DEEPGRAM_LANGUAGE,
                enable_smart_format=settings.DEEPGRAM_SMART_FORMAT,
                enable_diarization=settings.DEEPGRAM_DIARIZE,
                enable_utterances=settings.DEEPGRAM_UTTERANCES,
                enable_sentiment=settings.DEEPGRAM_SENTIMENT,
            ),
        )

        voice = ResilientVoiceClient(plivo_manager, ResilienceConfig.for_voice(settings))
        transcription = ResilientTranscriptionClient(
            deepgram_manager, ResilienceConfig.for_transcription(settings)
        )

        backend = settings.STORAGE_BACKEND.lower()
        store: CallRecordStore
        if backend == "redis":
            store = CallRecordRepository(RedisClient.get_async_client(settings), settings)
        elif backend == "memory":
            store = InMemoryCallRecordStore()
        else:
            raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")

        orchestrator = RecordingCallbackOrchestrator(
            transcription,
            store,
            max_concurrency=settings.TRANSCRIPTION_MAX_CONCURRENCY,
            dedupe_in_flight=settings.DEDUPE_RECORDING_CALLBACKS,
        )

        logger.info(
            "Application container built",
            storage_backend=backend,
            transcription_max_concurrency=settings.TRANSCRIPTION_MAX_CONCURRENCY,
        )
        return cls(
            settings=settings,
            voice=voice,
            transcription=transcription,
            store=store,
            orchestrator=orchestrator,
            clients=[plivo_client, deepgram_client],
            uses_redis=backend == "redis",
        )

    async def aclose(self, drain_timeout: Optional[float] = 30.0) -> None:
        """Drain background transcriptions, stop breakers and close connections."""
        await self.orchestrator.drain(timeout=drain_timeout)
        self.voice.shutdown()
        self.transcription.shutdown()
        for client in self.clients:
            await client.close()
        if self.uses_redis:
            await RedisClient.close_async_pool()
        logger.info("Application container closed")
