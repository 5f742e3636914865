"""
Resilient transcription client.

Wraps DeepgramManager with a single ``transcribe`` breaker shared by every
transcription operation, plus blanket retries with long backoff (recordings
can take tens of seconds to process).
"""

import asyncio
import time
from typing import Callable, Optional

from callscribe.managers.deepgram_manager import DeepgramManager
from callscribe.models.transcription import (
    DeepgramResponse,
    TranscribeRecordingRequest,
    TranscribeRecordingResponse,
    TranscriptionInsights,
    TranscriptionOptions,
)
from callscribe.resilience.engine import Sleeper
from callscribe.resilience.facade import ResilientFacade
from callscribe.resilience.models import ResilienceConfig, ResultEnvelope

TRANSCRIBE_BREAKER = "transcribe"

DEFAULT_TRANSCRIPTION_CONFIG = ResilienceConfig(
    timeout=60.0,
    retry_initial_delay=2.0,
    max_retry_delay=20.0,
)


class ResilientTranscriptionClient(ResilientFacade):
    """Speech-to-text facade."""

    def __init__(
        self,
        manager: DeepgramManager,
        config: Optional[ResilienceConfig] = None,
        *,
        sleep: Sleeper = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(
            "transcription",
            config or DEFAULT_TRANSCRIPTION_CONFIG,
            sleep=sleep,
            clock=clock,
        )
        self._manager = manager
        self._create_breaker(TRANSCRIBE_BREAKER)

    @property
    def manager(self) -> DeepgramManager:
        return self._manager

    async def transcribe_recording(
        self, request: TranscribeRecordingRequest
    ) -> ResultEnvelope[TranscribeRecordingResponse]:
        return await self._invoke(
            TRANSCRIBE_BREAKER,
            "transcribe_recording",
            lambda: self._manager.transcribe_recording(request),
        )

    async def transcribe_url(
        self, url: str, options: Optional[TranscriptionOptions] = None
    ) -> ResultEnvelope[DeepgramResponse]:
        return await self._invoke(
            TRANSCRIBE_BREAKER,
            "transcribe_url",
            lambda: self._manager.transcribe_url(url, options),
        )

    async def transcribe_with_insights(
        self, recording_url: str
    ) -> ResultEnvelope[TranscriptionInsights]:
        return await self._invoke(
            TRANSCRIBE_BREAKER,
            "transcribe_with_insights",
            lambda: self._manager.transcribe_with_insights(recording_url),
        )

    async def transcribe_buffer(
        self,
        audio: bytes,
        options: Optional[TranscriptionOptions] = None,
        *,
        mimetype: str = "audio/mpeg",
    ) -> ResultEnvelope[DeepgramResponse]:
        return await self._invoke(
            TRANSCRIBE_BREAKER,
            "transcribe_buffer",
            lambda: self._manager.transcribe_buffer(audio, options, mimetype=mimetype),
        )
