"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

import json
from pathlib import Path
from typing import Any, Dict

import pytest

from callscribe.clients.deepgram_client import simplify_response
from callscribe.config import Settings
from callscribe.models.transcription import (
    DeepgramResponse,
    TranscribeRecordingResponse,
    TranscriptionResult,
)
from callscribe.resilience.models import ResilienceConfig


class FakeClock:
    """Manually advanced monotonic clock for breaker and window tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults for local testing.

    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            test_settings.STORAGE_BACKEND = "redis"
    """
    return Settings(
        # === Application ===
        APP_NAME="Call Transcription Pipeline (Test)",
        APP_VERSION="0.1.0",
        DEBUG=True,
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Providers ===
        PLIVO_AUTH_ID="MAXXXXXXXXXXXXXXXXXX",
        PLIVO_AUTH_TOKEN="test-token",
        PLIVO_PHONE_NUMBER="+14155550100",
        APP_BASE_URL="https://calls.example.com",
        DEEPGRAM_API_KEY="dg-test-key",

        # === Storage ===
        STORAGE_BACKEND="memory",
        REDIS_URL="redis://localhost:6379/0",
        REDIS_MAX_CONNECTIONS=10,

        PROMETHEUS_ENABLED=False,  # Disable metrics in tests unless explicitly needed
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def no_sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def resilience_config() -> ResilienceConfig:
    """Defaults with the breaker timeout disabled (tests never wait on wall time)."""
    return ResilienceConfig(timeout=None)


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def deepgram_response_data(fixtures_dir: Path) -> Dict[str, Any]:
    """Raw Deepgram response as returned over the wire."""
    with open(fixtures_dir / "deepgram_response.json") as f:
        return json.load(f)


@pytest.fixture
def deepgram_response(deepgram_response_data: Dict[str, Any]) -> DeepgramResponse:
    return DeepgramResponse.model_validate(deepgram_response_data)


@pytest.fixture
def transcription_result(deepgram_response: DeepgramResponse) -> TranscriptionResult:
    return simplify_response(deepgram_response)


@pytest.fixture
def transcribe_response(transcription_result: TranscriptionResult) -> TranscribeRecordingResponse:
    """Summary the transcription facade returns for the sample recording."""
    return TranscribeRecordingResponse(
        transcript=transcription_result.transcript,
        confidence=transcription_result.confidence,
        duration=transcription_result.duration,
        word_count=len(transcription_result.words),
        utterance_count=len(transcription_result.utterances or []),
        language=transcription_result.language,
        metadata=transcription_result.metadata,
    )
