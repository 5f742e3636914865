"""
Deepgram speech-to-text API client.

Wraps the prerecorded endpoint (POST /listen) with ``Authorization: Token``
auth. Audio can be referenced by URL (JSON body) or uploaded as raw bytes.
"""

from typing import Any, Optional

import httpx
import structlog
from pydantic import ValidationError

from callscribe.clients.base_client import BaseAPIClient
from callscribe.clients.exceptions import ProviderError, ProviderResponseError
from callscribe.models.transcription import (
    DeepgramResponse,
    TranscriptionOptions,
    TranscriptionResult,
    TranscriptMetadata,
    summarize_raw,
)

logger = structlog.get_logger(__name__)

DEFAULT_OPTIONS = TranscriptionOptions(
    model="nova-2",
    language="en",
    punctuate=True,
    smart_format=True,
    utterances=True,
    diarize=True,
    profanity_filter=False,
    paragraphs=False,
    detect_topics=False,
    intents=False,
    sentiment=False,
)


class DeepgramClient(BaseAPIClient):
    """
    Deepgram REST client.

    API Endpoints:
    - POST /listen: Prerecorded transcription (URL in JSON body, or raw audio)
    - GET /projects: Lightweight key validation
    """

    provider = "deepgram"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.deepgram.com/v1",
        timeout: float = 120.0,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            base_url,
            timeout,
            headers={"Authorization": f"Token {api_key}"},
            transport=transport,
        )
        logger.info("Deepgram client initialized", base_url=self.base_url, timeout=timeout)

    def _parse_response(self, data: Any, method_name: str) -> DeepgramResponse:
        try:
            return DeepgramResponse.model_validate(data)
        except ValidationError as e:
            raise ProviderResponseError(
                f"Unexpected deepgram response shape in {method_name}",
                details={"errors": e.errors(include_url=False)},
                provider=self.provider,
                method=method_name,
            ) from e

    async def transcribe_url(
        self, url: str, options: Optional[TranscriptionOptions] = None
    ) -> DeepgramResponse:
        """
        Transcribe audio hosted at ``url``.

        Options not set by the caller fall back to DEFAULT_OPTIONS.
        """
        merged = (options or TranscriptionOptions()).merged_over(DEFAULT_OPTIONS)
        data = await self._request(
            "transcribe_url",
            "POST",
            "/listen",
            params=merged.to_query_params(),
            json={"url": url},
        )
        logger.info("Deepgram transcription received", **summarize_raw(data))
        return self._parse_response(data, "transcribe_url")

    async def transcribe_url_simplified(
        self, url: str, options: Optional[TranscriptionOptions] = None
    ) -> TranscriptionResult:
        """Transcribe ``url`` and flatten the first channel's best alternative."""
        response = await self.transcribe_url(url, options)
        return simplify_response(response, "transcribe_url_simplified")

    async def transcribe_buffer(
        self,
        audio: bytes,
        options: Optional[TranscriptionOptions] = None,
        *,
        mimetype: str = "audio/mpeg",
    ) -> DeepgramResponse:
        """Upload raw audio bytes for transcription."""
        merged = (options or TranscriptionOptions()).merged_over(DEFAULT_OPTIONS)
        data = await self._request(
            "transcribe_buffer",
            "POST",
            "/listen",
            params=merged.to_query_params(),
            content=audio,
            headers={"Content-Type": mimetype},
        )
        logger.info("Deepgram transcription received", **summarize_raw(data))
        return self._parse_response(data, "transcribe_buffer")

    async def validate_api_key(self) -> bool:
        """
        Check the API key against GET /projects.

        Returns:
            True if the key was accepted, False otherwise
        """
        try:
            await self._request("validate_api_key", "GET", "/projects")
            return True
        except ProviderError as e:
            logger.warning("Deepgram API key check failed", error=str(e))
            return False


def simplify_response(response: DeepgramResponse, method_name: str = "simplify") -> TranscriptionResult:
    """
    Flatten a full response to its primary transcript.

    Raises:
        ProviderResponseError: If the response has no channel or alternative
    """
    if not response.results.channels or not response.results.channels[0].alternatives:
        raise ProviderResponseError(
            "Deepgram response contains no transcript alternatives",
            details={"request_id": response.metadata.request_id},
            provider="deepgram",
            method=method_name,
        )

    channel = response.results.channels[0]
    alternative = channel.alternatives[0]
    return TranscriptionResult(
        transcript=alternative.transcript,
        confidence=alternative.confidence,
        duration=response.metadata.duration,
        words=alternative.words,
        utterances=response.results.utterances,
        language=channel.detected_language,
        metadata=TranscriptMetadata(
            transaction_key=response.metadata.transaction_key,
            request_id=response.metadata.request_id,
            created=response.metadata.created,
        ),
    )


def create_deepgram_client(
    api_key: str,
    base_url: str = "https://api.deepgram.com/v1",
    timeout: float = 120.0,
) -> DeepgramClient:
    """
    Factory function to create a DeepgramClient.

    Raises:
        ValueError: If the API key is missing
    """
    if not api_key:
        raise ValueError("Deepgram API key is required")
    return DeepgramClient(api_key, base_url=base_url, timeout=timeout)
