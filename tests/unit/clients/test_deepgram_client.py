"""
Unit tests for DeepgramClient.
"""

import json

import httpx
import pytest

from callscribe.clients.deepgram_client import (
    DEFAULT_OPTIONS,
    DeepgramClient,
    create_deepgram_client,
    simplify_response,
)
from callscribe.clients.exceptions import ProviderHTTPError, ProviderResponseError
from callscribe.models.transcription import DeepgramResponse, TranscriptionOptions

RECORDING_URL = "https://media.plivo.com/recordings/abc.mp3"


def make_client(handler) -> DeepgramClient:
    return DeepgramClient("dg-key", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_transcribe_url_sends_token_url_and_merged_options(deepgram_response_data):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json=deepgram_response_data)

    async with make_client(handler) as client:
        response = await client.transcribe_url(
            RECORDING_URL, TranscriptionOptions(language="es", keywords=["refund", "order"])
        )

    request = seen["request"]
    assert request.url.path == "/v1/listen"
    assert request.headers["Authorization"] == "Token dg-key"
    assert json.loads(request.content) == {"url": RECORDING_URL}

    params = request.url.params
    assert params["language"] == "es"
    assert params["model"] == "nova-2"
    assert params["smart_format"] == "true"
    assert params["sentiment"] == "false"
    assert params.get_list("keywords") == ["refund", "order"]

    assert response.metadata.duration == 12.48


@pytest.mark.asyncio
async def test_transcribe_url_simplified(deepgram_response_data):
    async with make_client(lambda request: httpx.Response(200, json=deepgram_response_data)) as client:
        result = await client.transcribe_url_simplified(RECORDING_URL)

    assert result.transcript.startswith("Hello, thanks for calling.")
    assert result.confidence == 0.93
    assert len(result.words) == 11
    assert len(result.utterances) == 2
    assert result.language == "en"
    assert result.metadata.request_id == "5b8f1a3e-7c2d-4e9a-b1f0-2d6c9e4a7b13"


@pytest.mark.asyncio
async def test_transcribe_buffer_uploads_raw_audio(deepgram_response_data):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json=deepgram_response_data)

    async with make_client(handler) as client:
        await client.transcribe_buffer(b"\x00\x01audio", mimetype="audio/wav")

    request = seen["request"]
    assert request.content == b"\x00\x01audio"
    assert request.headers["Content-Type"] == "audio/wav"


@pytest.mark.asyncio
async def test_http_error_propagates():
    async with make_client(lambda request: httpx.Response(402, json={"err_code": "ASR_PAYMENT_REQUIRED"})) as client:
        with pytest.raises(ProviderHTTPError) as exc_info:
            await client.transcribe_url(RECORDING_URL)

    assert exc_info.value.provider == "deepgram"
    assert exc_info.value.status_code == 402


@pytest.mark.asyncio
async def test_malformed_response_raises_response_error():
    async with make_client(lambda request: httpx.Response(200, json={"results": {}})) as client:
        with pytest.raises(ProviderResponseError):
            await client.transcribe_url(RECORDING_URL)


def test_simplify_response_requires_an_alternative():
    response = DeepgramResponse.model_validate(
        {"metadata": {"request_id": "r-1"}, "results": {"channels": [{"alternatives": []}]}}
    )

    with pytest.raises(ProviderResponseError, match="no transcript alternatives"):
        simplify_response(response)


def test_simplify_response_keeps_primary_alternative(deepgram_response):
    result = simplify_response(deepgram_response)

    assert result.duration == 12.48
    assert result.words[0].punctuated_word == "Hello,"


@pytest.mark.asyncio
async def test_validate_api_key():
    async with make_client(lambda request: httpx.Response(200, json={"projects": []})) as client:
        assert await client.validate_api_key() is True

    async with make_client(lambda request: httpx.Response(401)) as client:
        assert await client.validate_api_key() is False


def test_default_options_query_params():
    params = dict(DEFAULT_OPTIONS.to_query_params())

    assert params["model"] == "nova-2"
    assert params["diarize"] == "true"
    assert params["profanity_filter"] == "false"


def test_replace_and_callback_method_encoding():
    options = TranscriptionOptions(
        replace=[{"find": "plivo", "replace": "Plivo"}],
        callback="https://calls.example.com/dg",
        callback_method="PUT",
    )

    assert options.to_query_params() == [
        ("replace", "plivo:Plivo"),
        ("callback", "https://calls.example.com/dg"),
        ("callback_method", "put"),
    ]


def test_factory_requires_api_key():
    with pytest.raises(ValueError):
        create_deepgram_client("")
