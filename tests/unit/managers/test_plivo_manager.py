"""
Unit tests for PlivoManager (call defaults, polling and answer XML).
"""

from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlsplit

import pytest

from callscribe.clients.exceptions import ProviderConnectionError
from callscribe.managers.plivo_manager import RECORDING_NOTICE
from callscribe.models.telephony import (
    CallDetails,
    InitiateRecordedCallRequest,
    MakeCallResponse,
    ProviderAck,
    RecordXMLOptions,
)

MAKE_CALL_RESPONSE = MakeCallResponse(message="call fired", request_uuid="req-123", api_id="api-1")


def test_config_urls(plivo_manager_config):
    assert plivo_manager_config.answer_url == "https://calls.example.com/plivo/answer"
    assert (
        plivo_manager_config.recording_callback_url
        == "https://calls.example.com/plivo/recording-callback"
    )


@pytest.mark.asyncio
async def test_initiate_recorded_call_applies_defaults(plivo_manager, mock_plivo_client):
    mock_plivo_client.make_call.return_value = MAKE_CALL_RESPONSE

    response = await plivo_manager.initiate_recorded_call(InitiateRecordedCallRequest(to="+14155550123"))

    call_request = mock_plivo_client.make_call.await_args.args[0]
    assert call_request.from_ == "+14155550100"
    assert call_request.to == "+14155550123"
    assert call_request.time_limit == 3600
    assert call_request.ring_timeout == 30
    assert call_request.answer_method == "POST"

    answer_url = urlsplit(call_request.answer_url)
    assert f"{answer_url.scheme}://{answer_url.netloc}{answer_url.path}" == (
        "https://calls.example.com/plivo/answer"
    )
    assert parse_qs(answer_url.query)["recording_callback"] == [
        "https://calls.example.com/plivo/recording-callback"
    ]

    assert response.call_uuid == "req-123"
    assert response.message == "call fired"
    assert response.api_id == "api-1"


@pytest.mark.asyncio
async def test_initiate_recorded_call_honours_overrides(plivo_manager, mock_plivo_client):
    mock_plivo_client.make_call.return_value = MAKE_CALL_RESPONSE

    await plivo_manager.initiate_recorded_call(
        InitiateRecordedCallRequest(
            to="+14155550123",
            from_number="+14155550199",
            caller_name="Support",
            time_limit=120,
            recording_callback="https://hooks.example.com/rec?tenant=a&x=1",
            answer_callback="https://hooks.example.com/answer",
        )
    )

    call_request = mock_plivo_client.make_call.await_args.args[0]
    assert call_request.from_ == "+14155550199"
    assert call_request.caller_name == "Support"
    assert call_request.time_limit == 120
    assert call_request.answer_url.startswith("https://hooks.example.com/answer?recording_callback=")
    # The callback URL is encoded as a single query value
    query = parse_qs(urlsplit(call_request.answer_url).query)
    assert query["recording_callback"] == ["https://hooks.example.com/rec?tenant=a&x=1"]


@pytest.mark.asyncio
async def test_make_call_uses_plain_answer_url(plivo_manager, mock_plivo_client):
    mock_plivo_client.make_call.return_value = MAKE_CALL_RESPONSE

    await plivo_manager.make_call("+14155550123")

    call_request = mock_plivo_client.make_call.await_args.args[0]
    assert call_request.answer_url == "https://calls.example.com/plivo/answer"


@pytest.mark.asyncio
async def test_terminate_call(plivo_manager, mock_plivo_client):
    mock_plivo_client.terminate_call.return_value = ProviderAck(message="call hung up")

    response = await plivo_manager.terminate_call("abc")

    assert response.message == "call hung up"


@pytest.mark.asyncio
async def test_get_all_calls_passes_filters(plivo_manager, mock_plivo_client):
    await plivo_manager.get_all_calls(call_direction="outbound", limit=10)

    filters = mock_plivo_client.get_calls.await_args.args[0]
    assert filters["call_direction"] == "outbound"
    assert filters["limit"] == 10
    assert filters["to_number"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize("status,active", [("ringing", True), ("in-progress", True), ("completed", False)])
async def test_is_call_active(plivo_manager, mock_plivo_client, status, active):
    mock_plivo_client.get_call_details.return_value = CallDetails(call_uuid="abc", call_status=status)

    assert await plivo_manager.is_call_active("abc") is active


@pytest.mark.asyncio
async def test_is_call_active_treats_errors_as_inactive(plivo_manager, mock_plivo_client):
    mock_plivo_client.get_call_details.side_effect = ProviderConnectionError("down", provider="plivo")

    assert await plivo_manager.is_call_active("abc") is False


@pytest.mark.asyncio
async def test_wait_for_recording_polls_until_available(plivo_manager, mock_plivo_client):
    mock_plivo_client.get_call_details.side_effect = [
        CallDetails(call_uuid="abc", call_status="in-progress"),
        CallDetails(call_uuid="abc", call_status="completed"),
        CallDetails(call_uuid="abc", call_status="completed", recording_url="https://r/abc.mp3"),
    ]

    with patch("callscribe.managers.plivo_manager.asyncio.sleep", new=AsyncMock()) as sleep:
        details = await plivo_manager.wait_for_recording("abc", max_attempts=5, delay=2.0)

    assert details.recording_url == "https://r/abc.mp3"
    assert sleep.await_count == 2
    sleep.assert_awaited_with(2.0)


@pytest.mark.asyncio
async def test_wait_for_recording_gives_up(plivo_manager, mock_plivo_client):
    mock_plivo_client.get_call_details.return_value = CallDetails(call_uuid="abc", call_status="in-progress")

    with patch("callscribe.managers.plivo_manager.asyncio.sleep", new=AsyncMock()) as sleep:
        details = await plivo_manager.wait_for_recording("abc", max_attempts=3, delay=1.0)

    assert details is None
    assert mock_plivo_client.get_call_details.await_count == 3
    assert sleep.await_count == 2


# === XML ===

def test_recording_xml_defaults(plivo_manager):
    xml = plivo_manager.generate_recording_xml()

    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert f"<Speak>{RECORDING_NOTICE}</Speak>" in xml
    assert 'method="POST"' in xml
    assert 'fileFormat="mp3"' in xml
    assert 'redirect="true"' in xml
    assert 'maxLength="3600"' in xml
    assert 'playBeep="true"' in xml
    assert 'finishOnKey="#"' in xml
    assert "action=" not in xml
    assert "transcriptionType" not in xml
    assert xml.rstrip().endswith("</Response>")


def test_recording_xml_escapes_callback_url(plivo_manager):
    xml = plivo_manager.generate_recording_xml(
        RecordXMLOptions(action="https://x.example.com/cb?a=1&b=2", play_beep=False)
    )

    assert 'action="https://x.example.com/cb?a=1&amp;b=2"' in xml
    assert 'playBeep="false"' in xml


def test_speak_xml_escapes_text(plivo_manager):
    xml = plivo_manager.generate_speak_xml("Press 1 & hold <now>", voice="WOMAN")

    assert '<Speak voice="WOMAN">Press 1 &amp; hold &lt;now&gt;</Speak>' in xml


def test_hangup_xml(plivo_manager):
    assert "<Speak>" not in plivo_manager.generate_hangup_xml()

    xml = plivo_manager.generate_hangup_xml("Goodbye")
    assert "<Speak>Goodbye</Speak>" in xml
    assert "<Hangup/>" in xml
