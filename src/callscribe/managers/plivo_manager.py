"""
Plivo manager: call-placement business logic.

Sits between the raw PlivoClient and the resilient voice facade. Fills in
configured defaults (caller id, answer/recording URLs, time limits),
renders Plivo XML responses and polls for finished recordings.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

import structlog
from jinja2 import DictLoader, Environment

from callscribe.clients.exceptions import ProviderError
from callscribe.clients.plivo_client import PlivoClient
from callscribe.models.telephony import (
    CallDetails,
    CallList,
    InitiateRecordedCallRequest,
    InitiateRecordedCallResponse,
    MakeCallRequest,
    MakeCallResponse,
    RecordXMLOptions,
    TerminateCallResponse,
)

logger = structlog.get_logger(__name__)

ANSWER_PATH = "/plivo/answer"
RECORDING_CALLBACK_PATH = "/plivo/recording-callback"

RECORDING_NOTICE = "This call will be recorded for quality and training purposes."

_XML_TEMPLATES = {
    "record.xml": """<?xml version="1.0" encoding="UTF-8"?>
<Response>
  <Speak>{{ notice }}</Speak>
  <Record
{%- for name, value in attributes %} {{ name }}="{{ value | xmlvalue }}"{% endfor %}/>
</Response>""",
    "speak.xml": """<?xml version="1.0" encoding="UTF-8"?>
<Response>
  <Speak{% if voice %} voice="{{ voice }}"{% endif %}>{{ text }}</Speak>
</Response>""",
    "hangup.xml": """<?xml version="1.0" encoding="UTF-8"?>
<Response>
{% if reason %}
  <Speak>{{ reason }}</Speak>
{% endif %}
  <Hangup/>
</Response>""",
}


def _xml_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


_xml_env = Environment(
    loader=DictLoader(_XML_TEMPLATES),
    autoescape=True,
    trim_blocks=True,
    lstrip_blocks=True,
)
_xml_env.filters["xmlvalue"] = _xml_value


@dataclass(frozen=True)
class PlivoManagerConfig:
    """
    Defaults applied to outbound calls.

    Attributes:
        default_phone_number: Caller id when the request has none
        app_base_url: Public base URL Plivo calls back into
        default_time_limit: Max call length in seconds
        default_ring_timeout: Seconds to ring before giving up
    """

    default_phone_number: str
    app_base_url: str
    default_time_limit: int = 3600
    default_ring_timeout: int = 30

    @property
    def answer_url(self) -> str:
        return f"{self.app_base_url.rstrip('/')}{ANSWER_PATH}"

    @property
    def recording_callback_url(self) -> str:
        return f"{self.app_base_url.rstrip('/')}{RECORDING_CALLBACK_PATH}"


class PlivoManager:
    """
    Business operations on top of PlivoClient.

    Attributes:
        client: Raw Plivo REST client
        config: Call defaults
    """

    def __init__(self, client: PlivoClient, config: PlivoManagerConfig):
        self.client = client
        self.config = config

    async def initiate_recorded_call(
        self, request: InitiateRecordedCallRequest
    ) -> InitiateRecordedCallResponse:
        """
        Place an outbound call whose answer XML records the conversation.

        The answer URL carries the recording callback URL as the
        ``recording_callback`` query parameter so the answer endpoint can
        point <Record action=...> at it.
        """
        answer_url = request.answer_callback or self.config.answer_url
        recording_callback_url = request.recording_callback or self.config.recording_callback_url
        answer_url_with_params = (
            f"{answer_url}?recording_callback={quote(recording_callback_url, safe='')}"
        )

        call_request = MakeCallRequest(
            from_=request.from_number or self.config.default_phone_number,
            to=request.to,
            answer_url=answer_url_with_params,
            answer_method="POST",
            caller_name=request.caller_name,
            time_limit=request.time_limit or self.config.default_time_limit,
            ring_timeout=self.config.default_ring_timeout,
        )

        response = await self.client.make_call(call_request)
        return InitiateRecordedCallResponse(
            call_uuid=response.request_uuid,
            message=response.message,
            api_id=response.api_id,
        )

    async def make_call(
        self,
        to: str,
        from_number: Optional[str] = None,
        answer_url: Optional[str] = None,
    ) -> MakeCallResponse:
        """Place a standard outbound call (no recording callback wiring)."""
        call_request = MakeCallRequest(
            from_=from_number or self.config.default_phone_number,
            to=to,
            answer_url=answer_url or self.config.answer_url,
            answer_method="POST",
            time_limit=self.config.default_time_limit,
            ring_timeout=self.config.default_ring_timeout,
        )
        return await self.client.make_call(call_request)

    async def get_call_details(self, call_uuid: str) -> CallDetails:
        return await self.client.get_call_details(call_uuid)

    async def get_all_calls(
        self,
        *,
        call_direction: Optional[str] = None,
        from_number: Optional[str] = None,
        to_number: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> CallList:
        return await self.client.get_calls(
            {
                "call_direction": call_direction,
                "from_number": from_number,
                "to_number": to_number,
                "limit": limit,
                "offset": offset,
            }
        )

    async def terminate_call(self, call_uuid: str) -> TerminateCallResponse:
        result = await self.client.terminate_call(call_uuid)
        return TerminateCallResponse(message=result.message)

    async def is_call_active(self, call_uuid: str) -> bool:
        """True while the call is queued, ringing or in progress. Lookup errors count as inactive."""
        try:
            details = await self.client.get_call_details(call_uuid)
        except ProviderError as e:
            logger.warning("Call status lookup failed", call_uuid=call_uuid, error=str(e))
            return False
        return details.is_active

    async def wait_for_recording(
        self,
        call_uuid: str,
        max_attempts: int = 30,
        delay: float = 2.0,
    ) -> Optional[CallDetails]:
        """
        Poll call details until the call is completed with a recording URL.

        Args:
            call_uuid: Call to poll
            max_attempts: Number of lookups before giving up
            delay: Seconds between lookups

        Returns:
            CallDetails with ``recording_url`` set, or None if it never appeared
        """
        for attempt in range(1, max_attempts + 1):
            details = await self.client.get_call_details(call_uuid)
            if details.has_recording:
                logger.info("Recording available", call_uuid=call_uuid, attempt=attempt)
                return details
            if attempt < max_attempts:
                await asyncio.sleep(delay)
        return None

    # === XML ===

    def generate_recording_xml(self, options: Optional[RecordXMLOptions] = None) -> str:
        """Answer XML announcing the recording and starting <Record>."""
        options = options or RecordXMLOptions()
        attributes = [
            ("action", options.action),
            ("method", options.method),
            ("fileFormat", options.file_format),
            ("redirect", options.redirect),
            ("timeout", options.timeout),
            ("maxLength", options.max_length),
            ("playBeep", options.play_beep),
            ("finishOnKey", options.finish_on_key),
            ("transcriptionType", options.transcription_type),
            ("transcriptionUrl", options.transcription_url),
            ("transcriptionMethod", options.transcription_method),
        ]
        return _xml_env.get_template("record.xml").render(
            notice=RECORDING_NOTICE,
            attributes=[(name, value) for name, value in attributes if value is not None],
        )

    def generate_speak_xml(self, text: str, voice: Optional[str] = None) -> str:
        return _xml_env.get_template("speak.xml").render(text=text, voice=voice)

    def generate_hangup_xml(self, reason: Optional[str] = None) -> str:
        return _xml_env.get_template("hangup.xml").render(reason=reason)

    async def validate_credentials(self) -> bool:
        return await self.client.validate_credentials()
