"""
Resilient voice client.

Wraps PlivoManager with circuit breaking and retries. Call placement
(``initiate_recorded_call`` and ``make_call``) shares the ``make_call``
breaker; call lookups have their own ``get_call_details`` breaker so a
placement outage does not block status checks. Termination and recording
polling are retried but not breaker-gated.
"""

import asyncio
import time
from typing import Callable, Optional

import structlog

from callscribe.clients.exceptions import ProviderHTTPError
from callscribe.managers.plivo_manager import PlivoManager
from callscribe.models.telephony import (
    CallDetails,
    InitiateRecordedCallRequest,
    InitiateRecordedCallResponse,
    MakeCallResponse,
    TerminateCallResponse,
)
from callscribe.resilience.engine import Sleeper
from callscribe.resilience.facade import ResilientFacade
from callscribe.resilience.models import ResilienceConfig, ResultEnvelope

logger = structlog.get_logger(__name__)

# Client errors Plivo may answer differently on a later attempt
RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})


class RecordingNotAvailable(Exception):
    """Raised when polling ended without a recording URL."""

    def __init__(self, call_uuid: str, attempts: int):
        self.call_uuid = call_uuid
        self.attempts = attempts
        super().__init__(f"Recording for {call_uuid} not available after {attempts} lookups")


def is_retryable_voice_error(error: Exception) -> bool:
    """4xx answers (other than 408/429) will not change on retry."""
    if isinstance(error, ProviderHTTPError) and error.is_client_error:
        return error.status_code in RETRYABLE_CLIENT_STATUSES
    return True


class ResilientVoiceClient(ResilientFacade):
    """Voice API facade with per-operation breakers."""

    def __init__(
        self,
        manager: PlivoManager,
        config: Optional[ResilienceConfig] = None,
        *,
        sleep: Sleeper = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(
            "voice",
            config or ResilienceConfig(),
            sleep=sleep,
            is_retryable=is_retryable_voice_error,
            clock=clock,
        )
        self._manager = manager
        self._create_breaker("make_call")
        self._create_breaker("get_call_details")

    @property
    def manager(self) -> PlivoManager:
        return self._manager

    async def initiate_recorded_call(
        self, request: InitiateRecordedCallRequest
    ) -> ResultEnvelope[InitiateRecordedCallResponse]:
        return await self._invoke(
            "make_call",
            "initiate_recorded_call",
            lambda: self._manager.initiate_recorded_call(request),
        )

    async def make_call(
        self,
        to: str,
        from_number: Optional[str] = None,
        answer_url: Optional[str] = None,
    ) -> ResultEnvelope[MakeCallResponse]:
        return await self._invoke(
            "make_call",
            "make_call",
            lambda: self._manager.make_call(to, from_number, answer_url),
        )

    async def get_call_details(self, call_uuid: str) -> ResultEnvelope[CallDetails]:
        return await self._invoke(
            "get_call_details",
            "get_call_details",
            lambda: self._manager.get_call_details(call_uuid),
        )

    async def terminate_call(self, call_uuid: str) -> ResultEnvelope[TerminateCallResponse]:
        return await self._invoke_without_breaker(
            "terminate_call",
            lambda: self._manager.terminate_call(call_uuid),
        )

    async def wait_for_recording(
        self,
        call_uuid: str,
        max_attempts: int = 30,
        delay: float = 2.0,
    ) -> Optional[CallDetails]:
        """
        Poll until the recording is available, retrying the whole poll on failure.

        Returns:
            CallDetails with a recording URL, or None if it never became available
        """

        async def poll() -> CallDetails:
            details = await self._manager.wait_for_recording(call_uuid, max_attempts, delay)
            if details is None:
                raise RecordingNotAvailable(call_uuid, max_attempts)
            return details

        envelope = await self._invoke_without_breaker("wait_for_recording", poll)
        if not envelope.success:
            logger.error(
                "Failed to get recording",
                call_uuid=call_uuid,
                error=envelope.error_message,
            )
            return None
        return envelope.data
