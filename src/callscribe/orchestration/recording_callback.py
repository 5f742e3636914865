"""
Recording callback orchestration.

Connects "recording ready" webhooks to background transcription:

    recording-received        webhook acknowledged, record upserted as pending
    transcription-in-flight   detached task calling the transcription facade
    transcription-completed   transcript fields written, status completed
    transcription-failed      error message written, status failed

The webhook response never waits for transcription. The background task
always finishes: every failure path ends in a ``failed`` write, and a
failed write is logged and reported on the outcome instead of raised.
"""

import asyncio
import contextlib
import time
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Optional

import structlog

from callscribe.models.call_record import CLEARED, TranscriptionStatus
from callscribe.models.telephony import RecordingCallbackPayload
from callscribe.models.transcription import TranscribeRecordingRequest, TranscribeRecordingResponse
from callscribe.monitoring.metrics import (
    transcription_latency_seconds,
    transcriptions_in_flight,
    transcriptions_total,
)
from callscribe.persistence.repository import CallRecordStore
from callscribe.resilience.models import ResultEnvelope
from callscribe.resilience.transcription import ResilientTranscriptionClient

logger = structlog.get_logger(__name__)


class CallbackState(str, Enum):
    RECORDING_RECEIVED = "recording-received"
    TRANSCRIPTION_IN_FLIGHT = "transcription-in-flight"
    TRANSCRIPTION_COMPLETED = "transcription-completed"
    TRANSCRIPTION_FAILED = "transcription-failed"


@dataclass(frozen=True)
class RecordingEvent:
    """A finished recording reported by the voice provider."""

    recording_url: str
    call_uuid: str
    recording_id: Optional[str] = None
    from_number: Optional[str] = None
    to_number: Optional[str] = None
    duration_seconds: Optional[int] = None

    @classmethod
    def from_callback(cls, payload: RecordingCallbackPayload) -> "RecordingEvent":
        """
        Build an event from Plivo's form payload.

        Raises:
            ValueError: If the recording URL or call UUID is missing
        """
        if not payload.RecordingUrl or not payload.CallUUID:
            raise ValueError("Missing required fields: RecordingUrl or CallUUID")

        duration: Optional[int] = None
        if payload.RecordingDuration:
            try:
                duration = int(float(payload.RecordingDuration))
            except (ValueError, OverflowError):
                logger.warning(
                    "Unparseable recording duration",
                    call_uuid=payload.CallUUID,
                    value=payload.RecordingDuration,
                )

        return cls(
            recording_url=payload.RecordingUrl,
            call_uuid=payload.CallUUID,
            recording_id=payload.RecordingID,
            from_number=payload.From,
            to_number=payload.To,
            duration_seconds=duration,
        )


@dataclass(frozen=True)
class CallbackAck:
    """Immediate answer to the webhook."""

    call_uuid: str
    state: CallbackState
    persisted: bool
    message: str = "Recording received, transcription in progress"


@dataclass(frozen=True)
class TranscriptionOutcome:
    """
    Result of one background transcription, for logs and tests.

    Attributes:
        state: Terminal state reached
        persisted: Whether the final record write succeeded
        error: Failure message when the transcription failed
        retry_count: Attempts the facade made (0 when the breaker rejected)
    """

    call_uuid: str
    state: CallbackState
    persisted: bool
    error: Optional[str] = None
    retry_count: Optional[int] = None


class RecordingCallbackOrchestrator:
    """
    Turns recording webhooks into background transcriptions.

    Attributes:
        transcription: Resilient transcription facade
        store: Call record store (only partial upserts are issued)
        dedupe_in_flight: Reuse the running task for repeated deliveries of one call
    """

    def __init__(
        self,
        transcription: ResilientTranscriptionClient,
        store: CallRecordStore,
        *,
        max_concurrency: int = 0,
        dedupe_in_flight: bool = True,
    ):
        """
        Initialize orchestrator.

        Args:
            transcription: Resilient transcription facade
            store: Call record store
            max_concurrency: Max concurrent transcriptions (0 = unbounded)
            dedupe_in_flight: Ignore duplicate deliveries while one is running
        """
        if max_concurrency < 0:
            raise ValueError("max_concurrency must be >= 0")

        self.transcription = transcription
        self.store = store
        self.dedupe_in_flight = dedupe_in_flight
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None
        self._tasks: set[asyncio.Task] = set()
        self._by_call: dict[str, asyncio.Task] = {}

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def task_for(self, call_uuid: str) -> Optional[asyncio.Task]:
        return self._by_call.get(call_uuid)

    async def acknowledge(self, event: RecordingEvent) -> CallbackAck:
        """
        Record the webhook and return immediately.

        The pending upsert is best-effort; a storage failure still produces
        an acknowledgement so the provider does not redeliver.
        """
        logger.info(
            "Recording received",
            call_uuid=event.call_uuid,
            recording_id=event.recording_id,
            duration_seconds=event.duration_seconds,
            state=CallbackState.RECORDING_RECEIVED.value,
        )
        persisted = await self._write(
            event.call_uuid,
            {
                "from_number": event.from_number,
                "to_number": event.to_number,
                "recording_url": event.recording_url,
                "recording_id": event.recording_id,
                "duration": event.duration_seconds,
                "transcription_status": TranscriptionStatus.PENDING,
            },
        )
        return CallbackAck(
            call_uuid=event.call_uuid,
            state=CallbackState.RECORDING_RECEIVED,
            persisted=persisted,
        )

    def spawn_transcription(self, event: RecordingEvent) -> "asyncio.Task[TranscriptionOutcome]":
        """
        Start transcription as a detached task.

        Must be called from a running event loop. With ``dedupe_in_flight``
        a delivery for a call that is still transcribing returns the
        existing task instead of starting another.
        """
        existing = self._by_call.get(event.call_uuid)
        if self.dedupe_in_flight and existing is not None and not existing.done():
            transcriptions_total.labels(status="deduplicated").inc()
            logger.info(
                "Duplicate recording callback ignored, transcription already running",
                call_uuid=event.call_uuid,
            )
            return existing

        task = asyncio.create_task(self._run(event), name=f"transcribe:{event.call_uuid}")
        self._tasks.add(task)
        self._by_call[event.call_uuid] = task
        task.add_done_callback(partial(self._forget, event.call_uuid))

        logger.info(
            "Transcription started",
            call_uuid=event.call_uuid,
            state=CallbackState.TRANSCRIPTION_IN_FLIGHT.value,
            in_flight=self.in_flight,
        )
        return task

    def _forget(self, call_uuid: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if self._by_call.get(call_uuid) is task:
            del self._by_call[call_uuid]
        if task.cancelled():
            logger.warning("Transcription task cancelled", call_uuid=call_uuid)
        elif task.exception() is not None:
            logger.error(
                "Transcription task crashed",
                call_uuid=call_uuid,
                exc_info=task.exception(),
            )

    async def _run(self, event: RecordingEvent) -> TranscriptionOutcome:
        admission = self._semaphore if self._semaphore is not None else contextlib.nullcontext()
        async with admission:
            transcriptions_in_flight.inc()
            started = time.monotonic()
            try:
                outcome = await self._transcribe_and_record(event)
            finally:
                transcriptions_in_flight.dec()

        status = "completed" if outcome.state is CallbackState.TRANSCRIPTION_COMPLETED else "failed"
        transcriptions_total.labels(status=status).inc()
        transcription_latency_seconds.labels(status=status).observe(time.monotonic() - started)
        return outcome

    async def _transcribe_and_record(self, event: RecordingEvent) -> TranscriptionOutcome:
        request = TranscribeRecordingRequest(
            recording_url=event.recording_url,
            call_uuid=event.call_uuid,
        )
        try:
            envelope = await self.transcription.transcribe_recording(request)
        except Exception as e:
            # The facade reports failures in the envelope; anything raised is a bug
            logger.error(
                "Transcription facade raised",
                call_uuid=event.call_uuid,
                error_type=type(e).__name__,
                exc_info=True,
            )
            envelope = ResultEnvelope.fail(e)

        if envelope.success and envelope.data is not None:
            return await self._record_success(event.call_uuid, envelope)
        return await self._record_failure(event.call_uuid, envelope)

    async def _record_success(
        self, call_uuid: str, envelope: ResultEnvelope[TranscribeRecordingResponse]
    ) -> TranscriptionOutcome:
        result = envelope.data
        persisted = await self._write(
            call_uuid,
            {
                "transcript": result.transcript,
                "transcript_confidence": result.confidence,
                "transcript_duration": result.duration,
                "word_count": result.word_count,
                "utterance_count": result.utterance_count,
                "language": result.language,
                "transcription_metadata": result.metadata.model_dump(),
                "transcription_status": TranscriptionStatus.COMPLETED,
                # Overwrites an error left by an earlier failed delivery
                "error_message": CLEARED,
            },
        )
        logger.info(
            "Transcription completed",
            call_uuid=call_uuid,
            confidence=result.confidence,
            word_count=result.word_count,
            retry_count=envelope.retry_count,
            persisted=persisted,
            state=CallbackState.TRANSCRIPTION_COMPLETED.value,
        )
        return TranscriptionOutcome(
            call_uuid=call_uuid,
            state=CallbackState.TRANSCRIPTION_COMPLETED,
            persisted=persisted,
            retry_count=envelope.retry_count,
        )

    async def _record_failure(
        self, call_uuid: str, envelope: ResultEnvelope[Any]
    ) -> TranscriptionOutcome:
        error = envelope.error_message or "Transcription failed"
        persisted = await self._write(
            call_uuid,
            {
                "transcription_status": TranscriptionStatus.FAILED,
                "error_message": error,
            },
        )
        logger.error(
            "Transcription failed",
            call_uuid=call_uuid,
            error=error,
            retry_count=envelope.retry_count,
            circuit_breaker_state=envelope.circuit_breaker_state,
            persisted=persisted,
            state=CallbackState.TRANSCRIPTION_FAILED.value,
        )
        return TranscriptionOutcome(
            call_uuid=call_uuid,
            state=CallbackState.TRANSCRIPTION_FAILED,
            persisted=persisted,
            error=error,
            retry_count=envelope.retry_count,
        )

    async def _write(self, call_uuid: str, fields: dict[str, Any]) -> bool:
        """Best-effort upsert: failures are logged, never retried or raised."""
        try:
            await self.store.upsert_call_record(fields, call_uuid)
        except Exception as e:
            logger.error(
                "Failed to update call record",
                call_uuid=call_uuid,
                fields=sorted(fields),
                error_type=type(e).__name__,
                error=str(e),
            )
            return False
        return True

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for outstanding transcriptions (shutdown and tests)."""
        pending = list(self._tasks)
        if not pending:
            return
        logger.info("Draining transcription tasks", count=len(pending), timeout=timeout)
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        if still_running:
            logger.warning("Transcription tasks still running after drain", count=len(still_running))
