"""
Plivo webhook endpoints.

Endpoints:
- GET|POST /plivo/answer: Answer XML that records the call
- POST /plivo/recording-callback: Recording finished, start transcription
- GET /plivo/recording-callback: Endpoint description
"""

from typing import Optional

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Form, Query, status
from fastapi.responses import JSONResponse, Response

from callscribe.api.dependencies import get_orchestrator, get_voice_client
from callscribe.api.models import RecordingCallbackResponse
from callscribe.models.telephony import RecordingCallbackPayload, RecordXMLOptions
from callscribe.orchestration.recording_callback import (
    RecordingCallbackOrchestrator,
    RecordingEvent,
)
from callscribe.resilience.voice import ResilientVoiceClient

logger = structlog.get_logger(__name__)

router = APIRouter()

XML_MEDIA_TYPE = "application/xml"

ANSWER_ERROR_MESSAGE = "We're sorry, there was an error processing your call."


async def _start_transcription(
    orchestrator: RecordingCallbackOrchestrator, event: RecordingEvent
) -> None:
    # Async so Starlette runs it on the event loop rather than a worker thread
    orchestrator.spawn_transcription(event)


@router.api_route(
    "/answer",
    methods=["GET", "POST"],
    summary="Answer XML for recorded calls",
    response_class=Response,
    responses={200: {"content": {XML_MEDIA_TYPE: {}}}},
)
async def answer(
    recording_callback: Optional[str] = Query(default=None),
    voice: ResilientVoiceClient = Depends(get_voice_client),
) -> Response:
    """
    Called by Plivo when the callee picks up.

    Always answers 200 with XML; when rendering fails the caller hears an
    apology and the call is hung up.
    """
    manager = voice.manager
    try:
        xml = manager.generate_recording_xml(
            RecordXMLOptions(
                action=recording_callback or manager.config.recording_callback_url,
                method="POST",
                file_format="mp3",
                redirect=True,
                timeout=4,
                max_length=3600,
                play_beep=True,
                finish_on_key="#",
            )
        )
    except Exception as e:
        logger.error("Failed to render answer XML", error=str(e), exc_info=True)
        xml = manager.generate_hangup_xml(ANSWER_ERROR_MESSAGE)

    return Response(content=xml, media_type=XML_MEDIA_TYPE)


@router.post(
    "/recording-callback",
    response_model=RecordingCallbackResponse,
    summary="Recording finished",
    description="""
    Receives Plivo's recording callback. The call record is upserted as
    pending and transcription is scheduled after the response is sent;
    the transcription result only ever shows up on the call record.
    """,
    responses={400: {"description": "Missing RecordingUrl or CallUUID"}},
)
async def recording_callback(
    background_tasks: BackgroundTasks,
    recording_url: Optional[str] = Form(default=None, alias="RecordingUrl"),
    call_uuid: Optional[str] = Form(default=None, alias="CallUUID"),
    recording_id: Optional[str] = Form(default=None, alias="RecordingID"),
    recording_duration: Optional[str] = Form(default=None, alias="RecordingDuration"),
    recording_duration_ms: Optional[str] = Form(default=None, alias="RecordingDurationMs"),
    recording_format: Optional[str] = Form(default=None, alias="RecordingFormat"),
    from_number: Optional[str] = Form(default=None, alias="From"),
    to_number: Optional[str] = Form(default=None, alias="To"),
    orchestrator: RecordingCallbackOrchestrator = Depends(get_orchestrator),
):
    payload = RecordingCallbackPayload(
        RecordingUrl=recording_url,
        CallUUID=call_uuid,
        RecordingID=recording_id,
        RecordingDuration=recording_duration,
        RecordingDurationMs=recording_duration_ms,
        RecordingFormat=recording_format,
        From=from_number,
        To=to_number,
    )
    logger.info(
        "Recording callback received",
        call_uuid=payload.CallUUID,
        recording_id=payload.RecordingID,
    )

    try:
        event = RecordingEvent.from_callback(payload)
    except ValueError as e:
        logger.warning("Rejected recording callback", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "invalid_callback", "message": str(e)},
        )

    ack = await orchestrator.acknowledge(event)
    background_tasks.add_task(_start_transcription, orchestrator, event)

    return RecordingCallbackResponse(
        message=ack.message,
        call_uuid=ack.call_uuid,
        state=ack.state.value,
        persisted=ack.persisted,
    )


@router.get("/recording-callback", summary="Describe the recording callback endpoint")
async def describe_recording_callback() -> dict:
    return {
        "message": "Plivo recording callback endpoint",
        "method": "POST",
    }
