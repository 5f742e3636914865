"""
Call endpoints.

Endpoints:
- POST /calls/initiate: Place an outbound recorded call
- GET /calls/{call_uuid}: Provider details merged with the stored record
- GET /calls: Recent stored call records
"""

import structlog
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from callscribe.api.dependencies import get_store, get_voice_client
from callscribe.api.models import (
    CallFailureResponse,
    CallListResponse,
    CallLookupResponse,
    InitiateCallRequest,
    InitiateCallResponse,
)
from callscribe.models.telephony import InitiateRecordedCallRequest
from callscribe.persistence.repository import CallRecordStore
from callscribe.resilience.voice import ResilientVoiceClient

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/initiate",
    response_model=InitiateCallResponse,
    summary="Place an outbound recorded call",
    description="""
    Place a call through the resilient voice facade. The answer XML records
    the conversation and points the recording callback back at this service.

    Failures are returned as JSON with the attempt count and breaker state:
    503 when the make_call breaker rejected the call, 502 otherwise.
    """,
    responses={
        200: {"description": "Call placed"},
        400: {"description": "Invalid phone number"},
        502: {"model": CallFailureResponse, "description": "Voice API failed"},
        503: {"model": CallFailureResponse, "description": "Circuit breaker open"},
    },
)
async def initiate_call(
    request: InitiateCallRequest,
    voice: ResilientVoiceClient = Depends(get_voice_client),
):
    envelope = await voice.initiate_recorded_call(
        InitiateRecordedCallRequest(to=request.to_number, from_number=request.from_number)
    )

    if not envelope.success:
        status_code = (
            status.HTTP_503_SERVICE_UNAVAILABLE
            if envelope.circuit_open
            else status.HTTP_502_BAD_GATEWAY
        )
        logger.error(
            "Call initiation failed",
            to_number=request.to_number,
            error=envelope.error_message,
            retry_count=envelope.retry_count,
            circuit_breaker_state=envelope.circuit_breaker_state,
        )
        failure = CallFailureResponse(
            error="circuit_open" if envelope.circuit_open else "call_failed",
            message=envelope.error_message or "Failed to initiate call",
            retry_count=envelope.retry_count,
            circuit_breaker_state=envelope.circuit_breaker_state,
        )
        return JSONResponse(status_code=status_code, content=failure.model_dump())

    result = envelope.data
    logger.info(
        "Call initiated",
        call_uuid=result.call_uuid,
        retry_count=envelope.retry_count,
    )
    return InitiateCallResponse(
        call_uuid=result.call_uuid,
        message=result.message,
        api_id=result.api_id,
        retry_count=envelope.retry_count,
        circuit_breaker_state=envelope.circuit_breaker_state,
    )


@router.get(
    "",
    response_model=CallListResponse,
    summary="List recent calls",
)
async def list_calls(
    limit: int = Query(default=20, ge=1, le=200),
    store: CallRecordStore = Depends(get_store),
) -> CallListResponse:
    calls = await store.list_recent_calls(limit)
    return CallListResponse(calls=calls, count=len(calls))


@router.get(
    "/{call_uuid}",
    response_model=CallLookupResponse,
    summary="Get call details",
    description="""
    Voice API details for the call merged with the stored record.

    A failed provider lookup does not fail the request when a stored
    record exists; ``details_error`` explains what went wrong.
    """,
    responses={404: {"description": "Unknown call"}},
)
async def get_call(
    call_uuid: str,
    voice: ResilientVoiceClient = Depends(get_voice_client),
    store: CallRecordStore = Depends(get_store),
):
    envelope = await voice.get_call_details(call_uuid)
    record = await store.get_call_record(call_uuid)

    if not envelope.success and record is None:
        return JSONResponse(
            status_code=(
                status.HTTP_503_SERVICE_UNAVAILABLE
                if envelope.circuit_open
                else status.HTTP_404_NOT_FOUND
            ),
            content={
                "error": "circuit_open" if envelope.circuit_open else "call_not_found",
                "message": envelope.error_message,
                "call_uuid": call_uuid,
            },
        )

    return CallLookupResponse(
        call_uuid=call_uuid,
        details=envelope.data,
        details_error=envelope.error_message,
        record=record,
    )
