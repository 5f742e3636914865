"""
API request/response models for the HTTP endpoints.

Defines Pydantic models for:
- Call initiation requests and responses
- Call lookups (provider details merged with the stored record)
- Recording callback acknowledgements
- Health and resilience monitoring
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from callscribe.models.call_record import CallRecord
from callscribe.models.telephony import CallDetails

E164_PATTERN = r"^\+?[1-9]\d{1,14}$"


class InitiateCallRequest(BaseModel):
    """Request to place an outbound recorded call."""

    to_number: str = Field(
        pattern=E164_PATTERN,
        description="Destination number in E.164 format",
        examples=["+14155550123"],
    )
    from_number: Optional[str] = Field(
        default=None,
        pattern=E164_PATTERN,
        description="Caller id (defaults to PLIVO_PHONE_NUMBER)",
    )


class InitiateCallResponse(BaseModel):
    """Response for a successfully placed call."""

    success: bool = True
    call_uuid: str = Field(description="Provider request UUID for the call")
    message: str
    api_id: str
    retry_count: Optional[int] = Field(
        default=None, description="Attempts the voice facade made"
    )
    circuit_breaker_state: Optional[str] = Field(
        default=None,
        description="State of the make_call breaker after the call",
        examples=["closed", "open", "half-open"],
    )


class CallFailureResponse(BaseModel):
    """Response when the voice facade could not place the call."""

    success: bool = False
    error: str = Field(examples=["circuit_open", "call_failed"])
    message: str
    retry_count: Optional[int] = None
    circuit_breaker_state: Optional[str] = None


class CallLookupResponse(BaseModel):
    """Provider call details merged with the stored record."""

    call_uuid: str
    details: Optional[CallDetails] = Field(
        default=None, description="Voice API details (None when the lookup failed)"
    )
    details_error: Optional[str] = None
    record: Optional[CallRecord] = Field(
        default=None, description="Stored call record, if a recording was received"
    )


class CallListResponse(BaseModel):
    calls: list[CallRecord]
    count: int


class RecordingCallbackResponse(BaseModel):
    """Immediate acknowledgement of a recording callback."""

    success: bool = True
    message: str
    call_uuid: str
    state: str = Field(examples=["recording-received"])
    persisted: bool = Field(description="Whether the pending record was stored")


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str = Field(
        description="Overall health status",
        examples=["healthy", "degraded"],
    )
    version: str = Field(
        description="Application version",
        examples=["0.1.0"],
    )
    services: dict[str, str] = Field(
        description="Service-specific health status",
        examples=[{"make_call": "closed", "transcribe": "open", "storage": "redis"}],
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="Health check timestamp (UTC)",
    )


class ResilienceStatusResponse(BaseModel):
    """Circuit breaker snapshots per facade."""

    voice: dict[str, dict[str, Any]]
    transcription: dict[str, dict[str, Any]]
    transcriptions_in_flight: int
    timestamp: datetime = Field(default_factory=datetime.utcnow)
