"""
Voice API (Plivo) data models.

Request/response shapes for the Plivo REST API plus the higher-level
request/response pair used by the voice facade. Field names on the raw
API models follow Plivo's snake_case wire format.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

HttpMethod = Literal["GET", "POST"]

ACTIVE_CALL_STATUSES = frozenset({"queued", "ringing", "in-progress"})


class MakeCallRequest(BaseModel):
    """Payload for POST /Account/{auth_id}/Call/."""

    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(..., alias="from", description="Caller id (E.164)")
    to: str = Field(..., description="Destination number (E.164)")
    answer_url: str = Field(..., description="URL Plivo fetches XML from when the call is answered")
    answer_method: HttpMethod = "POST"
    ring_url: Optional[str] = None
    hangup_url: Optional[str] = None
    fallback_url: Optional[str] = None
    caller_name: Optional[str] = None
    send_digits: Optional[str] = None
    time_limit: Optional[int] = Field(default=None, ge=1, description="Max call length in seconds")
    ring_timeout: Optional[int] = Field(default=None, ge=1, description="Seconds to ring before giving up")
    machine_detection: Optional[Literal["true", "false", "hangup"]] = None
    parent_call_uuid: Optional[str] = None

    def to_payload(self) -> dict:
        """Serialize for the wire: Plivo expects "from" and omits unset fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class MakeCallResponse(BaseModel):
    """Response from POST /Call/."""

    model_config = ConfigDict(extra="allow")

    message: str
    request_uuid: str
    api_id: str


class CallDetails(BaseModel):
    """Response from GET /Call/{call_uuid}/."""

    model_config = ConfigDict(extra="allow")

    call_uuid: str
    api_id: Optional[str] = None
    from_number: Optional[str] = None
    to_number: Optional[str] = None
    call_direction: Optional[str] = None
    call_duration: Optional[int] = None
    call_state: Optional[str] = None
    call_status: Optional[str] = None
    total_amount: Optional[str] = None
    total_rate: Optional[str] = None
    parent_call_uuid: Optional[str] = None
    hangup_cause_code: Optional[int] = None
    hangup_cause_name: Optional[str] = None
    hangup_source: Optional[str] = None
    resource_uri: Optional[str] = None
    recording_url: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.call_status in ACTIVE_CALL_STATUSES

    @property
    def has_recording(self) -> bool:
        return self.call_status == "completed" and bool(self.recording_url)


class CallListMeta(BaseModel):
    limit: int
    offset: int
    next: Optional[str] = None
    previous: Optional[str] = None
    total_count: int


class CallList(BaseModel):
    """Response from GET /Call/ (paginated)."""

    api_id: str
    meta: CallListMeta
    objects: list[CallDetails] = Field(default_factory=list)


class LiveCall(BaseModel):
    """Response from GET /Call/{call_uuid}/?status=live."""

    model_config = ConfigDict(extra="allow")

    api_id: str
    calls: list[str] = Field(default_factory=list)


class ProviderAck(BaseModel):
    """Generic {message, api_id} acknowledgement (terminate, update)."""

    model_config = ConfigDict(extra="allow")

    message: str = ""
    api_id: Optional[str] = None


class CallUpdate(BaseModel):
    """Payload for POST /Call/{call_uuid}/ (transfer legs to new XML)."""

    legs: Optional[Literal["aleg", "bleg", "both"]] = None
    aleg_url: Optional[str] = None
    aleg_method: Optional[HttpMethod] = None
    bleg_url: Optional[str] = None
    bleg_method: Optional[HttpMethod] = None


class InitiateRecordedCallRequest(BaseModel):
    """
    High-level request to place a recorded outbound call.

    Unset fields fall back to the manager's configured defaults.
    """

    model_config = ConfigDict(frozen=True)

    to: str = Field(..., description="Destination number")
    from_number: Optional[str] = Field(default=None, description="Caller id (defaults to PLIVO_PHONE_NUMBER)")
    caller_name: Optional[str] = None
    time_limit: Optional[int] = Field(default=None, ge=1)
    recording_callback: Optional[str] = Field(
        default=None, description="Where Plivo posts the finished recording"
    )
    answer_callback: Optional[str] = Field(
        default=None, description="Where Plivo fetches the answer XML"
    )


class InitiateRecordedCallResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    call_uuid: str = Field(..., description="Request UUID assigned by Plivo")
    message: str
    api_id: str


class TerminateCallResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class RecordXMLOptions(BaseModel):
    """Attributes of the <Record> element in the answer XML."""

    action: Optional[str] = Field(default=None, description="Recording callback URL")
    method: HttpMethod = "POST"
    file_format: Literal["mp3", "wav"] = "mp3"
    redirect: bool = True
    timeout: int = 4
    max_length: int = 3600
    play_beep: bool = True
    finish_on_key: Optional[str] = "#"
    transcription_type: Optional[Literal["auto", "hybrid"]] = None
    transcription_url: Optional[str] = None
    transcription_method: Optional[HttpMethod] = None


class RecordingCallbackPayload(BaseModel):
    """Form fields Plivo posts to the recording callback URL."""

    model_config = ConfigDict(extra="ignore")

    RecordingUrl: Optional[str] = None
    CallUUID: Optional[str] = None
    RecordingID: Optional[str] = None
    RecordingDuration: Optional[str] = None
    RecordingDurationMs: Optional[str] = None
    RecordingFormat: Optional[str] = None
    From: Optional[str] = None
    To: Optional[str] = None
