"""
Call record model.

A call record is owned by the storage collaborator. The recording
callback orchestrator only ever writes partial updates to it, moving
``transcription_status`` from ``pending`` to ``completed`` or ``failed``.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

# Stored in place of a value to blank it (None fields are never written)
CLEARED = ""


class TranscriptionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class CallRecord(BaseModel):
    """Stored state of one call, keyed by ``call_uuid``."""

    call_uuid: str
    from_number: Optional[str] = None
    to_number: Optional[str] = None
    recording_url: Optional[str] = None
    recording_id: Optional[str] = None
    duration: Optional[int] = Field(default=None, description="Recording duration in seconds")
    transcription_status: Optional[TranscriptionStatus] = None
    transcript: Optional[str] = None
    transcript_confidence: Optional[float] = None
    transcript_duration: Optional[float] = None
    word_count: Optional[int] = None
    utterance_count: Optional[int] = None
    language: Optional[str] = None
    transcription_metadata: Optional[dict[str, Any]] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("error_message")
    @classmethod
    def _cleared_to_none(cls, value: Optional[str]) -> Optional[str]:
        return None if value == CLEARED else value
