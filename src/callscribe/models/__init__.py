"""
Data models for callscribe.

Components:
- telephony: Plivo request/response models and XML options
- transcription: Deepgram options, responses and derived summaries
- call_record: Stored call record and transcription status
"""

from callscribe.models.call_record import CallRecord, TranscriptionStatus
from callscribe.models.telephony import (
    CallDetails,
    InitiateRecordedCallRequest,
    InitiateRecordedCallResponse,
    MakeCallRequest,
    MakeCallResponse,
    RecordingCallbackPayload,
    RecordXMLOptions,
    TerminateCallResponse,
)
from callscribe.models.transcription import (
    TranscribeRecordingRequest,
    TranscribeRecordingResponse,
    TranscriptionInsights,
    TranscriptionOptions,
    TranscriptionResult,
    Utterance,
    Word,
)

__all__ = [
    "CallRecord",
    "TranscriptionStatus",
    "CallDetails",
    "InitiateRecordedCallRequest",
    "InitiateRecordedCallResponse",
    "MakeCallRequest",
    "MakeCallResponse",
    "RecordingCallbackPayload",
    "RecordXMLOptions",
    "TerminateCallResponse",
    "TranscribeRecordingRequest",
    "TranscribeRecordingResponse",
    "TranscriptionInsights",
    "TranscriptionOptions",
    "TranscriptionResult",
    "Utterance",
    "Word",
]
