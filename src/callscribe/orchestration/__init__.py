"""
Webhook-driven orchestration.

- recording_callback.py: Recording-ready webhook → background transcription → call record
"""

from callscribe.orchestration.recording_callback import (
    CallbackAck,
    CallbackState,
    RecordingCallbackOrchestrator,
    RecordingEvent,
    TranscriptionOutcome,
)

__all__ = [
    "CallbackAck",
    "CallbackState",
    "RecordingCallbackOrchestrator",
    "RecordingEvent",
    "TranscriptionOutcome",
]
