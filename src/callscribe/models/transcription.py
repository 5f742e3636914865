"""
Speech-to-text (Deepgram) data models.

Only the parts of Deepgram's prerecorded response that the pipeline reads
are modelled; everything else is preserved through ``extra="allow"``.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DeepgramModel = Literal["nova-2", "nova", "enhanced", "base", "whisper"]


class TranscriptionOptions(BaseModel):
    """Query options for POST /listen. Unset options are not sent."""

    model: Optional[DeepgramModel] = None
    language: Optional[str] = None
    punctuate: Optional[bool] = None
    profanity_filter: Optional[bool] = None
    redact: Optional[list[str]] = None
    diarize: Optional[bool] = None
    smart_format: Optional[bool] = None
    utterances: Optional[bool] = None
    detect_language: Optional[bool] = None
    paragraphs: Optional[bool] = None
    summarize: Optional[bool | Literal["v2"]] = None
    detect_topics: Optional[bool] = None
    intents: Optional[bool] = None
    sentiment: Optional[bool] = None
    keywords: Optional[list[str]] = None
    replace: Optional[list[dict[str, str]]] = None
    search: Optional[list[str]] = None
    callback: Optional[str] = None
    callback_method: Optional[Literal["POST", "PUT"]] = None

    def merged_over(self, defaults: "TranscriptionOptions") -> "TranscriptionOptions":
        """Return ``defaults`` with every option set on ``self`` taking precedence."""
        return defaults.model_copy(update=self.model_dump(exclude_none=True))

    def to_query_params(self) -> list[tuple[str, str]]:
        """Encode as Deepgram query parameters (lists repeat the key)."""
        params: list[tuple[str, str]] = []
        for key, value in self.model_dump(exclude_none=True).items():
            if key == "replace":
                params.extend(("replace", f"{r['find']}:{r['replace']}") for r in value)
            elif key == "callback_method":
                params.append((key, value.lower()))
            elif isinstance(value, list):
                params.extend((key, str(v)) for v in value)
            elif isinstance(value, bool):
                params.append((key, "true" if value else "false"))
            else:
                params.append((key, str(value)))
        return params


class Word(BaseModel):
    model_config = ConfigDict(extra="allow")

    word: str
    start: float
    end: float
    confidence: float
    punctuated_word: Optional[str] = None
    speaker: Optional[int] = None
    speaker_confidence: Optional[float] = None


class Utterance(BaseModel):
    model_config = ConfigDict(extra="allow")

    start: float
    end: float
    confidence: float
    channel: int = 0
    transcript: str
    words: list[Word] = Field(default_factory=list)
    speaker: int = 0
    id: Optional[str] = None


class Alternative(BaseModel):
    model_config = ConfigDict(extra="allow")

    transcript: str = ""
    confidence: float = 0.0
    words: list[Word] = Field(default_factory=list)


class Channel(BaseModel):
    model_config = ConfigDict(extra="allow")

    alternatives: list[Alternative] = Field(default_factory=list)
    detected_language: Optional[str] = None
    language_confidence: Optional[float] = None


class ResponseMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    transaction_key: str = ""
    request_id: str = ""
    created: str = ""
    duration: float = 0.0
    channels: int = 1
    models: list[str] = Field(default_factory=list)


class Results(BaseModel):
    model_config = ConfigDict(extra="allow")

    channels: list[Channel] = Field(default_factory=list)
    utterances: Optional[list[Utterance]] = None


class DeepgramResponse(BaseModel):
    """Full prerecorded transcription response."""

    model_config = ConfigDict(extra="allow")

    metadata: ResponseMetadata
    results: Results


class TranscriptMetadata(BaseModel):
    transaction_key: str = ""
    request_id: str = ""
    created: str = ""


class TranscriptionResult(BaseModel):
    """Primary channel/alternative of a response, flattened."""

    transcript: str
    confidence: float
    duration: float
    words: list[Word] = Field(default_factory=list)
    utterances: Optional[list[Utterance]] = None
    language: Optional[str] = None
    metadata: TranscriptMetadata = Field(default_factory=TranscriptMetadata)


class TranscribeRecordingRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    recording_url: str
    call_uuid: Optional[str] = None
    language: Optional[str] = None
    options: Optional[TranscriptionOptions] = None


class TranscribeRecordingResponse(BaseModel):
    """Summary of a transcribed recording, as persisted on the call record."""

    transcript: str
    confidence: float
    duration: float
    word_count: int
    utterance_count: Optional[int] = None
    language: Optional[str] = None
    metadata: TranscriptMetadata = Field(default_factory=TranscriptMetadata)
    full_response: Optional[TranscriptionResult] = None


class InsightUtterance(BaseModel):
    speaker: int
    text: str
    start: float
    end: float
    confidence: float


class TranscriptionInsights(BaseModel):
    transcript: str
    confidence: float
    duration: float
    speakers: int
    utterances: list[InsightUtterance] = Field(default_factory=list)
    sentiment: Optional[Literal["positive", "negative", "neutral"]] = None


class SpeakerTurn(BaseModel):
    speaker: int
    text: str
    duration: float


class ConversationStats(BaseModel):
    total_duration: float
    speaker_count: int
    speaker_durations: dict[int, float] = Field(default_factory=dict)


def summarize_raw(data: dict[str, Any]) -> dict[str, Any]:
    """Short description of a raw response for logs."""
    metadata = data.get("metadata") or {}
    return {
        "request_id": metadata.get("request_id"),
        "duration": metadata.get("duration"),
        "channels": len((data.get("results") or {}).get("channels") or []),
    }
