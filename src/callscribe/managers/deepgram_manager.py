"""
Deepgram manager: transcription business logic.

Merges configured defaults into transcription options, reduces Deepgram
responses to the summary the pipeline persists, and offers pure helpers
for analysing transcripts (speaker turns, confidence, conversation stats).
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from callscribe.clients.deepgram_client import DeepgramClient
from callscribe.models.transcription import (
    ConversationStats,
    DeepgramModel,
    DeepgramResponse,
    InsightUtterance,
    SpeakerTurn,
    TranscribeRecordingRequest,
    TranscribeRecordingResponse,
    TranscriptionInsights,
    TranscriptionOptions,
    TranscriptionResult,
    Utterance,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DeepgramManagerConfig:
    default_model: DeepgramModel = "nova-2"
    default_language: str = "en"
    enable_smart_format: bool = True
    enable_diarization: bool = True
    enable_utterances: bool = True
    enable_sentiment: bool = False


class DeepgramManager:
    """
    Business operations on top of DeepgramClient.

    Attributes:
        client: Raw Deepgram REST client
        config: Default transcription options
    """

    def __init__(self, client: DeepgramClient, config: Optional[DeepgramManagerConfig] = None):
        self.client = client
        self.config = config or DeepgramManagerConfig()

    def _defaults(self, language: Optional[str] = None) -> TranscriptionOptions:
        return TranscriptionOptions(
            model=self.config.default_model,
            language=language or self.config.default_language,
            smart_format=self.config.enable_smart_format,
            punctuate=True,
            diarize=self.config.enable_diarization,
            utterances=self.config.enable_utterances,
            sentiment=self.config.enable_sentiment,
        )

    async def transcribe_recording(
        self, request: TranscribeRecordingRequest
    ) -> TranscribeRecordingResponse:
        """
        Transcribe a call recording and summarise the result.

        Request options override the configured defaults field by field.
        """
        options = self._defaults(request.language)
        if request.options is not None:
            options = request.options.merged_over(options)

        result = await self.client.transcribe_url_simplified(request.recording_url, options)

        logger.info(
            "Recording transcribed",
            call_uuid=request.call_uuid,
            confidence=result.confidence,
            duration=result.duration,
            word_count=len(result.words),
        )

        return TranscribeRecordingResponse(
            transcript=result.transcript,
            confidence=result.confidence,
            duration=result.duration,
            word_count=len(result.words),
            utterance_count=len(result.utterances) if result.utterances is not None else None,
            language=result.language,
            metadata=result.metadata,
            full_response=result,
        )

    async def transcribe_with_insights(self, recording_url: str) -> TranscriptionInsights:
        """Transcribe with diarization forced on and summarise per-speaker utterances."""
        options = TranscriptionOptions(
            model=self.config.default_model,
            language=self.config.default_language,
            smart_format=True,
            punctuate=True,
            diarize=True,
            utterances=True,
            sentiment=True,
        )
        result = await self.client.transcribe_url_simplified(recording_url, options)
        utterances = result.utterances or []

        return TranscriptionInsights(
            transcript=result.transcript,
            confidence=result.confidence,
            duration=result.duration,
            speakers=len({u.speaker for u in utterances}),
            utterances=[
                InsightUtterance(
                    speaker=u.speaker,
                    text=u.transcript,
                    start=u.start,
                    end=u.end,
                    confidence=u.confidence,
                )
                for u in utterances
            ],
            # Deepgram reports sentiment per segment only
            sentiment=None,
        )

    async def transcribe_url(
        self, url: str, options: Optional[TranscriptionOptions] = None
    ) -> DeepgramResponse:
        merged = self._defaults()
        if options is not None:
            merged = options.merged_over(merged)
        return await self.client.transcribe_url(url, merged)

    async def transcribe_buffer(
        self,
        audio: bytes,
        options: Optional[TranscriptionOptions] = None,
        *,
        mimetype: str = "audio/mpeg",
    ) -> DeepgramResponse:
        merged = TranscriptionOptions(
            model=self.config.default_model,
            language=self.config.default_language,
            smart_format=self.config.enable_smart_format,
            punctuate=True,
        )
        if options is not None:
            merged = options.merged_over(merged)
        return await self.client.transcribe_buffer(audio, merged, mimetype=mimetype)

    # === Transcript helpers ===

    @staticmethod
    def extract_summary(transcript: str, max_length: int = 200) -> str:
        """Truncate at the last word boundary within ``max_length`` and append '...'."""
        if len(transcript) <= max_length:
            return transcript
        truncated = transcript[:max_length]
        last_space = truncated.rfind(" ")
        if last_space > 0:
            return truncated[:last_space] + "..."
        return truncated + "..."

    @staticmethod
    def calculate_average_confidence(result: TranscriptionResult) -> float:
        """Mean word confidence, or the transcript confidence when there are no words."""
        if not result.words:
            return result.confidence
        return sum(w.confidence for w in result.words) / len(result.words)

    @staticmethod
    def is_quality_acceptable(result: TranscriptionResult, min_confidence: float = 0.7) -> bool:
        return result.confidence >= min_confidence

    @staticmethod
    def extract_speaker_turns(utterances: list[Utterance]) -> list[SpeakerTurn]:
        return [
            SpeakerTurn(speaker=u.speaker, text=u.transcript, duration=u.end - u.start)
            for u in utterances
        ]

    @staticmethod
    def calculate_conversation_stats(utterances: list[Utterance]) -> ConversationStats:
        speaker_durations: dict[int, float] = {}
        total_duration = 0.0
        for u in utterances:
            duration = u.end - u.start
            total_duration += duration
            speaker_durations[u.speaker] = speaker_durations.get(u.speaker, 0.0) + duration
        return ConversationStats(
            total_duration=total_duration,
            speaker_count=len(speaker_durations),
            speaker_durations=speaker_durations,
        )

    async def validate_api_key(self) -> bool:
        return await self.client.validate_api_key()
