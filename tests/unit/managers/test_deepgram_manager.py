"""
Unit tests for DeepgramManager (option defaults and transcript helpers).
"""

import pytest

from callscribe.managers.deepgram_manager import DeepgramManager, DeepgramManagerConfig
from callscribe.models.transcription import (
    TranscribeRecordingRequest,
    TranscriptionOptions,
    TranscriptionResult,
    Utterance,
    Word,
)

RECORDING_URL = "https://media.plivo.com/recordings/abc.mp3"


@pytest.mark.asyncio
async def test_transcribe_recording_summarises_result(
    deepgram_manager, mock_deepgram_client, transcription_result
):
    mock_deepgram_client.transcribe_url_simplified.return_value = transcription_result

    response = await deepgram_manager.transcribe_recording(
        TranscribeRecordingRequest(recording_url=RECORDING_URL, call_uuid="abc")
    )

    assert response.transcript == transcription_result.transcript
    assert response.word_count == 11
    assert response.utterance_count == 2
    assert response.language == "en"
    assert response.duration == 12.48
    assert response.full_response == transcription_result

    url, options = mock_deepgram_client.transcribe_url_simplified.await_args.args
    assert url == RECORDING_URL
    assert options.model == "nova-2"
    assert options.language == "en"
    assert options.diarize is True
    assert options.utterances is True
    assert options.sentiment is False


@pytest.mark.asyncio
async def test_request_options_override_defaults(
    deepgram_manager, mock_deepgram_client, transcription_result
):
    mock_deepgram_client.transcribe_url_simplified.return_value = transcription_result

    await deepgram_manager.transcribe_recording(
        TranscribeRecordingRequest(
            recording_url=RECORDING_URL,
            language="fr",
            options=TranscriptionOptions(diarize=False, keywords=["facture"]),
        )
    )

    options = mock_deepgram_client.transcribe_url_simplified.await_args.args[1]
    assert options.language == "fr"
    assert options.diarize is False
    assert options.keywords == ["facture"]
    assert options.smart_format is True


@pytest.mark.asyncio
async def test_missing_utterances_leave_count_unset(deepgram_manager, mock_deepgram_client):
    mock_deepgram_client.transcribe_url_simplified.return_value = TranscriptionResult(
        transcript="hello", confidence=0.9, duration=1.0
    )

    response = await deepgram_manager.transcribe_recording(
        TranscribeRecordingRequest(recording_url=RECORDING_URL)
    )

    assert response.word_count == 0
    assert response.utterance_count is None


@pytest.mark.asyncio
async def test_transcribe_with_insights(deepgram_manager, mock_deepgram_client, transcription_result):
    mock_deepgram_client.transcribe_url_simplified.return_value = transcription_result

    insights = await deepgram_manager.transcribe_with_insights(RECORDING_URL)

    assert insights.speakers == 2
    assert [u.speaker for u in insights.utterances] == [0, 1]
    assert insights.utterances[1].text == "Hi, I'd like to check my order."
    options = mock_deepgram_client.transcribe_url_simplified.await_args.args[1]
    assert options.diarize is True
    assert options.sentiment is True


@pytest.mark.asyncio
async def test_config_drives_defaults(mock_deepgram_client, deepgram_response):
    manager = DeepgramManager(
        mock_deepgram_client,
        DeepgramManagerConfig(default_model="enhanced", default_language="de", enable_diarization=False),
    )
    mock_deepgram_client.transcribe_url.return_value = deepgram_response

    await manager.transcribe_url(RECORDING_URL)

    options = mock_deepgram_client.transcribe_url.await_args.args[1]
    assert options.model == "enhanced"
    assert options.language == "de"
    assert options.diarize is False


@pytest.mark.asyncio
async def test_transcribe_buffer_forwards_mimetype(deepgram_manager, mock_deepgram_client, deepgram_response):
    mock_deepgram_client.transcribe_buffer.return_value = deepgram_response

    await deepgram_manager.transcribe_buffer(b"audio", mimetype="audio/wav")

    assert mock_deepgram_client.transcribe_buffer.await_args.kwargs == {"mimetype": "audio/wav"}


# === Helpers ===

def test_extract_summary_truncates_on_word_boundary():
    text = "one two three four five"

    assert DeepgramManager.extract_summary(text, max_length=100) == text
    assert DeepgramManager.extract_summary(text, max_length=10) == "one two..."
    assert DeepgramManager.extract_summary("abcdefghijkl", max_length=5) == "abcde..."


def test_average_confidence():
    words = [
        Word(word="a", start=0, end=1, confidence=0.5),
        Word(word="b", start=1, end=2, confidence=1.0),
    ]

    with_words = TranscriptionResult(transcript="a b", confidence=0.1, duration=2, words=words)
    without_words = TranscriptionResult(transcript="", confidence=0.4, duration=0)

    assert DeepgramManager.calculate_average_confidence(with_words) == 0.75
    assert DeepgramManager.calculate_average_confidence(without_words) == 0.4


def test_quality_threshold():
    result = TranscriptionResult(transcript="x", confidence=0.7, duration=1)

    assert DeepgramManager.is_quality_acceptable(result)
    assert not DeepgramManager.is_quality_acceptable(result, min_confidence=0.8)


def test_speaker_turns_and_stats():
    utterances = [
        Utterance(start=0.0, end=2.0, confidence=0.9, transcript="hi", speaker=0),
        Utterance(start=2.5, end=3.5, confidence=0.9, transcript="hello", speaker=1),
        Utterance(start=4.0, end=7.0, confidence=0.9, transcript="how can I help", speaker=0),
    ]

    turns = DeepgramManager.extract_speaker_turns(utterances)
    stats = DeepgramManager.calculate_conversation_stats(utterances)

    assert [(t.speaker, t.text, t.duration) for t in turns] == [
        (0, "hi", 2.0),
        (1, "hello", 1.0),
        (0, "how can I help", 3.0),
    ]
    assert stats.total_duration == 6.0
    assert stats.speaker_count == 2
    assert stats.speaker_durations == {0: 5.0, 1: 1.0}
