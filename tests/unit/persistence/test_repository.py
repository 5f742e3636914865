"""
Unit tests for CallRecordRepository and InMemoryCallRecordStore.
"""

import json
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from callscribe.config import Settings
from callscribe.models.call_record import TranscriptionStatus
from callscribe.models.transcription import TranscriptMetadata
from callscribe.persistence.repository import CallRecordRepository, InMemoryCallRecordStore


@pytest.fixture
def mock_settings():
    """Mock settings."""
    settings = MagicMock(spec=Settings)
    settings.CALL_RECORD_TTL_SECONDS = 0
    return settings


@pytest.fixture
def repository(mock_async_redis, mock_settings):
    return CallRecordRepository(mock_async_redis, mock_settings)


@pytest.mark.asyncio
async def test_upsert_writes_json_encoded_hash(repository, mock_async_redis):
    await repository.upsert_call_record(
        {
            "recording_url": "https://r/abc.mp3",
            "duration": 42,
            "transcription_status": TranscriptionStatus.PENDING,
        },
        "abc",
    )

    key = mock_async_redis.hset.await_args.args[0]
    mapping = mock_async_redis.hset.await_args.kwargs["mapping"]
    assert key == "call:record:abc"
    assert json.loads(mapping["recording_url"]) == "https://r/abc.mp3"
    assert json.loads(mapping["duration"]) == 42
    assert json.loads(mapping["transcription_status"]) == "pending"
    assert json.loads(mapping["call_uuid"]) == "abc"
    assert "updated_at" in mapping


@pytest.mark.asyncio
async def test_upsert_skips_none_values(repository, mock_async_redis):
    await repository.upsert_call_record({"transcript": None, "word_count": 3}, "abc")

    mapping = mock_async_redis.hset.await_args.kwargs["mapping"]
    assert "transcript" not in mapping
    assert json.loads(mapping["word_count"]) == 3


@pytest.mark.asyncio
async def test_upsert_encodes_models_and_dicts(repository, mock_async_redis):
    await repository.upsert_call_record(
        {
            "transcription_metadata": {"request_id": "r-1"},
            "error_message": "Transcription failed",
        },
        "abc",
    )
    await repository.upsert_call_record({"transcription_metadata": TranscriptMetadata(request_id="r-2")}, "abc")

    mapping = mock_async_redis.hset.await_args.kwargs["mapping"]
    assert json.loads(mapping["transcription_metadata"])["request_id"] == "r-2"


@pytest.mark.asyncio
async def test_new_record_is_indexed(repository, mock_async_redis):
    mock_async_redis.hsetnx.return_value = True

    await repository.upsert_call_record({"duration": 1}, "abc")

    mock_async_redis.hsetnx.assert_awaited_once()
    assert mock_async_redis.hsetnx.await_args.args[:2] == ("call:record:abc", "created_at")
    index, members = mock_async_redis.zadd.await_args.args
    assert index == "calls:index"
    assert list(members) == ["abc"]
    assert mock_async_redis.zadd.await_args.kwargs == {"nx": True}


@pytest.mark.asyncio
async def test_existing_record_is_not_reindexed(repository, mock_async_redis):
    mock_async_redis.hsetnx.return_value = False

    await repository.upsert_call_record({"duration": 1}, "abc")

    mock_async_redis.zadd.assert_not_awaited()


@pytest.mark.asyncio
async def test_ttl_applied_when_configured(mock_async_redis, mock_settings):
    mock_settings.CALL_RECORD_TTL_SECONDS = 3600
    repository = CallRecordRepository(mock_async_redis, mock_settings)

    await repository.upsert_call_record({"duration": 1}, "abc")

    mock_async_redis.expire.assert_awaited_once_with("call:record:abc", 3600)


@pytest.mark.asyncio
async def test_no_ttl_by_default(repository, mock_async_redis):
    await repository.upsert_call_record({"duration": 1}, "abc")

    mock_async_redis.expire.assert_not_awaited()


@pytest.mark.asyncio
async def test_redis_errors_propagate(repository, mock_async_redis):
    mock_async_redis.hset.side_effect = RedisConnectionError("connection refused")

    with pytest.raises(RedisConnectionError):
        await repository.upsert_call_record({"duration": 1}, "abc")


@pytest.mark.asyncio
async def test_get_call_record_decodes_hash(repository, mock_async_redis):
    mock_async_redis.hgetall.return_value = {
        "call_uuid": json.dumps("abc"),
        "transcription_status": json.dumps("completed"),
        "transcript": json.dumps("hello"),
        "transcript_confidence": json.dumps(0.93),
        "transcription_metadata": json.dumps({"request_id": "r-1"}),
        "created_at": json.dumps("2026-03-14T10:22:31+00:00"),
    }

    record = await repository.get_call_record("abc")

    mock_async_redis.hgetall.assert_awaited_once_with("call:record:abc")
    assert record.call_uuid == "abc"
    assert record.transcription_status is TranscriptionStatus.COMPLETED
    assert record.transcript_confidence == 0.93
    assert record.transcription_metadata == {"request_id": "r-1"}
    assert record.created_at.year == 2026


@pytest.mark.asyncio
async def test_get_missing_record_returns_none(repository, mock_async_redis):
    mock_async_redis.hgetall.return_value = {}

    assert await repository.get_call_record("missing") is None


@pytest.mark.asyncio
async def test_list_recent_calls_skips_expired(repository, mock_async_redis):
    mock_async_redis.zrevrange.return_value = ["new", "expired", "old"]
    mock_async_redis.hgetall.side_effect = [
        {"call_uuid": json.dumps("new")},
        {},
        {"call_uuid": json.dumps("old")},
    ]

    records = await repository.list_recent_calls(limit=3)

    mock_async_redis.zrevrange.assert_awaited_once_with("calls:index", 0, 2)
    assert [r.call_uuid for r in records] == ["new", "old"]


@pytest.mark.asyncio
async def test_ping(repository, mock_async_redis):
    mock_async_redis.ping.return_value = True

    assert await repository.ping() is True


@pytest.mark.asyncio
async def test_ping_reports_unreachable_redis(repository, mock_async_redis):
    mock_async_redis.ping.side_effect = RedisConnectionError("connection refused")

    assert await repository.ping() is False


@pytest.mark.asyncio
async def test_cleared_error_message_reads_back_as_none(repository, mock_async_redis):
    mock_async_redis.hgetall.return_value = {
        "call_uuid": json.dumps("abc"),
        "transcription_status": json.dumps("completed"),
        "error_message": json.dumps(""),
    }

    record = await repository.get_call_record("abc")

    assert record.error_message is None


# === In-memory store ===

@pytest.mark.asyncio
async def test_memory_store_merges_partial_updates():
    store = InMemoryCallRecordStore()

    await store.upsert_call_record(
        {"recording_url": "https://r/abc.mp3", "transcription_status": TranscriptionStatus.PENDING},
        "abc",
    )
    await store.upsert_call_record(
        {"transcript": "hello", "recording_url": None, "transcription_status": TranscriptionStatus.COMPLETED},
        "abc",
    )

    record = await store.get_call_record("abc")
    assert record.recording_url == "https://r/abc.mp3"
    assert record.transcript == "hello"
    assert record.transcription_status is TranscriptionStatus.COMPLETED
    assert record.created_at <= record.updated_at


@pytest.mark.asyncio
async def test_memory_store_lists_newest_first():
    store = InMemoryCallRecordStore()
    for call_uuid in ("first", "second", "third"):
        await store.upsert_call_record({}, call_uuid)

    records = await store.list_recent_calls(limit=2)

    assert len(records) == 2
    assert await store.get_call_record("missing") is None
