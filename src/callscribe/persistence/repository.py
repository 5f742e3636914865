"""
Call record storage.

Storage Strategy (Redis):
- Record: Hash per call, key = "call:record:{call_uuid}", every field JSON-encoded
- Index by creation time: Sorted set "calls:index" (score = unix timestamp)
- TTL: Optional, CALL_RECORD_TTL_SECONDS (0 = keep forever)

Writers only ever upsert partial field sets; nothing is deleted. Reads
(``get_call_record``, ``list_recent_calls``) serve the HTTP API only.

InMemoryCallRecordStore offers the same interface without Redis for
local development (STORAGE_BACKEND=memory) and tests.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional, Protocol

import structlog
from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

from callscribe.config import Settings
from callscribe.models.call_record import CallRecord

logger = structlog.get_logger(__name__)


class CallRecordStore(Protocol):
    """Durable storage collaborator used by the recording callback orchestrator."""

    async def upsert_call_record(self, fields: Mapping[str, Any], call_uuid: str) -> None:
        """Merge ``fields`` into the record for ``call_uuid``, creating it if needed."""
        ...

    async def get_call_record(self, call_uuid: str) -> Optional[CallRecord]:
        ...

    async def list_recent_calls(self, limit: int = 20) -> list[CallRecord]:
        ...

    async def ping(self) -> bool:
        """Whether the backing store is reachable."""
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _encode(value: Any) -> str:
    if isinstance(value, datetime):
        return json.dumps(value.isoformat())
    if hasattr(value, "model_dump"):
        return json.dumps(value.model_dump(mode="json"))
    if isinstance(value, Enum):
        return json.dumps(value.value)
    return json.dumps(value)


def _decode(raw: Mapping[str, str]) -> dict[str, Any]:
    return {field: json.loads(value) for field, value in raw.items()}


class CallRecordRepository:
    """
    Redis-backed call record repository.

    Errors from Redis propagate to the caller; the orchestrator decides
    whether a failed write is fatal.
    """

    # Redis key prefixes
    RECORD_PREFIX = "call:record:"
    CALLS_INDEX = "calls:index"

    def __init__(self, redis_client: AsyncRedis, settings: Settings):
        """
        Initialize repository.

        Args:
            redis_client: Async Redis client instance
            settings: Application settings
        """
        self.redis = redis_client
        self.settings = settings
        self.record_ttl = settings.CALL_RECORD_TTL_SECONDS

    def _key(self, call_uuid: str) -> str:
        return f"{self.RECORD_PREFIX}{call_uuid}"

    async def upsert_call_record(self, fields: Mapping[str, Any], call_uuid: str) -> None:
        """
        Merge ``fields`` into the stored record.

        ``None`` values are skipped so partial updates never erase data.
        ``created_at`` is set once; ``updated_at`` on every write.
        """
        now = _utcnow()
        mapping = {
            name: _encode(value)
            for name, value in fields.items()
            if value is not None and name != "call_uuid"
        }
        mapping["call_uuid"] = _encode(call_uuid)
        mapping["updated_at"] = _encode(now)

        key = self._key(call_uuid)
        await self.redis.hset(key, mapping=mapping)
        created = await self.redis.hsetnx(key, "created_at", _encode(now))
        if created:
            await self.redis.zadd(self.CALLS_INDEX, {call_uuid: now.timestamp()}, nx=True)
        if self.record_ttl:
            await self.redis.expire(key, self.record_ttl)

        logger.debug(
            "Upserted call record",
            call_uuid=call_uuid,
            fields=sorted(mapping),
            created=bool(created),
        )

    async def get_call_record(self, call_uuid: str) -> Optional[CallRecord]:
        """
        Retrieve a call record.

        Returns:
            CallRecord if found, None otherwise
        """
        raw = await self.redis.hgetall(self._key(call_uuid))
        if not raw:
            logger.debug("Call record not found", call_uuid=call_uuid)
            return None
        return CallRecord.model_validate(_decode(raw))

    async def list_recent_calls(self, limit: int = 20) -> list[CallRecord]:
        """Most recently created records first. Expired records are skipped."""
        call_uuids = await self.redis.zrevrange(self.CALLS_INDEX, 0, limit - 1)
        records = []
        for call_uuid in call_uuids:
            record = await self.get_call_record(call_uuid)
            if record is not None:
                records.append(record)
        return records

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except RedisError as e:
            logger.warning("Redis ping failed", error_type=type(e).__name__, error=str(e))
            return False


class InMemoryCallRecordStore:
    """Process-local call record store with the repository's semantics."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}

    async def upsert_call_record(self, fields: Mapping[str, Any], call_uuid: str) -> None:
        now = _utcnow()
        record = self._records.setdefault(call_uuid, {"call_uuid": call_uuid, "created_at": now})
        record.update({k: v for k, v in fields.items() if v is not None and k != "call_uuid"})
        record["updated_at"] = now

    async def get_call_record(self, call_uuid: str) -> Optional[CallRecord]:
        record = self._records.get(call_uuid)
        return CallRecord.model_validate(record) if record is not None else None

    async def list_recent_calls(self, limit: int = 20) -> list[CallRecord]:
        newest = sorted(self._records.values(), key=lambda r: r["created_at"], reverse=True)
        return [CallRecord.model_validate(r) for r in newest[:limit]]

    async def ping(self) -> bool:
        return True
