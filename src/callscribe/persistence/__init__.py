"""
Call record persistence.

- redis_client.py: Shared async Redis connection pool
- repository.py: CallRecordStore protocol, Redis repository, in-memory store
"""

from callscribe.persistence.redis_client import RedisClient
from callscribe.persistence.repository import (
    CallRecordRepository,
    CallRecordStore,
    InMemoryCallRecordStore,
)

__all__ = [
    "RedisClient",
    "CallRecordStore",
    "CallRecordRepository",
    "InMemoryCallRecordStore",
]
