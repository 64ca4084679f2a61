"""ProofSnap — Record store selection from a database URL."""

from __future__ import annotations

from proofsnap.core.storage.base import RecordStore
from proofsnap.core.storage.memory import MemoryRecordStore
from proofsnap.core.storage.redis_store import RedisRecordStore
from proofsnap.core.storage.sqlite_store import SqliteRecordStore, path_from_url


def open_store(database_url: str) -> RecordStore:
    if database_url.startswith("sqlite://"):
        return SqliteRecordStore(path_from_url(database_url))
    if database_url.startswith(("redis://", "rediss://")):
        return RedisRecordStore(redis_url=database_url)
    if database_url in ("memory://", ""):
        return MemoryRecordStore()
    raise ValueError(f"Unsupported database URL: {database_url}")
