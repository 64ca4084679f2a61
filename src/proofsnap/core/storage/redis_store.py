"""ProofSnap — Redis record store (JSON value per record + status index sets)."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from proofsnap.core.exceptions import StorageError
from proofsnap.core.storage.base import RecordStore, newest_first
from proofsnap.models.enums import CaptureStatus
from proofsnap.models.schemas import CaptureRecord

logger = logging.getLogger(__name__)


class RedisRecordStore(RecordStore):
    def __init__(self, redis_url: str | None = None, client: Any = None, prefix: str = "proofsnap") -> None:
        self.prefix = prefix
        if client is not None:
            self._redis = client
        elif redis_url:
            import redis

            self._redis = redis.from_url(redis_url, decode_responses=True)
            logger.info("Record store connected to Redis")
        else:
            raise ValueError("RedisRecordStore needs a redis_url or a client")

    def _key(self, record_id: str) -> str:
        return f"{self.prefix}:capture:{record_id}"

    def _status_key(self, status: CaptureStatus | str) -> str:
        value = status.value if isinstance(status, CaptureStatus) else status
        return f"{self.prefix}:status:{value}"

    @property
    def _all_key(self) -> str:
        return f"{self.prefix}:captures"

    # ── sync core ──

    def _upsert(self, record: CaptureRecord) -> None:
        key = self._key(record.id)
        previous = self._redis.get(key)
        if previous:
            old_status = json.loads(previous).get("status")
            if old_status and old_status != record.status.value:
                self._redis.srem(self._status_key(old_status), record.id)
        self._redis.set(key, record.model_dump_json())
        self._redis.sadd(self._all_key, record.id)
        self._redis.sadd(self._status_key(record.status), record.id)

    def _load(self, ids: list[str]) -> list[CaptureRecord]:
        records = []
        for record_id in ids:
            raw = self._redis.get(self._key(record_id))
            if raw:
                records.append(CaptureRecord.model_validate_json(raw))
        return newest_first(records)

    async def _call(self, fn: Any, *args: Any) -> Any:
        try:
            return await asyncio.to_thread(fn, *args)
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(f"Redis operation failed: {exc}") from exc

    # ── RecordStore ──

    async def upsert(self, record: CaptureRecord) -> None:
        await self._call(self._upsert, record)

    async def get(self, record_id: str) -> CaptureRecord | None:
        raw = await self._call(self._redis.get, self._key(record_id))
        return CaptureRecord.model_validate_json(raw) if raw else None

    async def list_by_status(self, status: CaptureStatus) -> list[CaptureRecord]:
        ids = await self._call(self._redis.smembers, self._status_key(status))
        return await self._call(self._load, sorted(ids))

    async def list_all(self) -> list[CaptureRecord]:
        ids = await self._call(self._redis.smembers, self._all_key)
        return await self._call(self._load, sorted(ids))
