"""ProofSnap — In-memory record store."""

from __future__ import annotations

from proofsnap.core.storage.base import RecordStore, newest_first
from proofsnap.models.enums import CaptureStatus
from proofsnap.models.schemas import CaptureRecord


class MemoryRecordStore(RecordStore):
    def __init__(self) -> None:
        self._records: dict[str, CaptureRecord] = {}

    async def upsert(self, record: CaptureRecord) -> None:
        # Store a copy so later pipeline mutations are not visible until the next upsert.
        self._records[record.id] = record.model_copy(deep=True)

    async def get(self, record_id: str) -> CaptureRecord | None:
        record = self._records.get(record_id)
        return record.model_copy(deep=True) if record else None

    async def list_by_status(self, status: CaptureStatus) -> list[CaptureRecord]:
        return newest_first([r.model_copy(deep=True) for r in self._records.values() if r.status == status])

    async def list_all(self) -> list[CaptureRecord]:
        return newest_first([r.model_copy(deep=True) for r in self._records.values()])

    def clear(self) -> None:
        self._records.clear()
