"""ProofSnap — Record store contract.

Records are upserted by id; each record is written only by its own pipeline
run, so last-writer-wins per id is sufficient and no cross-record locking is
needed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from proofsnap.models.enums import CaptureStatus
from proofsnap.models.schemas import CaptureRecord, StoreStats


class RecordStore(ABC):
    @abstractmethod
    async def upsert(self, record: CaptureRecord) -> None: ...

    @abstractmethod
    async def get(self, record_id: str) -> CaptureRecord | None: ...

    @abstractmethod
    async def list_by_status(self, status: CaptureStatus) -> list[CaptureRecord]:
        """Records with ``status``, newest first."""
        ...

    @abstractmethod
    async def list_all(self) -> list[CaptureRecord]: ...

    async def stats(self) -> StoreStats:
        records = await self.list_all()
        return StoreStats(
            total=len(records),
            verified=sum(1 for r in records if r.status == CaptureStatus.VERIFIED),
            anchored_count=sum(1 for r in records if r.blockchain_tx is not None),
        )

    async def close(self) -> None:
        return None


def newest_first(records: list[CaptureRecord]) -> list[CaptureRecord]:
    return sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)
