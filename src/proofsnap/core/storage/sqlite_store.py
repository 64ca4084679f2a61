"""ProofSnap — SQLite record store.

One row per CaptureRecord, one column per field. Calls run in a worker thread
and share a single connection guarded by a lock.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any

from proofsnap.core.exceptions import StorageError
from proofsnap.core.storage.base import RecordStore
from proofsnap.models.enums import CaptureStatus
from proofsnap.models.schemas import CaptureRecord, StoreStats

logger = logging.getLogger(__name__)

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS capture_records (
        id TEXT PRIMARY KEY,
        file_uri TEXT NOT NULL,
        file_name TEXT NOT NULL,
        media_kind TEXT NOT NULL DEFAULT 'image',
        file_size INTEGER DEFAULT 0,
        file_hash TEXT,
        signature TEXT,
        public_key TEXT,
        timestamp INTEGER,
        blockchain_tx TEXT,
        block_number INTEGER,
        ai_deepfake_score REAL DEFAULT 0,
        ai_generated_score REAL DEFAULT 0,
        plagiarism_score REAL DEFAULT 0,
        ai_simulated INTEGER DEFAULT 0,
        originality_simulated INTEGER DEFAULT 0,
        trust_score INTEGER DEFAULT 0,
        trust_grade TEXT DEFAULT 'F',
        watermarked_uri TEXT,
        watermark_id TEXT,
        image_url TEXT,
        status TEXT DEFAULT 'pending',
        device_info TEXT,
        location TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_capture_status ON capture_records(status)",
]

COLUMNS = tuple(CaptureRecord.model_fields)
BOOL_COLUMNS = ("ai_simulated", "originality_simulated")


def path_from_url(url: str) -> str:
    """``sqlite:///./file.db`` → ``./file.db``; ``sqlite://`` → ``:memory:``."""
    if not url.startswith("sqlite://"):
        raise ValueError(f"Not a sqlite URL: {url}")
    path = url[len("sqlite://") :]
    if path.startswith("/"):
        path = path[1:]
    return path or ":memory:"


class SqliteRecordStore(RecordStore):
    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        with self._lock, self._conn:
            for statement in SCHEMA:
                self._conn.execute(statement)
        logger.info("SQLite record store ready at %s", self.db_path)

    # ── sync core ──

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        try:
            with self._lock, self._conn:
                return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"SQLite operation failed: {exc}", {"sql": sql.split()[0]}) from exc

    @staticmethod
    def _to_row(record: CaptureRecord) -> tuple[Any, ...]:
        data = record.model_dump(mode="json")
        for col in BOOL_COLUMNS:
            data[col] = int(data[col])
        return tuple(data[col] for col in COLUMNS)

    @staticmethod
    def _from_row(row: sqlite3.Row) -> CaptureRecord:
        data = {col: row[col] for col in COLUMNS}
        for col in BOOL_COLUMNS:
            data[col] = bool(data[col])
        for col in ("file_hash", "signature", "public_key", "device_info"):
            data[col] = data[col] or ""
        return CaptureRecord.model_validate(data)

    # ── RecordStore ──

    async def upsert(self, record: CaptureRecord) -> None:
        placeholders = ", ".join("?" for _ in COLUMNS)
        sql = f"INSERT OR REPLACE INTO capture_records ({', '.join(COLUMNS)}) VALUES ({placeholders})"
        await asyncio.to_thread(self._execute, sql, self._to_row(record))

    async def get(self, record_id: str) -> CaptureRecord | None:
        rows = await asyncio.to_thread(self._execute, "SELECT * FROM capture_records WHERE id = ?", (record_id,))
        return self._from_row(rows[0]) if rows else None

    async def list_by_status(self, status: CaptureStatus) -> list[CaptureRecord]:
        rows = await asyncio.to_thread(
            self._execute,
            "SELECT * FROM capture_records WHERE status = ? ORDER BY created_at DESC, id DESC",
            (status.value,),
        )
        return [self._from_row(r) for r in rows]

    async def list_all(self) -> list[CaptureRecord]:
        rows = await asyncio.to_thread(
            self._execute, "SELECT * FROM capture_records ORDER BY created_at DESC, id DESC"
        )
        return [self._from_row(r) for r in rows]

    async def stats(self) -> StoreStats:
        rows = await asyncio.to_thread(
            self._execute,
            """
            SELECT COUNT(*) AS total,
                   COALESCE(SUM(status = 'verified'), 0) AS verified,
                   COALESCE(SUM(blockchain_tx IS NOT NULL), 0) AS anchored
            FROM capture_records
            """,
        )
        row = rows[0]
        return StoreStats(total=row["total"], verified=row["verified"], anchored_count=row["anchored"])

    async def close(self) -> None:
        with self._lock:
            self._conn.close()
