"""ProofSnap — Best-effort cloud sync of finished proofs.

Rows go to a PostgREST ``proofs`` table and thumbnails to a storage bucket.
Sync failures are reported as ``False`` and never change the record's status;
lookups return None or an empty list when the cloud is unreachable.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from proofsnap.models.schemas import CaptureRecord, CloudProof, CloudStats

logger = logging.getLogger(__name__)


def to_cloud_row(record: CaptureRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "file_hash": record.file_hash,
        "signature": record.signature,
        "public_key": record.public_key,
        "blockchain_tx": record.blockchain_tx,
        "block_number": record.block_number,
        "ai_deepfake_score": record.ai_deepfake_score,
        "ai_generated_score": record.ai_generated_score,
        "plagiarism_score": record.plagiarism_score,
        "trust_score": record.trust_score,
        "trust_grade": record.trust_grade.value,
        "file_type": record.media_kind.value,
        "file_name": record.file_name,
        "file_size": record.file_size,
        "image_url": record.image_url,
        "device_info": record.device_info or None,
        "status": record.status.value,
        "created_at": record.created_at,
    }


class CloudSyncClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 15.0,
        table: str = "proofs",
        bucket: str = "media",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.table = table
        self.bucket = bucket
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def configured(self) -> bool:
        return bool(self.base_url) and bool(self.api_key)

    @property
    def _table_url(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def _headers(self, **extra: str) -> dict[str, str]:
        return {"apikey": self.api_key, "Authorization": f"Bearer {self.api_key}", **extra}

    async def _send(self, method: str, url: str, what: str, **kwargs: Any) -> httpx.Response | None:
        """One request bounded by ``timeout`` end to end; None on failure."""
        try:
            response = await asyncio.wait_for(self._client.request(method, url, **kwargs), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Cloud %s timed out after %.0fs", what, self.timeout)
            return None
        except httpx.HTTPError as exc:
            logger.warning("Cloud %s failed: %s", what, exc)
            return None
        if response.status_code >= 400:
            logger.warning("Cloud %s rejected: HTTP %d %s", what, response.status_code, response.text[:200])
            return None
        return response

    # ── Writes ──

    async def upload(self, record: CaptureRecord) -> bool:
        if not self.configured:
            logger.info("Cloud sync not configured, keeping %s local", record.id)
            return False

        response = await self._send(
            "POST",
            self._table_url,
            f"sync of {record.id}",
            json=to_cloud_row(record),
            headers=self._headers(Prefer="resolution=merge-duplicates,return=minimal"),
        )
        if response is None:
            return False
        logger.info("Proof %s synced to cloud", record.id)
        return True

    async def upload_thumbnail(self, record_id: str, content: bytes, content_type: str = "image/jpeg") -> str | None:
        """Store a preview image and return its public URL."""
        if not self.configured or not content:
            return None
        path = f"thumbnails/{record_id}.jpg"
        response = await self._send(
            "POST",
            f"{self.base_url}/storage/v1/object/{self.bucket}/{path}",
            f"thumbnail upload of {record_id}",
            content=content,
            headers=self._headers(**{"Content-Type": content_type, "x-upsert": "true"}),
        )
        if response is None:
            return None
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    # ── Reads ──

    async def _select(self, params: dict[str, str], what: str) -> list[CloudProof]:
        if not self.configured:
            return []
        response = await self._send(
            "GET", self._table_url, what, params={"select": "*", **params}, headers=self._headers()
        )
        if response is None:
            return []
        try:
            rows = response.json()
            if not isinstance(rows, list):
                raise ValueError(f"expected a list, got {type(rows).__name__}")
            return [CloudProof.model_validate(row) for row in rows]
        except ValueError as exc:
            logger.warning("Cloud %s returned malformed rows: %s", what, exc)
            return []

    async def find_by_hash(self, file_hash: str) -> CloudProof | None:
        rows = await self._select({"file_hash": f"eq.{file_hash}", "limit": "1"}, f"lookup of {file_hash[:12]}")
        return rows[0] if rows else None

    async def find_by_tx(self, tx_ref: str) -> CloudProof | None:
        rows = await self._select({"blockchain_tx": f"eq.{tx_ref}", "limit": "1"}, f"lookup of tx {tx_ref[:12]}")
        return rows[0] if rows else None

    async def recent(self, limit: int = 20) -> list[CloudProof]:
        """Newest proofs across all devices."""
        return await self._select({"order": "created_at.desc", "limit": str(limit)}, "recent proofs")

    async def _count(self, params: dict[str, str]) -> int | None:
        response = await self._send(
            "HEAD",
            self._table_url,
            "count",
            params={"select": "*", **params},
            headers=self._headers(Prefer="count=exact"),
        )
        if response is None:
            return None
        # Content-Range: 0-24/3573 or */0
        total = response.headers.get("content-range", "").rpartition("/")[2]
        return int(total) if total.isdigit() else None

    async def stats(self) -> CloudStats | None:
        if not self.configured:
            return None
        total = await self._count({})
        verified = await self._count({"status": "eq.verified"})
        if total is None or verified is None:
            return None
        return CloudStats(total_proofs=total, total_verified=verified)

    async def aclose(self) -> None:
        await self._client.aclose()
