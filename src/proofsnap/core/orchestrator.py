"""ProofSnap — Verification orchestrator (9-stage pipeline).

1. Create record        → status=verifying, persisted before any stage
2. Hash                 → SHA-256 of the stored bytes
3. Sign                 → Ed25519 over the raw digest
4. Anchor               → ledger proof (non-fatal, tagged outcome)
5. Authenticity oracle  → synthetic / generative scores (may be simulated)
6. Originality oracle   → duplication percentage (may be simulated)
7. Trust score          → score + grade
8. Watermark            → visible stamp (images) + invisible id (all)
9. Cloud sync           → thumbnail + proof row, best-effort
10. Persist             → status=verified

Unexpected exceptions at any stage mark the record failed, persist it and
propagate. Degraded anchor/oracle/sync results only mark their step as error.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import platform
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from proofsnap.core.anchor.client import AnchorClient
from proofsnap.core.crypto.hasher import ContentHasher
from proofsnap.core.crypto.signer import Signer
from proofsnap.core.exceptions import ReadError, StorageError
from proofsnap.core.oracles.authenticity import AuthenticityOracleClient
from proofsnap.core.oracles.originality import OriginalityOracleClient
from proofsnap.core.progress import ProgressObserver, StepTracker
from proofsnap.core.scoring.trust_score_engine import TrustScoreEngine
from proofsnap.core.storage.base import RecordStore
from proofsnap.core.sync.cloud_sync import CloudSyncClient
from proofsnap.core.watermark import Watermarker, generate_invisible_watermark_id
from proofsnap.models.enums import AnchorOutcome, CaptureStatus, MediaKind, PipelineStage, StepId
from proofsnap.models.schemas import AnchorResult, CaptureRecord, TrustFactors

logger = logging.getLogger(__name__)

SIMULATED_DETAIL = "Simulated - API unavailable"


def default_device_info() -> str:
    return f"{platform.system()} {platform.release()}".strip()


@dataclass
class PipelineRun:
    """State of one pipeline execution; never shared between runs."""

    record: CaptureRecord
    tracker: StepTracker
    path: Path
    stage: PipelineStage = PipelineStage.CREATED
    media: bytes = b""
    signature_valid: bool = False
    hash_verified: bool = False
    anchor_result: AnchorResult | None = None


class VerificationOrchestrator:
    """Main proof-of-capture pipeline. All collaborators are injected."""

    def __init__(
        self,
        store: RecordStore,
        signer: Signer,
        anchor_client: AnchorClient,
        authenticity: AuthenticityOracleClient,
        originality: OriginalityOracleClient,
        *,
        hasher: ContentHasher | None = None,
        trust_engine: TrustScoreEngine | None = None,
        watermarker: Watermarker | None = None,
        cloud_sync: CloudSyncClient | None = None,
    ) -> None:
        self.store = store
        self.signer = signer
        self.anchor_client = anchor_client
        self.authenticity = authenticity
        self.originality = originality
        self.hasher = hasher or ContentHasher()
        self.trust_engine = trust_engine or TrustScoreEngine()
        self.watermarker = watermarker
        self.cloud_sync = cloud_sync

    async def run(
        self,
        file_ref: str | Path,
        media_kind: MediaKind = MediaKind.IMAGE,
        observer: ProgressObserver | None = None,
        device_info: str | None = None,
        location: str | None = None,
    ) -> CaptureRecord:
        """Run the full pipeline for one capture and return the final record."""
        start = time.perf_counter()
        path = Path(file_ref)
        record = CaptureRecord(
            file_uri=str(path),
            file_name=path.name or f"capture_{int(time.time() * 1000)}",
            media_kind=media_kind,
            file_size=self._file_size(path),
            device_info=default_device_info() if device_info is None else device_info,
            location=location,
        )
        record.transition_to(CaptureStatus.VERIFYING)
        run = PipelineRun(record=record, tracker=StepTracker(observer, run_id=record.id), path=path)

        logger.info("[%s] Verification started — file=%s kind=%s", record.id, record.file_name, media_kind.value)
        await self.store.upsert(record)

        try:
            await self._hash(run)
            await self._sign(run)
            await self._anchor(run)
            await self._check_authenticity(run)
            await self._check_originality(run)
            self._score(run)
            await self._watermark(run)
            await self._cloud_sync(run)
            await self._finalize(run)
        except (Exception, asyncio.CancelledError) as exc:
            await self._mark_failed(run, exc)
            raise

        elapsed = (time.perf_counter() - start) * 1000
        logger.info(
            "[%s] Verification complete — trust=%d grade=%s anchored=%s (%.0fms)",
            record.id,
            record.trust_score,
            record.trust_grade.value,
            record.is_anchored,
            elapsed,
        )
        return record

    async def run_many(self, items: list[tuple[str | Path, MediaKind]]) -> list[CaptureRecord | BaseException]:
        """Run independent pipelines concurrently; failures are returned in place."""
        return await asyncio.gather(*(self.run(ref, kind) for ref, kind in items), return_exceptions=True)

    # ── Stage 1: Hash ──

    async def _hash(self, run: PipelineRun) -> None:
        self._enter(run, PipelineStage.HASHING, StepId.HASH)
        digest = await asyncio.to_thread(self.hasher.hash, run.path)
        run.record.file_hash = digest
        run.tracker.succeed(StepId.HASH, digest[:12] + "...")
        await self._checkpoint(run)

    # ── Stage 2: Sign ──

    async def _sign(self, run: PipelineRun) -> None:
        self._enter(run, PipelineStage.SIGNING, StepId.SIGN)
        record = run.record
        record.signature = await asyncio.to_thread(self.signer.sign, record.file_hash)
        record.public_key = self.signer.public_key()
        run.signature_valid = Signer.verify(record.file_hash, record.signature, record.public_key)
        if not run.signature_valid:
            logger.error("[%s] Signature does not verify against the stored public key", record.id)
            run.tracker.fail(StepId.SIGN, "Signature mismatch")
        else:
            run.tracker.succeed(StepId.SIGN, "Signed")
        await self._checkpoint(run)

    # ── Stage 3: Anchor ──

    async def _anchor(self, run: PipelineRun) -> None:
        self._enter(run, PipelineStage.ANCHORING, StepId.ANCHOR)
        record = run.record
        try:
            result = await self.anchor_client.anchor(record.file_hash, record.signature, record.public_key)
        except Exception as exc:
            logger.warning("[%s] Anchor client raised: %s", record.id, exc, exc_info=True)
            result = AnchorResult(outcome=AnchorOutcome.UNAVAILABLE, detail=str(exc) or "Anchoring failed")

        run.anchor_result = result
        if result.tx_ref is not None:
            record.blockchain_tx = result.tx_ref
            record.block_number = result.block_ref

        if result.outcome == AnchorOutcome.ANCHORED:
            run.tracker.succeed(StepId.ANCHOR, f"Tx: {result.tx_ref[:10]}..." if result.tx_ref else "Anchored")
        elif result.outcome == AnchorOutcome.ALREADY_EXISTS:
            detail = "Already anchored"
            if result.tx_ref:
                detail += f" (Tx: {result.tx_ref[:10]}...)"
            run.tracker.succeed(StepId.ANCHOR, detail)
        else:
            run.tracker.fail(StepId.ANCHOR, result.detail or "Failed - will retry")
        await self._checkpoint(run)

    # ── Stage 4: Authenticity ──

    async def _check_authenticity(self, run: PipelineRun) -> None:
        self._enter(run, PipelineStage.AUTHENTICITY_CHECKING, StepId.AUTHENTICITY)
        record = run.record
        if record.media_kind == MediaKind.IMAGE:
            run.media = await asyncio.to_thread(self._read_media, run.path)
            run.hash_verified = self.hasher.hash_bytes(run.media) == record.file_hash
            if not run.hash_verified:
                logger.error("[%s] File changed after hashing", record.id)
        else:
            run.hash_verified = bool(record.file_hash)

        result = await self.authenticity.detect_synthetic(run.media, record.file_name)
        record.ai_deepfake_score = result.synthetic_score
        record.ai_generated_score = result.generative_score
        record.ai_simulated = result.is_simulated

        if result.is_simulated:
            run.tracker.fail(StepId.AUTHENTICITY, SIMULATED_DETAIL)
        elif result.is_genuine:
            run.tracker.succeed(StepId.AUTHENTICITY, "Genuine")
        else:
            run.tracker.succeed(StepId.AUTHENTICITY, f"Suspicious ({result.synthetic_score * 100:.0f}%)")
        await self._checkpoint(run)

    # ── Stage 5: Originality ──

    async def _check_originality(self, run: PipelineRun) -> None:
        self._enter(run, PipelineStage.ORIGINALITY_CHECKING, StepId.ORIGINALITY)
        record = run.record
        result = await self.originality.check_originality(run.media, record.file_name)
        record.plagiarism_score = result.match_percentage
        record.originality_simulated = result.is_simulated

        if result.is_simulated:
            run.tracker.fail(StepId.ORIGINALITY, SIMULATED_DETAIL)
        elif result.is_original:
            run.tracker.succeed(StepId.ORIGINALITY, "Original")
        else:
            run.tracker.succeed(StepId.ORIGINALITY, f"{result.match_percentage:.0f}% match")
        await self._checkpoint(run)

    # ── Stage 6: Trust score ──

    def _score(self, run: PipelineRun) -> None:
        self._enter(run, PipelineStage.SCORING, StepId.SCORE)
        record = run.record
        factors = TrustFactors(
            hash_verified=run.hash_verified,
            signature_valid=run.signature_valid,
            ledger_anchored=run.anchor_result is not None and run.anchor_result.anchored,
            synthetic_score=record.ai_deepfake_score,
            generative_score=record.ai_generated_score,
            duplication_percentage=record.plagiarism_score,
            has_metadata=bool(record.device_info),
        )
        result = self.trust_engine.compute(factors)
        record.trust_score = result.score
        record.trust_grade = result.grade

        simulated = []
        if record.ai_simulated:
            simulated.append("authenticity")
        if record.originality_simulated:
            simulated.append("originality")
        explanation = self.trust_engine.explain(result, simulated)
        logger.info("[%s] Trust %d/%s — %s", record.id, result.score, result.grade.value, explanation)
        run.tracker.succeed(StepId.SCORE, f"Score: {result.score} (Grade {result.grade.value})")

    # ── Stage 7: Watermark ──

    async def _watermark(self, run: PipelineRun) -> None:
        self._enter(run, PipelineStage.WATERMARKING, StepId.WATERMARK)
        record = run.record
        if record.media_kind == MediaKind.IMAGE and self.watermarker is not None:
            record.watermarked_uri = await asyncio.to_thread(
                self.watermarker.apply_visible, run.path, record.trust_score, record.trust_grade.value
            )
        record.watermark_id = generate_invisible_watermark_id()
        run.tracker.succeed(StepId.WATERMARK, f"ID: {record.watermark_id}")
        await self._checkpoint(run)

    # ── Stage 8: Cloud sync ──

    async def _cloud_sync(self, run: PipelineRun) -> None:
        self._enter(run, PipelineStage.CLOUD_SYNCING, StepId.CLOUD_SYNC)
        record = run.record
        synced = False
        if self.cloud_sync is not None:
            try:
                if record.media_kind == MediaKind.IMAGE and run.media:
                    content_type = mimetypes.guess_type(record.file_name)[0] or "image/jpeg"
                    record.image_url = await self.cloud_sync.upload_thumbnail(record.id, run.media, content_type)
                # The cloud row carries the status the record is about to get.
                snapshot = record.model_copy(update={"status": CaptureStatus.VERIFIED})
                synced = await self.cloud_sync.upload(snapshot)
            except Exception as exc:
                logger.warning("[%s] Cloud sync raised: %s", record.id, exc, exc_info=True)
        if synced:
            run.tracker.succeed(StepId.CLOUD_SYNC, "Synced")
        else:
            run.tracker.fail(StepId.CLOUD_SYNC, "Local only")

    # ── Stage 9: Persist ──

    async def _finalize(self, run: PipelineRun) -> None:
        # The record stays verifying until the verified row is stored.
        final = run.record.model_copy(deep=True)
        final.transition_to(CaptureStatus.VERIFIED)
        await self.store.upsert(final)
        run.record.status = final.status
        run.record.updated_at = final.updated_at
        run.stage = PipelineStage.VERIFIED

    # ── helpers ──

    @staticmethod
    def _enter(run: PipelineRun, stage: PipelineStage, step: StepId) -> None:
        run.stage = stage
        logger.debug("[%s] Stage %s", run.record.id, stage.value)
        run.tracker.start(step)

    async def _checkpoint(self, run: PipelineRun) -> None:
        run.record.touch()
        await self.store.upsert(run.record)

    async def _mark_failed(self, run: PipelineRun, exc: BaseException) -> None:
        record = run.record
        failed_at = run.stage
        run.stage = PipelineStage.FAILED
        logger.error("[%s] Verification failed at %s: %s", record.id, failed_at.value, exc)
        run.tracker.abort_running(str(exc) or type(exc).__name__)
        if record.status == CaptureStatus.VERIFYING:
            record.transition_to(CaptureStatus.FAILED)
        try:
            await self.store.upsert(record)
        except StorageError:
            logger.exception("[%s] Could not persist failed status", record.id)

    @staticmethod
    def _read_media(path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as exc:
            raise ReadError(f"Cannot read media file: {path}", {"path": str(path)}) from exc

    @staticmethod
    def _file_size(path: Path) -> int:
        try:
            return path.stat().st_size
        except OSError:
            return 0

    def health_check(self) -> dict[str, Any]:
        return {
            "store": type(self.store).__name__,
            "anchor": repr(self.anchor_client.service),
            "authenticity": repr(self.authenticity),
            "originality": repr(self.originality),
            "watermark": self.watermarker is not None,
            "cloud_sync": self.cloud_sync is not None and self.cloud_sync.configured,
        }
