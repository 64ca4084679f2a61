"""ProofSnap — Pydantic schemas for records, steps and service results."""

from __future__ import annotations

import secrets
import string
import time
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from proofsnap.core.exceptions import IllegalTransitionError
from proofsnap.models.enums import (
    STATUS_TRANSITIONS,
    AnchorOutcome,
    CaptureStatus,
    MediaKind,
    StepId,
    StepStatus,
    TrustGrade,
)

_BASE36 = string.digits + string.ascii_lowercase


def to_base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, rem = divmod(n, 36)
        out.append(_BASE36[rem])
    return "".join(reversed(out))


def new_record_id() -> str:
    """Time-ordered base36 id with a 6-char random suffix."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return to_base36(int(time.time() * 1000)) + suffix


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ── Capture record ──


class CaptureRecord(BaseModel):
    """One captured or imported media item and its proof."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_record_id)
    file_uri: str
    file_name: str
    media_kind: MediaKind = MediaKind.IMAGE
    file_size: int = Field(0, ge=0)

    file_hash: str = ""
    signature: str = ""
    public_key: str = ""
    timestamp: int = Field(default_factory=lambda: int(time.time() * 1000))

    blockchain_tx: str | None = None
    block_number: int | None = None

    ai_deepfake_score: float = Field(0.0, ge=0.0, le=1.0)
    ai_generated_score: float = Field(0.0, ge=0.0, le=1.0)
    plagiarism_score: float = Field(0.0, ge=0.0, le=100.0)
    ai_simulated: bool = False
    originality_simulated: bool = False

    trust_score: int = Field(0, ge=0, le=100)
    trust_grade: TrustGrade = TrustGrade.F

    watermarked_uri: str | None = None
    watermark_id: str | None = None
    image_url: str | None = None

    status: CaptureStatus = CaptureStatus.PENDING
    device_info: str = ""
    location: str | None = None
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)

    @property
    def is_anchored(self) -> bool:
        return self.blockchain_tx is not None

    def transition_to(self, status: CaptureStatus) -> None:
        """Move the lifecycle status; verified and failed are terminal."""
        if status != self.status and status not in STATUS_TRANSITIONS[self.status]:
            raise IllegalTransitionError(
                f"Illegal status transition {self.status.value} -> {status.value}",
                {"record_id": self.id},
            )
        self.status = status
        self.touch()

    def touch(self) -> None:
        self.updated_at = utc_now_iso()


# ── Pipeline progress ──


class VerificationStep(BaseModel):
    id: StepId
    label: str
    status: StepStatus = StepStatus.WAITING
    detail: str | None = None


# ── Trust scoring ──


class TrustFactors(BaseModel):
    """Inputs of the trust score; never persisted on their own."""

    model_config = ConfigDict(frozen=True)

    hash_verified: bool = True
    signature_valid: bool = True
    ledger_anchored: bool = False
    synthetic_score: float = Field(0.0, ge=0.0, le=1.0)
    generative_score: float = Field(0.0, ge=0.0, le=1.0)
    duplication_percentage: float = Field(0.0, ge=0.0, le=100.0)
    has_metadata: bool = False


class TrustScoreResult(BaseModel):
    score: int = Field(ge=0, le=100)
    grade: TrustGrade
    factors: TrustFactors


# ── Oracle results ──


class AuthenticityResult(BaseModel):
    synthetic_score: float = Field(ge=0.0, le=1.0)
    generative_score: float = Field(ge=0.0, le=1.0)
    is_genuine: bool
    is_simulated: bool = False


class OriginalityResult(BaseModel):
    match_percentage: float = Field(ge=0.0, le=100.0)
    is_original: bool
    sources: list[str] = Field(default_factory=list)
    is_simulated: bool = False


# ── Ledger ──


class AnchorResult(BaseModel):
    """Tagged outcome of one anchoring attempt."""

    outcome: AnchorOutcome
    tx_ref: str | None = None
    block_ref: int | None = None
    detail: str = ""

    @property
    def anchored(self) -> bool:
        """True when the digest is on the ledger, whether now or earlier."""
        return self.outcome in (AnchorOutcome.ANCHORED, AnchorOutcome.ALREADY_EXISTS)


class LedgerProof(BaseModel):
    digest: str
    signature: str
    public_key: str
    tx_ref: str | None = None
    block_ref: int | None = None
    submitter: str | None = None
    timestamp: int | None = None


# ── Storage / verification ──


class StoreStats(BaseModel):
    total: int = 0
    verified: int = 0
    anchored_count: int = 0


class ProofCheck(BaseModel):
    record_id: str
    hash_matches: bool
    signature_valid: bool
    anchored: bool
    ledger_matches: bool | None = None
    chain_matches: bool | None = None
    current_hash: str = ""

    @property
    def is_valid(self) -> bool:
        return (
            self.hash_matches
            and self.signature_valid
            and self.ledger_matches is not False
            and self.chain_matches is not False
        )


# ── Cloud / explorer lookups ──


class CloudProof(BaseModel):
    """A row of the shared ``proofs`` table."""

    model_config = ConfigDict(extra="ignore")

    id: str
    file_hash: str
    signature: str = ""
    public_key: str = ""
    blockchain_tx: str | None = None
    block_number: int | None = None
    ai_deepfake_score: float = 0.0
    ai_generated_score: float = 0.0
    plagiarism_score: float = 0.0
    trust_score: int = 0
    trust_grade: str = "F"
    file_type: str = "image"
    file_name: str = ""
    file_size: int = 0
    image_url: str | None = None
    device_info: str | None = None
    status: str = "pending"
    created_at: str | None = None


class CloudStats(BaseModel):
    total_proofs: int = 0
    total_verified: int = 0


class AnchoredInput(BaseModel):
    """Arguments of the ``anchorProof(bytes32,string,string)`` call."""

    file_hash: str
    signature: str
    public_key: str


class ExplorerTx(BaseModel):
    found: bool
    tx_ref: str | None = None
    sender: str | None = None
    recipient: str | None = None
    block_ref: int | None = None
    timestamp: str | None = None
    status: str | None = None
    value: str | None = None
    fee: str | None = None
    raw_input: str = ""
    decoded_proof: AnchoredInput | None = None


class ProofLookup(BaseModel):
    """Result of looking a proof up without a local record."""

    mode: str
    query: str
    computed_hash: str | None = None
    cloud_proof: CloudProof | None = None
    explorer_tx: ExplorerTx | None = None
    hash_matches: bool | None = None
    proof_found: bool = False


class ScannedImage(BaseModel):
    """Gallery tamper-scan entry keyed by the platform asset id."""

    id: str = Field(default_factory=new_record_id)
    asset_id: str
    uri: str
    file_name: str
    file_size: int = 0
    original_hash: str
    current_hash: str
    source: str = "Unknown"
    is_tampered: bool = False
    last_checked_at: str = Field(default_factory=utc_now_iso)
    created_at: str = Field(default_factory=utc_now_iso)
    album_name: str | None = None
