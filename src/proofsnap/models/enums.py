"""ProofSnap — Shared enumerations."""

from __future__ import annotations

from enum import Enum


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class CaptureStatus(str, Enum):
    PENDING = "pending"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    FAILED = "failed"


class StepStatus(str, Enum):
    WAITING = "waiting"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class StepId(str, Enum):
    HASH = "hash"
    SIGN = "sign"
    ANCHOR = "anchor"
    AUTHENTICITY = "authenticity"
    ORIGINALITY = "originality"
    SCORE = "score"
    WATERMARK = "watermark"
    CLOUD_SYNC = "cloud-sync"


class PipelineStage(str, Enum):
    CREATED = "created"
    HASHING = "hashing"
    SIGNING = "signing"
    ANCHORING = "anchoring"
    AUTHENTICITY_CHECKING = "authenticity-checking"
    ORIGINALITY_CHECKING = "originality-checking"
    SCORING = "scoring"
    WATERMARKING = "watermarking"
    CLOUD_SYNCING = "cloud-syncing"
    VERIFIED = "verified"
    FAILED = "failed"


class TrustGrade(str, Enum):
    S = "S"
    A = "A"
    B = "B"
    C = "C"
    F = "F"


class AnchorOutcome(str, Enum):
    ANCHORED = "anchored"
    ALREADY_EXISTS = "already_exists"
    UNAVAILABLE = "unavailable"
    INSUFFICIENT_FUNDS = "insufficient_funds"


# Legal CaptureStatus moves; same-state rewrites are always allowed.
STATUS_TRANSITIONS: dict[CaptureStatus, set[CaptureStatus]] = {
    CaptureStatus.PENDING: {CaptureStatus.VERIFYING},
    CaptureStatus.VERIFYING: {CaptureStatus.VERIFIED, CaptureStatus.FAILED},
    CaptureStatus.VERIFIED: set(),
    CaptureStatus.FAILED: set(),
}

STEP_TRANSITIONS: dict[StepStatus, set[StepStatus]] = {
    StepStatus.WAITING: {StepStatus.RUNNING},
    StepStatus.RUNNING: {StepStatus.SUCCESS, StepStatus.ERROR},
    StepStatus.SUCCESS: set(),
    StepStatus.ERROR: set(),
}
