"""ProofSnap — Trust Score Engine.

Final decision layer: additive penalties from 100 → integer score 0-100 + grade.
Pure: no clock, no randomness, no I/O.
"""

from __future__ import annotations

import logging

from proofsnap.models.enums import TrustGrade
from proofsnap.models.schemas import TrustFactors, TrustScoreResult

logger = logging.getLogger(__name__)

# (threshold, penalty), checked high to low; first strict ">" match wins.
SYNTHETIC_TIERS = ((0.7, 40), (0.4, 20), (0.2, 5))
GENERATIVE_TIERS = ((0.7, 30), (0.4, 15), (0.2, 3))
DUPLICATION_TIERS = ((50.0, 20), (30.0, 10))

GRADE_THRESHOLDS = (
    (95, TrustGrade.S),
    (80, TrustGrade.A),
    (60, TrustGrade.B),
    (40, TrustGrade.C),
)

HASH_PENALTY = 50
SIGNATURE_PENALTY = 30
ANCHOR_PENALTY = 10
METADATA_BONUS = 2


def _tier_penalty(value: float, tiers: tuple[tuple[float, int], ...]) -> int:
    for threshold, penalty in tiers:
        if value > threshold:
            return penalty
    return 0


def grade_for(score: float) -> TrustGrade:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return TrustGrade.F


class TrustScoreEngine:
    def compute(self, factors: TrustFactors) -> TrustScoreResult:
        score = 100

        # Cryptographic integrity
        if not factors.hash_verified:
            score -= HASH_PENALTY
        if not factors.signature_valid:
            score -= SIGNATURE_PENALTY

        if not factors.ledger_anchored:
            score -= ANCHOR_PENALTY

        score -= _tier_penalty(factors.synthetic_score, SYNTHETIC_TIERS)
        score -= _tier_penalty(factors.generative_score, GENERATIVE_TIERS)
        score -= _tier_penalty(factors.duplication_percentage, DUPLICATION_TIERS)

        if factors.has_metadata:
            score = min(100, score + METADATA_BONUS)

        score = round(max(0, min(100, score)))
        return TrustScoreResult(score=score, grade=grade_for(score), factors=factors)

    @staticmethod
    def explain(result: TrustScoreResult, simulated_sources: list[str] | None = None) -> dict[str, str]:
        """User-facing narrative; simulated signals are always named."""
        msgs = {
            TrustGrade.S: "Capture is cryptographically sealed and shows no manipulation signals.",
            TrustGrade.A: "Capture is sealed; minor verification gaps.",
            TrustGrade.B: "Capture is sealed but some authenticity signals are weak.",
            TrustGrade.C: "Several authenticity signals raise concern. Manual review recommended.",
            TrustGrade.F: "Capture could not be trusted.",
        }
        f = result.factors
        notes = []
        if not f.hash_verified:
            notes.append("content hash not verified")
        if not f.signature_valid:
            notes.append("device signature invalid")
        if not f.ledger_anchored:
            notes.append("not anchored on ledger")
        if f.synthetic_score > 0.2:
            notes.append(f"synthetic-face likelihood {f.synthetic_score:.0%}")
        if f.generative_score > 0.2:
            notes.append(f"generative-origin likelihood {f.generative_score:.0%}")
        if f.duplication_percentage > 30:
            notes.append(f"{f.duplication_percentage:.0f}% match with existing media")

        explanation = {
            "summary": msgs[result.grade],
            "trust_score_label": f"{result.score}/100",
            "grade": result.grade.value,
            "issues": "; ".join(notes) if notes else "none",
        }
        if simulated_sources:
            explanation["simulated"] = (
                "Simulated (non-authoritative) estimates used for: " + ", ".join(simulated_sources)
            )
        return explanation
