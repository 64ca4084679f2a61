"""ProofSnap — Originality oracle (reverse similarity search)."""

from __future__ import annotations

import logging
from typing import Any

from proofsnap.core.oracles.base import BaseOracleClient
from proofsnap.models.schemas import OriginalityResult

logger = logging.getLogger(__name__)

# Below this match percentage the media counts as original (display rule).
ORIGINAL_THRESHOLD = 20.0


def _sources(data: dict[str, Any]) -> list[str]:
    matches = data.get("matches") or []
    out = []
    for match in matches:
        if isinstance(match, dict) and match.get("source"):
            out.append(str(match["source"]))
        elif isinstance(match, str):
            out.append(match)
    return out


class OriginalityOracleClient(BaseOracleClient):
    @property
    def name(self) -> str:
        return "originality_oracle"

    @property
    def endpoint(self) -> str:
        return "/api/plagiarism"

    async def check_originality(self, media: bytes, filename: str = "media.jpg") -> OriginalityResult:
        data = await self.query(media, filename)
        if data is None:
            return self.simulate()

        raw = data.get("plagiarismScore", data.get("matchPercentage", 0))
        try:
            match = min(100.0, max(0.0, float(raw)))
        except (TypeError, ValueError):
            match = 0.0
        return OriginalityResult(
            match_percentage=match,
            is_original=match < ORIGINAL_THRESHOLD,
            sources=_sources(data),
            is_simulated=data.get("simulated") is True,
        )

    def simulate(self) -> OriginalityResult:
        return OriginalityResult(
            match_percentage=float(self.rng.integers(0, 5)),
            is_original=True,
            sources=[],
            is_simulated=True,
        )
