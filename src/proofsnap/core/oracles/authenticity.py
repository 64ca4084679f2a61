"""ProofSnap — Authenticity oracle (synthetic-face / generative-origin scores)."""

from __future__ import annotations

import logging
from typing import Any

from proofsnap.core.oracles.base import BaseOracleClient
from proofsnap.models.schemas import AuthenticityResult

logger = logging.getLogger(__name__)

GENUINE_THRESHOLD = 0.3


def _score(data: dict[str, Any], nested: str, flat: str) -> float:
    block = data.get(nested)
    if isinstance(block, dict) and block.get("score") is not None:
        value = block["score"]
    else:
        value = data.get(flat, 0.0)
    try:
        return min(1.0, max(0.0, float(value)))
    except (TypeError, ValueError):
        return 0.0


class AuthenticityOracleClient(BaseOracleClient):
    @property
    def name(self) -> str:
        return "authenticity_oracle"

    @property
    def endpoint(self) -> str:
        return "/api/detect"

    async def detect_synthetic(self, media: bytes, filename: str = "media.jpg") -> AuthenticityResult:
        data = await self.query(media, filename)
        if data is None:
            return self.simulate()

        synthetic = round(_score(data, "deepfake", "deepfakeScore"), 2)
        generative = round(_score(data, "aiGenerated", "aiGeneratedScore"), 2)
        return AuthenticityResult(
            synthetic_score=synthetic,
            generative_score=generative,
            is_genuine=synthetic < GENUINE_THRESHOLD and generative < GENUINE_THRESHOLD,
            is_simulated=data.get("simulated") is True,
        )

    def simulate(self) -> AuthenticityResult:
        """Placeholder biased toward genuine media; always flagged simulated."""
        synthetic = round(float(self.rng.uniform(0.0, 0.15)), 2)
        generative = round(float(self.rng.uniform(0.0, 0.10)), 2)
        return AuthenticityResult(
            synthetic_score=synthetic,
            generative_score=generative,
            is_genuine=True,
            is_simulated=True,
        )
