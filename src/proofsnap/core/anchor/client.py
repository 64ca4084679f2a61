"""ProofSnap — Ledger anchor client.

Wraps an ``AnchorService`` and classifies every way a submission can end into
an ``AnchorResult``. Anchoring failure is user-visible but never fatal, so this
client does not raise for service-side problems.
"""

from __future__ import annotations

import asyncio
import logging

from proofsnap.core.anchor.base import AnchorService, to_bytes32
from proofsnap.core.exceptions import AnchorError, DuplicateProofError, InsufficientFundsError
from proofsnap.models.enums import AnchorOutcome
from proofsnap.models.schemas import AnchorResult, LedgerProof

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


class AnchorClient:
    def __init__(
        self,
        service: AnchorService | None,
        timeout: float = DEFAULT_TIMEOUT,
        faucet_url: str = "",
    ) -> None:
        self.service = service
        self.timeout = timeout
        self.faucet_url = faucet_url

    async def anchor(self, digest_hex: str, signature_hex: str, public_key_hex: str) -> AnchorResult:
        if self.service is None:
            return AnchorResult(outcome=AnchorOutcome.UNAVAILABLE, detail="Ledger not configured")

        try:
            digest32 = to_bytes32(digest_hex)
        except ValueError as exc:
            return AnchorResult(outcome=AnchorOutcome.UNAVAILABLE, detail=str(exc))

        try:
            tx_ref, block_ref = await asyncio.wait_for(
                self.service.submit(digest32, signature_hex, public_key_hex), timeout=self.timeout
            )
        except DuplicateProofError as exc:
            return await self._already_exists(digest32, exc.tx_ref)
        except InsufficientFundsError as exc:
            logger.warning("Anchoring %s... failed: insufficient funds (%s)", digest_hex[:12], exc)
            advice = "Insufficient tokens for gas."
            if self.faucet_url:
                advice += f" Get free tokens from the faucet: {self.faucet_url}"
            return AnchorResult(outcome=AnchorOutcome.INSUFFICIENT_FUNDS, detail=advice)
        except asyncio.TimeoutError:
            logger.warning("Anchoring %s... timed out after %.0fs", digest_hex[:12], self.timeout)
            return AnchorResult(outcome=AnchorOutcome.UNAVAILABLE, detail="Ledger timed out - will retry")
        except AnchorError as exc:
            logger.warning("Anchoring %s... failed: %s", digest_hex[:12], exc)
            return AnchorResult(outcome=AnchorOutcome.UNAVAILABLE, detail="Failed - will retry")

        logger.info("Anchored %s... in tx %s (block %d)", digest_hex[:12], tx_ref[:10], block_ref)
        return AnchorResult(outcome=AnchorOutcome.ANCHORED, tx_ref=tx_ref, block_ref=block_ref)

    async def _already_exists(self, digest32: str, tx_ref: str | None) -> AnchorResult:
        block_ref = None
        if tx_ref is None:
            existing = await self.lookup(digest32)
            if existing is not None:
                tx_ref, block_ref = existing.tx_ref, existing.block_ref
        logger.info("Proof for %s... already on ledger (tx %s)", digest32[2:14], tx_ref)
        return AnchorResult(
            outcome=AnchorOutcome.ALREADY_EXISTS,
            tx_ref=tx_ref,
            block_ref=block_ref,
            detail="Already anchored",
        )

    async def lookup(self, digest_hex: str) -> LedgerProof | None:
        """Existing ledger proof for a digest; None if absent or unreachable."""
        if self.service is None:
            return None
        try:
            return await asyncio.wait_for(self.service.get_proof(to_bytes32(digest_hex)), timeout=self.timeout)
        except (AnchorError, ValueError, asyncio.TimeoutError) as exc:
            logger.warning("Ledger lookup failed: %s", exc)
            return None
