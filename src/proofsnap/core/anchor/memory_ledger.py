"""ProofSnap — In-process ledger enforcing one proof per digest."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time

from proofsnap.core.anchor.base import AnchorService
from proofsnap.core.exceptions import AnchorError, DuplicateProofError, InsufficientFundsError
from proofsnap.models.schemas import LedgerProof

logger = logging.getLogger(__name__)


class MemoryLedger(AnchorService):
    """Local stand-in for the proof registry contract.

    Used offline and in tests. ``balance`` counts how many more submissions the
    account can pay for (None = unlimited); ``online=False`` simulates an outage.
    """

    def __init__(
        self,
        submitter: str = "0x0000000000000000000000000000000000000001",
        balance: int | None = None,
        online: bool = True,
    ) -> None:
        self.submitter = submitter
        self.balance = balance
        self.online = online
        self._proofs: dict[str, LedgerProof] = {}
        self._block = 0
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return "memory"

    @property
    def entry_count(self) -> int:
        return len(self._proofs)

    async def submit(self, digest32: str, signature: str, public_key: str) -> tuple[str, int]:
        if not self.online:
            raise AnchorError("Network unreachable: ledger offline")
        async with self._lock:
            existing = self._proofs.get(digest32)
            if existing is not None:
                raise DuplicateProofError("Proof already exists for this digest", tx_ref=existing.tx_ref)
            if self.balance is not None:
                if self.balance <= 0:
                    raise InsufficientFundsError("insufficient funds for gas * price + value")
                self.balance -= 1

            self._block += 1
            tx_ref = "0x" + hashlib.sha256(f"{digest32}:{self._block}".encode()).hexdigest()
            self._proofs[digest32] = LedgerProof(
                digest=digest32,
                signature=signature,
                public_key=public_key,
                tx_ref=tx_ref,
                block_ref=self._block,
                submitter=self.submitter,
                timestamp=int(time.time()),
            )
        logger.debug("Ledger entry %s at block %d", digest32[:18], self._block)
        return tx_ref, self._block

    async def get_proof(self, digest32: str) -> LedgerProof | None:
        if not self.online:
            raise AnchorError("Network unreachable: ledger offline")
        return self._proofs.get(digest32)
