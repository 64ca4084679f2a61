"""ProofSnap — Abstract ledger anchor service.

An anchor service records ``(digest, signature, public key)`` on an external
ledger. Implementations raise ``AnchorError`` subclasses on rejection; the
``AnchorClient`` turns those into tagged results.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

from proofsnap.models.schemas import LedgerProof

_HEX = re.compile(r"^[0-9a-fA-F]*$")


def to_bytes32(digest_hex: str) -> str:
    """Normalise a hex digest to a 0x-prefixed, 32-byte, lowercase word."""
    hex_part = digest_hex[2:] if digest_hex.startswith("0x") else digest_hex
    if not _HEX.match(hex_part):
        raise ValueError(f"Digest is not hex: {digest_hex[:20]!r}")
    hex_part = hex_part[:64].rjust(64, "0")
    return "0x" + hex_part.lower()


class AnchorService(ABC):
    """Narrow contract of the ledger proof registry."""

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    async def submit(self, digest32: str, signature: str, public_key: str) -> tuple[str, int]:
        """Anchor a proof and wait for inclusion.

        Returns:
            ``(tx_ref, block_ref)`` of the including transaction.

        Raises:
            DuplicateProofError: a proof for ``digest32`` already exists.
            InsufficientFundsError: the fee cannot be paid.
            AnchorError: any other rejection or transport failure.
        """
        ...

    @abstractmethod
    async def get_proof(self, digest32: str) -> LedgerProof | None:
        """Return the stored proof for ``digest32`` or None."""
        ...

    async def aclose(self) -> None:
        """Optional cleanup."""
        return None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
