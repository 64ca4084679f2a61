"""ProofSnap — Exception hierarchy.

Fatal conditions (unreadable file, missing device key, storage failure) raise
one of these and abort the pipeline. Anchor errors are raised by anchor services
and classified by ``AnchorClient``; they never reach the orchestrator.
"""

from __future__ import annotations

from typing import Any


class ProofSnapError(Exception):
    """Base exception for all ProofSnap errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ReadError(ProofSnapError):
    """Raised when a media file cannot be read."""


class CryptographicError(ProofSnapError):
    pass


class NoKeyError(CryptographicError):
    """Raised when signing is attempted before a device identity exists."""


class InvalidDigestError(CryptographicError):
    """Raised when a digest is not valid hex."""


class InvalidTxRefError(ProofSnapError):
    """Raised when a transaction reference is not a 0x-prefixed hash."""


class StorageError(ProofSnapError):
    pass


class IllegalTransitionError(ProofSnapError):
    """Raised on a lifecycle move the state machine forbids."""


class AnchorError(ProofSnapError):
    """Raised by anchor services when a submission is rejected or unreachable."""


class DuplicateProofError(AnchorError):
    """The ledger already holds a proof for this digest."""

    def __init__(self, message: str, tx_ref: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details)
        self.tx_ref = tx_ref


class InsufficientFundsError(AnchorError):
    """The anchoring account cannot pay the transaction fee."""
