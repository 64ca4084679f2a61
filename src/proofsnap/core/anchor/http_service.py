"""ProofSnap — Anchor gateway over HTTP.

The gateway fronts the proof registry contract:

    POST /proofs            {"fileHash", "signature", "publicKey", "contract"}
                            → 200 {"txHash", "blockNumber"}
                            → 409 proof already exists (may carry "txHash")
                            → 402 insufficient balance for fees
    GET  /proofs/{bytes32}  → 200 proof record | 404
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from proofsnap.core.anchor.base import AnchorService
from proofsnap.core.exceptions import AnchorError, DuplicateProofError, InsufficientFundsError
from proofsnap.models.schemas import LedgerProof

logger = logging.getLogger(__name__)

FUNDS_MARKERS = ("insufficient funds", "doesn't have enough funds", "insufficient balance")
DUPLICATE_MARKERS = ("already exists", "proof exists", "already anchored")


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or body)
    return str(body)


class HttpAnchorService(AnchorService):
    def __init__(
        self,
        base_url: str,
        contract_address: str,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.contract_address = contract_address
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def name(self) -> str:
        return "http-gateway"

    async def submit(self, digest32: str, signature: str, public_key: str) -> tuple[str, int]:
        payload = {
            "fileHash": digest32,
            "signature": signature,
            "publicKey": public_key,
            "contract": self.contract_address,
        }
        try:
            response = await self._client.post(f"{self.base_url}/proofs", json=payload)
        except httpx.HTTPError as exc:
            raise AnchorError(f"Anchor gateway unreachable: {exc}") from exc

        if response.status_code == 409:
            tx_ref = None
            try:
                tx_ref = response.json().get("txHash")
            except (ValueError, AttributeError):
                pass
            raise DuplicateProofError("Proof already exists for this digest", tx_ref=tx_ref)

        if response.status_code >= 400:
            message = _error_text(response)
            lowered = message.lower()
            if response.status_code == 402 or any(m in lowered for m in FUNDS_MARKERS):
                raise InsufficientFundsError(message)
            if any(m in lowered for m in DUPLICATE_MARKERS):
                raise DuplicateProofError(message)
            raise AnchorError(f"Anchor rejected ({response.status_code}): {message}")

        try:
            data: dict[str, Any] = response.json()
            return str(data["txHash"]), int(data["blockNumber"])
        except (ValueError, KeyError, TypeError) as exc:
            raise AnchorError(f"Malformed anchor response: {exc}") from exc

    async def get_proof(self, digest32: str) -> LedgerProof | None:
        try:
            response = await self._client.get(f"{self.base_url}/proofs/{digest32}")
        except httpx.HTTPError as exc:
            raise AnchorError(f"Anchor gateway unreachable: {exc}") from exc
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise AnchorError(f"Proof lookup failed ({response.status_code}): {_error_text(response)}")

        try:
            data = response.json()
        except ValueError as exc:
            raise AnchorError(f"Malformed proof response: {exc}") from exc
        if not isinstance(data, dict):
            raise AnchorError("Malformed proof response")
        if not data.get("exists", True):
            return None
        try:
            return LedgerProof(
                digest=data.get("fileHash", digest32),
                signature=data.get("signature", ""),
                public_key=data.get("publicKey", ""),
                tx_ref=data.get("txHash"),
                block_ref=data.get("blockNumber"),
                submitter=data.get("submitter") or data.get("signer"),
                timestamp=int(data["timestamp"]) if data.get("timestamp") is not None else None,
            )
        except (ValueError, TypeError) as exc:
            raise AnchorError(f"Malformed proof response: {exc}") from exc

    async def aclose(self) -> None:
        await self._client.aclose()
