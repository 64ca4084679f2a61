"""ProofSnap — Block explorer lookups.

Reads anchoring transactions from a Blockscout v2 REST API and decodes the
``anchorProof(bytes32 fileHash, string signature, string publicKey)`` call
data. Lookups are best-effort: any failure yields ``ExplorerTx(found=False)``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from proofsnap.models.schemas import AnchoredInput, ExplorerTx

logger = logging.getLogger(__name__)

WORD = 64  # hex chars per 32-byte ABI word
SELECTOR = 8


def _word(data: str, index: int) -> str:
    chunk = data[index * WORD : (index + 1) * WORD]
    if len(chunk) != WORD:
        raise ValueError("Call data truncated")
    return chunk


def _dynamic_string(data: str, head_index: int) -> str:
    offset = int(_word(data, head_index), 16)
    if offset % 32:
        raise ValueError("Unaligned string offset")
    start = offset // 32
    length = int(_word(data, start), 16)
    body = data[(start + 1) * WORD : (start + 1) * WORD + length * 2]
    if len(body) != length * 2:
        raise ValueError("String body truncated")
    return bytes.fromhex(body).decode("utf-8")


def decode_proof_input(raw_input: str) -> AnchoredInput | None:
    """Decode anchoring call data; None when it is not an anchor call.

    The 4-byte selector is skipped, not checked.
    """
    data = raw_input[2:] if raw_input.startswith("0x") else raw_input
    if len(data) <= SELECTOR:
        return None
    args = data[SELECTOR:]
    try:
        bytes.fromhex(args)
        return AnchoredInput(
            file_hash="0x" + _word(args, 0).lower(),
            signature=_dynamic_string(args, 1),
            public_key=_dynamic_string(args, 2),
        )
    except (ValueError, UnicodeDecodeError):
        return None


def _address(value: Any) -> str | None:
    if isinstance(value, dict):
        return value.get("hash")
    return value


class ExplorerClient:
    def __init__(
        self,
        explorer_url: str,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_url = f"{explorer_url.rstrip('/')}/api/v2"
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def fetch_transaction(self, tx_ref: str) -> ExplorerTx:
        try:
            response = await asyncio.wait_for(
                self._client.get(f"{self.api_url}/transactions/{tx_ref}", headers={"Accept": "application/json"}),
                timeout=self.timeout,
            )
        except (httpx.HTTPError, asyncio.TimeoutError) as exc:
            logger.warning("Explorer lookup of %s failed: %s", tx_ref[:12], str(exc) or type(exc).__name__)
            return ExplorerTx(found=False)
        if response.status_code >= 400:
            logger.info("Explorer has no transaction %s (HTTP %d)", tx_ref[:12], response.status_code)
            return ExplorerTx(found=False)

        try:
            tx = response.json()
        except ValueError:
            logger.warning("Explorer returned non-JSON for %s", tx_ref[:12])
            return ExplorerTx(found=False)
        if not isinstance(tx, dict):
            logger.warning("Explorer returned %s for %s", type(tx).__name__, tx_ref[:12])
            return ExplorerTx(found=False)

        raw_input = tx.get("raw_input") or tx.get("input") or ""
        if not isinstance(raw_input, str):
            raw_input = ""
        fee = tx.get("fee")
        block = tx.get("block_number", tx.get("block"))
        try:
            return ExplorerTx(
                found=True,
                tx_ref=tx.get("hash", tx_ref),
                sender=_address(tx.get("from")),
                recipient=_address(tx.get("to")),
                block_ref=int(block) if block is not None else None,
                timestamp=tx.get("timestamp"),
                status=tx.get("status"),
                value=None if tx.get("value") is None else str(tx["value"]),
                fee=str(fee["value"]) if isinstance(fee, dict) and fee.get("value") is not None else None,
                raw_input=raw_input,
                decoded_proof=decode_proof_input(raw_input) if len(raw_input) > 10 else None,
            )
        except (ValueError, TypeError) as exc:
            logger.warning("Malformed explorer transaction %s: %s", tx_ref[:12], exc)
            return ExplorerTx(found=False)

    async def aclose(self) -> None:
        await self._client.aclose()
