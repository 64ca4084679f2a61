"""ProofSnap — Re-verification of an existing proof.

Recomputes the file digest, checks the stored signature and, when a ledger is
reachable, compares the on-ledger proof with the record. Without a local record,
proofs are looked up in the shared cloud table by digest, file or transaction,
and the anchoring transaction is read back from the block explorer.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from proofsnap.core.anchor.base import to_bytes32
from proofsnap.core.anchor.client import AnchorClient
from proofsnap.core.anchor.explorer import ExplorerClient
from proofsnap.core.crypto.hasher import ContentHasher
from proofsnap.core.crypto.signer import Signer
from proofsnap.core.exceptions import InvalidDigestError, InvalidTxRefError, ReadError
from proofsnap.core.sync.cloud_sync import CloudSyncClient
from proofsnap.models.schemas import CaptureRecord, CloudProof, ExplorerTx, ProofCheck, ProofLookup

logger = logging.getLogger(__name__)

MIN_QUERY_HASH = 16
MIN_TX_REF = 10


def _bare_hex(value: str) -> str:
    value = value.strip().lower()
    return value[2:] if value.startswith("0x") else value


class ProofVerifier:
    def __init__(
        self,
        hasher: ContentHasher | None = None,
        anchor_client: AnchorClient | None = None,
        cloud: CloudSyncClient | None = None,
        explorer: ExplorerClient | None = None,
    ) -> None:
        self.hasher = hasher or ContentHasher()
        self.anchor_client = anchor_client
        self.cloud = cloud
        self.explorer = explorer

    async def verify(self, file_ref: str | Path, record: CaptureRecord) -> ProofCheck:
        try:
            current = await asyncio.to_thread(self.hasher.hash, file_ref)
        except ReadError:
            logger.warning("Proof %s: file %s unreadable", record.id, file_ref)
            current = ""

        hash_matches = bool(current) and current == record.file_hash
        signature_valid = bool(record.signature) and Signer.verify(
            record.file_hash, record.signature, record.public_key
        )

        ledger_matches = None
        anchored = record.blockchain_tx is not None
        if self.anchor_client is not None and record.file_hash:
            proof = await self.anchor_client.lookup(record.file_hash)
            if proof is not None:
                anchored = True
                ledger_matches = (
                    proof.digest.lower() == to_bytes32(record.file_hash)
                    and proof.signature == record.signature
                    and proof.public_key == record.public_key
                )

        chain_matches = None
        if self.explorer is not None and record.blockchain_tx:
            tx = await self.explorer.fetch_transaction(record.blockchain_tx)
            if tx.decoded_proof is not None:
                chain_matches = (
                    _bare_hex(tx.decoded_proof.file_hash) == _bare_hex(to_bytes32(record.file_hash))
                    and tx.decoded_proof.signature == record.signature
                    and tx.decoded_proof.public_key == record.public_key
                )

        check = ProofCheck(
            record_id=record.id,
            hash_matches=hash_matches,
            signature_valid=signature_valid,
            anchored=anchored,
            ledger_matches=ledger_matches,
            chain_matches=chain_matches,
            current_hash=current,
        )
        logger.info(
            "Proof %s checked: hash=%s signature=%s ledger=%s chain=%s",
            record.id,
            hash_matches,
            signature_valid,
            ledger_matches,
            chain_matches,
        )
        return check

    # ── Lookups without a local record ──

    async def _cloud_and_chain(self, file_hash: str) -> tuple[CloudProof | None, ExplorerTx | None]:
        cloud_proof = await self.cloud.find_by_hash(file_hash) if self.cloud is not None else None
        explorer_tx = None
        if cloud_proof is not None and cloud_proof.blockchain_tx and self.explorer is not None:
            explorer_tx = await self.explorer.fetch_transaction(cloud_proof.blockchain_tx)
        return cloud_proof, explorer_tx

    async def verify_digest(self, file_hash: str) -> ProofLookup:
        """Find the shared proof for a digest and its anchoring transaction."""
        digest = _bare_hex(file_hash)
        if len(digest) < MIN_QUERY_HASH:
            raise InvalidDigestError(f"File hash too short: {file_hash!r}", {"min_length": MIN_QUERY_HASH})
        cloud_proof, explorer_tx = await self._cloud_and_chain(digest)
        lookup = ProofLookup(
            mode="hash",
            query=digest,
            cloud_proof=cloud_proof,
            explorer_tx=explorer_tx,
            proof_found=cloud_proof is not None,
        )
        logger.info("Hash lookup %s...: found=%s", digest[:12], lookup.proof_found)
        return lookup

    async def verify_media(self, file_ref: str | Path) -> ProofLookup:
        """Hash a file and look its proof up; the chain digest is cross-checked."""
        computed = await asyncio.to_thread(self.hasher.hash, file_ref)
        cloud_proof, explorer_tx = await self._cloud_and_chain(computed)
        hash_matches = None
        if explorer_tx is not None and explorer_tx.decoded_proof is not None:
            hash_matches = computed.lower() == _bare_hex(explorer_tx.decoded_proof.file_hash)
        lookup = ProofLookup(
            mode="media",
            query=str(file_ref),
            computed_hash=computed,
            cloud_proof=cloud_proof,
            explorer_tx=explorer_tx,
            hash_matches=hash_matches,
            proof_found=cloud_proof is not None,
        )
        logger.info("Media lookup %s: found=%s chain_match=%s", computed[:12], lookup.proof_found, hash_matches)
        return lookup

    async def verify_tx(self, tx_ref: str, file_hash: str | None = None) -> ProofLookup:
        """Read an anchoring transaction; ``file_hash`` is compared with its digest."""
        tx_ref = tx_ref.strip()
        if not tx_ref.startswith("0x") or len(tx_ref) < MIN_TX_REF:
            raise InvalidTxRefError(f"Not a transaction hash: {tx_ref!r}")
        explorer_tx = (
            await self.explorer.fetch_transaction(tx_ref) if self.explorer is not None else ExplorerTx(found=False)
        )
        cloud_proof = await self.cloud.find_by_tx(tx_ref) if self.cloud is not None else None
        hash_matches = None
        if file_hash and file_hash.strip() and explorer_tx.decoded_proof is not None:
            hash_matches = _bare_hex(file_hash) == _bare_hex(explorer_tx.decoded_proof.file_hash)
        lookup = ProofLookup(
            mode="tx",
            query=tx_ref,
            cloud_proof=cloud_proof,
            explorer_tx=explorer_tx,
            hash_matches=hash_matches,
            proof_found=explorer_tx.found,
        )
        logger.info("Tx lookup %s: found=%s hash_match=%s", tx_ref[:12], lookup.proof_found, hash_matches)
        return lookup
