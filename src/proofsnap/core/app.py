"""ProofSnap — Default wiring of the orchestrator and verifier from settings."""

from __future__ import annotations

import logging

from proofsnap.config import Settings, get_settings
from proofsnap.core.anchor.client import AnchorClient
from proofsnap.core.anchor.explorer import ExplorerClient
from proofsnap.core.anchor.http_service import HttpAnchorService
from proofsnap.core.crypto.signer import FileKeyStore, KeyStore, Signer
from proofsnap.core.oracles.authenticity import AuthenticityOracleClient
from proofsnap.core.oracles.originality import OriginalityOracleClient
from proofsnap.core.orchestrator import VerificationOrchestrator
from proofsnap.core.storage.base import RecordStore
from proofsnap.core.storage.factory import open_store
from proofsnap.core.sync.cloud_sync import CloudSyncClient
from proofsnap.core.verification import ProofVerifier
from proofsnap.core.watermark import Watermarker

logger = logging.getLogger(__name__)


def _anchor_service(settings: Settings) -> HttpAnchorService | None:
    if not settings.anchor_configured:
        return None
    return HttpAnchorService(settings.anchor_url, settings.contract_address, timeout=settings.anchor_timeout)


def _cloud_sync(settings: Settings) -> CloudSyncClient | None:
    if not settings.cloud_configured:
        return None
    return CloudSyncClient(settings.cloud_url, settings.cloud_key, timeout=settings.cloud_timeout)


def build_orchestrator(
    settings: Settings | None = None,
    key_store: KeyStore | None = None,
    store: RecordStore | None = None,
) -> VerificationOrchestrator:
    """Assemble an orchestrator; the device identity must already exist."""
    settings = settings or get_settings()

    anchor_service = _anchor_service(settings)
    if anchor_service is None:
        logger.warning("No anchor gateway configured, proofs will not be anchored")

    return VerificationOrchestrator(
        store=store or open_store(settings.database_url),
        signer=Signer(key_store or FileKeyStore(settings.key_store_dir)),
        anchor_client=AnchorClient(anchor_service, timeout=settings.anchor_timeout, faucet_url=settings.faucet_url),
        authenticity=AuthenticityOracleClient(settings.api_base_url, timeout=settings.oracle_timeout),
        originality=OriginalityOracleClient(settings.api_base_url, timeout=settings.oracle_timeout),
        watermarker=Watermarker(settings.watermark_dir),
        cloud_sync=_cloud_sync(settings),
    )


def build_proof_verifier(settings: Settings | None = None) -> ProofVerifier:
    """Verifier for proofs with or without a local record."""
    settings = settings or get_settings()
    anchor_service = _anchor_service(settings)
    return ProofVerifier(
        anchor_client=AnchorClient(anchor_service, timeout=settings.anchor_timeout) if anchor_service else None,
        cloud=_cloud_sync(settings),
        explorer=ExplorerClient(settings.explorer_url, timeout=settings.explorer_timeout),
    )
