"""ProofSnap — Content hasher (SHA-256 over the exact stored bytes)."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from proofsnap.core.exceptions import ReadError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class ContentHasher:
    """Hashes media files byte-for-byte.

    Callers must not re-encode the file between capture and hashing; any
    transcoding changes the digest and breaks later verification.
    """

    algorithm = "sha256"

    def hash(self, file_ref: str | Path) -> str:
        path = Path(file_ref)
        digest = hashlib.sha256()
        try:
            with path.open("rb") as fh:
                for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
                    digest.update(chunk)
        except OSError as exc:
            logger.error("Cannot read %s for hashing: %s", path, exc)
            raise ReadError(f"Cannot read media file: {path}", {"path": str(path), "error": str(exc)}) from exc
        return digest.hexdigest()

    def hash_bytes(self, content: bytes) -> str:
        return hashlib.sha256(content).hexdigest()
