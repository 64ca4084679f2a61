"""ProofSnap — Gallery tamper scanner.

First sighting of an asset records its digest; later scans re-hash it and flag
the asset as tampered when the digest changed.
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Any

from proofsnap.core.crypto.hasher import ContentHasher
from proofsnap.models.schemas import ScannedImage, utc_now_iso

logger = logging.getLogger(__name__)

TRACKED_ALBUMS = {
    "whatsapp images": "WhatsApp",
    "whatsapp video": "WhatsApp",
    "whatsapp animated gifs": "WhatsApp",
    "snapchat": "Snapchat",
    "instagram": "Instagram",
    "telegram": "Telegram",
    "camera": "Camera",
    "dcim": "Camera",
    "screenshots": "Screenshots",
    "download": "Downloads",
    "recents": "Camera",
    "all photos": "Camera",
}


def detect_source(file_name: str, uri: str = "", album_name: str | None = None) -> str:
    if album_name:
        lowered = album_name.lower()
        for pattern, source in TRACKED_ALBUMS.items():
            if pattern in lowered:
                return source

    fname = file_name.lower()
    path = uri.lower()
    if "whatsapp" in fname or "whatsapp" in path:
        return "WhatsApp"
    if "snap" in fname or "snapchat" in path:
        return "Snapchat"
    if "instagram" in fname or "instagram" in path:
        return "Instagram"
    if "telegram" in fname or "telegram" in path:
        return "Telegram"
    if fname.startswith(("img_", "dsc")):
        return "Camera"
    if "screenshot" in fname:
        return "Screenshots"
    if "download" in path:
        return "Downloads"
    return "Other"


class TamperScanner:
    def __init__(self, hasher: ContentHasher | None = None) -> None:
        self.hasher = hasher or ContentHasher()
        self._images: dict[str, ScannedImage] = {}

    def scan(self, asset_id: str, uri: str | Path, file_name: str | None = None, album_name: str | None = None) -> ScannedImage:
        """Register or re-check one asset. Raises ReadError if unreadable."""
        path = Path(uri)
        digest = self.hasher.hash(path)
        now = utc_now_iso()

        known = self._images.get(asset_id)
        if known is None:
            name = file_name or path.name or f"image_{asset_id}"
            image = ScannedImage(
                asset_id=asset_id,
                uri=str(path),
                file_name=name,
                file_size=path.stat().st_size,
                original_hash=digest,
                current_hash=digest,
                source=detect_source(name, str(path), album_name),
                album_name=album_name,
                last_checked_at=now,
                created_at=now,
            )
        else:
            tampered = digest != known.original_hash
            if tampered and not known.is_tampered:
                logger.warning("Asset %s changed since first scan", asset_id)
            image = known.model_copy(
                update={"current_hash": digest, "is_tampered": tampered, "last_checked_at": now, "uri": str(path)}
            )
        self._images[asset_id] = image
        return image

    def get(self, asset_id: str) -> ScannedImage | None:
        return self._images.get(asset_id)

    def tampered(self) -> list[ScannedImage]:
        return [img for img in self._images.values() if img.is_tampered]

    def stats(self) -> dict[str, Any]:
        total = len(self._images)
        tampered = len(self.tampered())
        return {
            "total_scanned": total,
            "tampered": tampered,
            "safe": total - tampered,
            "by_source": dict(Counter(img.source for img in self._images.values())),
        }
