"""ProofSnap — Visible watermark stamping and invisible watermark ids.

The invisible watermark id is an opaque label, not bound to the signature.
"""

from __future__ import annotations

import logging
import secrets
import shutil
import string
import time
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from proofsnap.models.schemas import to_base36

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_uppercase
ALPHA_FORMATS = {"PNG", "WEBP", "TIFF"}


def generate_invisible_watermark_id() -> str:
    stamp = to_base36(int(time.time() * 1000)).upper()
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"PS-{stamp}-{suffix}"


class Watermarker:
    def __init__(self, output_dir: str | Path, opacity: int = 180) -> None:
        self.output_dir = Path(output_dir)
        self.opacity = opacity

    def apply_visible(self, image_ref: str | Path, trust_score: int, trust_grade: str) -> str:
        """Write a stamped copy of the image and return its path.

        The original file is never modified. Falls back to a plain copy when the
        image cannot be decoded, and to the original path if copying fails.
        """
        source = Path(image_ref)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Watermark dir unavailable (%s), returning original", exc)
            return str(source)

        stem = f"wm_{int(time.time() * 1000)}_{secrets.token_hex(3)}_{trust_grade}"
        dest = self.output_dir / f"{stem}{source.suffix or '.jpg'}"
        label = f"ProofSnap {trust_score}/100 {trust_grade}"
        try:
            with Image.open(source) as img:
                stamped = self._stamp(img, label)
                fmt = img.format or "JPEG"
                if fmt not in ALPHA_FORMATS:
                    stamped = stamped.convert("RGB")
                stamped.save(dest, format=fmt)
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            logger.warning("Cannot stamp %s (%s); copying instead", source.name, exc)
            try:
                shutil.copyfile(source, dest)
            except OSError:
                logger.warning("Watermark copy failed, returning original")
                return str(source)
        return str(dest)

    def _stamp(self, img: Image.Image, label: str) -> Image.Image:
        base = img.convert("RGBA")
        overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)
        font = ImageFont.load_default()
        left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
        w, h = right - left, bottom - top
        pad = 4
        x = max(0, base.width - w - 2 * pad)
        y = max(0, base.height - h - 2 * pad)
        draw.rectangle((x, y, x + w + 2 * pad, y + h + 2 * pad), fill=(0, 0, 0, self.opacity // 2))
        draw.text((x + pad, y + pad - top), label, font=font, fill=(255, 255, 255, self.opacity))
        return Image.alpha_composite(base, overlay)
