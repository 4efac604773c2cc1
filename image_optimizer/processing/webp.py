"""
WebP Converter — best-effort WebP sibling next to a JPEG or PNG asset.

    media/photo.jpg  →  media/photo.jpg.webp

An existing sibling is reused as-is. Callers treat any failure here as a
degraded success: the main asset is already optimized.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError, features

from ..errors import OptimizationFailed
from ..fileio import write_bytes_atomic
from .processors import clamp

logger = logging.getLogger(__name__)

CONVERTIBLE_EXTENSIONS = (".jpg", ".jpeg", ".png")


class WebpConverter:
    """Produce and remove ``<path>.webp`` siblings."""

    def __init__(self, quality: int = 60):
        self.quality = quality

    def is_supported(self) -> bool:
        return bool(features.check("webp"))

    def can_convert_file(self, file_path: Path) -> bool:
        return Path(file_path).suffix.lower() in CONVERTIBLE_EXTENSIONS

    def webp_path(self, file_path: Path) -> Path:
        file_path = Path(file_path)
        return file_path.with_name(f"{file_path.name}.webp")

    def convert(self, file_path: Path, quality: int | None = None) -> Path:
        """
        Write the WebP sibling and return its path.

        Raises:
            OptimizationFailed: Source missing, unsupported type, no WebP
                support in Pillow, or encoder error.
        """
        file_path = Path(file_path)
        quality = self.quality if quality is None else quality

        if not file_path.is_file():
            raise OptimizationFailed(f"Source file not found: {file_path}")
        if not self.is_supported():
            raise OptimizationFailed("WebP support not available in Pillow")
        if not self.can_convert_file(file_path):
            raise OptimizationFailed(f"Cannot convert file to WebP: {file_path.name}")

        target = self.webp_path(file_path)
        if target.exists():
            return target

        try:
            with Image.open(file_path) as img:
                img.load()
                if img.mode not in ("RGB", "RGBA"):
                    img = img.convert("RGBA" if "A" in img.getbands() or img.mode == "P" else "RGB")
                buf = io.BytesIO()
                img.save(buf, format="WEBP", quality=clamp(quality, 0, 100), method=4)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise OptimizationFailed(f"WebP conversion failed: {e}") from e

        write_bytes_atomic(target, buf.getvalue())
        logger.info(f"WebP created: {target.name} ({len(buf.getvalue()):,} bytes)")
        return target

    def delete_webp_version(self, file_path: Path) -> bool:
        """Remove the sibling; a missing sibling counts as deleted."""
        target = self.webp_path(file_path)
        if not target.exists():
            return True
        try:
            target.unlink()
        except OSError as e:
            logger.warning(f"Failed to delete {target}: {e}")
            return False
        return True
