"""
Image Resizer — scale oversized images down to a maximum width.

Applied once, when a file is registered, before any optimization. The
aspect ratio is kept; images at or under the limit are left untouched.

    resizer = ImageResizer(max_width=1920)
    outcome = resizer.scale_to_max_width(Path("media/hero.jpg"))
    outcome["resized"]   # True if the file was rewritten
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any, Dict

from PIL import Image, UnidentifiedImageError

from ..errors import OptimizationFailed
from ..fileio import write_bytes_atomic
from .processors import clamp

logger = logging.getLogger(__name__)

DEFAULT_MAX_WIDTH = 1920
MIN_WIDTH = 300
MAX_WIDTH = 4096

# Encoder settings used when writing the downscaled file
SAVE_OPTIONS = {
    "JPEG": {"quality": 85, "optimize": True},
    "PNG": {"compress_level": 9},
    "WEBP": {"quality": 85, "method": 4},
}


class ImageResizer:
    """Downscale images wider than ``max_width`` in place."""

    def __init__(self, max_width: int = DEFAULT_MAX_WIDTH):
        self.max_width = clamp(max_width, MIN_WIDTH, MAX_WIDTH)

    def scale_to_max_width(self, file_path: Path) -> Dict[str, Any]:
        """
        Resize ``file_path`` so its width is at most ``max_width``.

        Returns:
            Dict with ``resized`` plus original and new dimensions.

        Raises:
            OptimizationFailed: File missing, undecodable, unsupported
                format, or write error.
        """
        file_path = Path(file_path)
        if not file_path.is_file():
            raise OptimizationFailed(f"File not found: {file_path}")

        try:
            with Image.open(file_path) as img:
                fmt = img.format
                width, height = img.size
                if width <= self.max_width:
                    return _outcome(False, width, height, width, height)
                if fmt not in SAVE_OPTIONS:
                    raise OptimizationFailed(f"Cannot resize {fmt or 'unknown'} image: {file_path.name}")
                if getattr(img, "is_animated", False):
                    raise OptimizationFailed(f"Cannot resize animated image: {file_path.name}")

                new_width = self.max_width
                new_height = max(1, int(height * new_width / width))
                icc_profile = img.info.get("icc_profile")
                img.load()
                resized = img.resize((new_width, new_height), Image.LANCZOS)
        except OptimizationFailed:
            raise
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise OptimizationFailed(f"Resize failed: {e}") from e

        options = dict(SAVE_OPTIONS[fmt])
        if icc_profile and fmt == "JPEG":
            options["icc_profile"] = icc_profile

        buf = io.BytesIO()
        try:
            resized.save(buf, format=fmt, **options)
            write_bytes_atomic(file_path, buf.getvalue())
        except (OSError, ValueError) as e:
            raise OptimizationFailed(f"Resize failed: {e}") from e

        logger.info(f"Resized {file_path.name}: {width}x{height} → {new_width}x{new_height}")
        return _outcome(True, width, height, new_width, new_height)


def _outcome(resized: bool, width: int, height: int, new_width: int, new_height: int) -> Dict[str, Any]:
    return {
        "resized": resized,
        "original_width": width,
        "original_height": height,
        "new_width": new_width,
        "new_height": new_height,
    }
