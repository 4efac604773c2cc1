"""
Image Processors — per-codec recompression with Pillow.

Each processor reads an image from disk and returns the re-encoded bytes.
Writing them back is the engine's job, so a failed encode never touches
the asset.

Compression level presets:

    level    JPEG quality   PNG compress_level
    low      80             7
    medium   70             8
    high     60             9

Any other level falls back to the explicit ``jpeg_quality`` /
``png_compression_level`` values. WebP always uses ``webp_quality``.
"""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from ..config.optimization import OptimizationConfig
from ..errors import OptimizationFailed

logger = logging.getLogger(__name__)

JPEG_PRESETS = {"low": 80, "medium": 70, "high": 60}
PNG_PRESETS = {"low": 7, "medium": 8, "high": 9}
DEFAULT_QUALITY = 80


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


class ImageProcessor(ABC):
    """Strategy for one image codec."""

    mime_type: str = ""
    format_name: str = ""
    extensions: Tuple[str, ...] = ()

    @property
    def codec(self) -> str:
        return self.format_name.lower()

    def supports(self, file_path: Path) -> bool:
        return Path(file_path).suffix.lower() in self.extensions

    def encode(self, file_path: Path, quality: int) -> bytes:
        """
        Re-encode ``file_path`` and return the new bytes.

        Raises:
            OptimizationFailed: File missing, undecodable, or encoder error.
        """
        file_path = Path(file_path)
        if not file_path.is_file():
            raise OptimizationFailed(f"File not found: {file_path}")

        try:
            with Image.open(file_path) as img:
                img.load()
                buf = io.BytesIO()
                self._save(img, buf, quality)
        except OptimizationFailed:
            raise
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise OptimizationFailed(f"{self.format_name} optimization failed: {e}") from e

        return buf.getvalue()

    @abstractmethod
    def _save(self, img: Image.Image, buf: io.BytesIO, quality: int) -> None:
        """Write ``img`` to ``buf`` with codec-specific options."""


class JpegProcessor(ImageProcessor):
    mime_type = "image/jpeg"
    format_name = "JPEG"
    extensions = (".jpg", ".jpeg")

    def _save(self, img: Image.Image, buf: io.BytesIO, quality: int) -> None:
        icc_profile = img.info.get("icc_profile")
        if img.mode not in ("RGB", "L", "CMYK"):
            img = img.convert("RGB")
        save_kwargs = {
            "quality": clamp(quality, 0, 100),
            "optimize": True,
            "progressive": True,
        }
        if icc_profile:
            save_kwargs["icc_profile"] = icc_profile
        # EXIF is not carried over
        img.save(buf, format="JPEG", **save_kwargs)


class PngProcessor(ImageProcessor):
    mime_type = "image/png"
    format_name = "PNG"
    extensions = (".png",)

    def _save(self, img: Image.Image, buf: io.BytesIO, quality: int) -> None:
        # optimize=True would override compress_level
        img.save(buf, format="PNG", compress_level=clamp(quality, 0, 9))


class WebpProcessor(ImageProcessor):
    mime_type = "image/webp"
    format_name = "WEBP"
    extensions = (".webp",)

    def _save(self, img: Image.Image, buf: io.BytesIO, quality: int) -> None:
        if getattr(img, "is_animated", False):
            raise OptimizationFailed("Animated WebP images are not supported")
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA" if "A" in img.getbands() or img.mode == "P" else "RGB")
        img.save(buf, format="WEBP", quality=clamp(quality, 0, 100), method=4)


class ProcessorRegistry:
    """Immutable mime-type keyed collection of processors."""

    def __init__(self, processors: Dict[str, ImageProcessor]):
        self._processors = dict(processors)

    @classmethod
    def from_processors(cls, *processors: ImageProcessor) -> "ProcessorRegistry":
        return cls({p.mime_type: p for p in processors})

    @classmethod
    def default(cls) -> "ProcessorRegistry":
        return cls.from_processors(JpegProcessor(), PngProcessor(), WebpProcessor())

    def find_by_file(self, file_path: Path) -> Optional[ImageProcessor]:
        for processor in self._processors.values():
            if processor.supports(file_path):
                return processor
        return None

    def find_by_mime_type(self, mime_type: str) -> Optional[ImageProcessor]:
        return self._processors.get(mime_type)

    def supports(self, mime_type: str) -> bool:
        return mime_type in self._processors

    def supported_mime_types(self) -> List[str]:
        return list(self._processors)

    def supported_extensions(self) -> List[str]:
        return [ext for p in self._processors.values() for ext in p.extensions]

    def register(self, processor: ImageProcessor) -> "ProcessorRegistry":
        """Return a new registry with ``processor`` added or replaced."""
        processors = dict(self._processors)
        processors[processor.mime_type] = processor
        return ProcessorRegistry(processors)

    def __iter__(self) -> Iterator[ImageProcessor]:
        return iter(list(self._processors.values()))

    def __len__(self) -> int:
        return len(self._processors)


def resolve_quality(processor: ImageProcessor, config: OptimizationConfig) -> int:
    """Map the configured compression level to the processor's quality knob."""
    level = config.compression_level
    if processor.mime_type == "image/jpeg":
        return JPEG_PRESETS.get(level, config.jpeg_quality)
    if processor.mime_type == "image/png":
        return clamp(PNG_PRESETS.get(level, config.png_compression_level), 0, 9)
    if processor.mime_type == "image/webp":
        return config.webp_quality
    return DEFAULT_QUALITY
