"""
Optimization Config — immutable snapshot of the compression settings.

Built fresh from stored settings for every operation. The config is a
plain data holder: values are coerced to the right type but never
clamped; the codec step clamps to what each encoder accepts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

logger = logging.getLogger(__name__)

COMPRESSION_LEVELS = ("low", "medium", "high")

TRUE_STRINGS = {"1", "true", "yes", "on"}


def coerce_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)


def coerce_int(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError):
            logger.debug(f"Cannot coerce {value!r} to int, using {default}")
            return default


def _pick(data: Mapping[str, Any], snake: str, camel: str) -> Any:
    """Read a key in snake_case, falling back to camelCase."""
    value = data.get(snake)
    if value is None:
        value = data.get(camel)
    return value


@dataclass(frozen=True)
class OptimizationConfig:
    """Compression level, codec qualities and feature toggles."""

    auto_optimize: bool = False
    enable_webp: bool = False
    compression_level: str = "medium"
    jpeg_quality: int = 70
    png_compression_level: int = 8
    webp_quality: int = 60
    # Discard encoder output that is not smaller than the input
    skip_larger_results: bool = False
    # Downscale newly registered images wider than max_image_width
    resize_on_upload: bool = True
    max_image_width: int = 1920

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "OptimizationConfig":
        """Build from an untyped mapping; unknown keys are ignored."""
        data = data or {}
        defaults = cls()

        level = _pick(data, "compression_level", "compressionLevel")
        return cls(
            auto_optimize=coerce_bool(_pick(data, "auto_optimize", "autoOptimize"), defaults.auto_optimize),
            enable_webp=coerce_bool(_pick(data, "enable_webp", "enableWebp"), defaults.enable_webp),
            compression_level=str(level).strip().lower() if level is not None else defaults.compression_level,
            jpeg_quality=coerce_int(_pick(data, "jpeg_quality", "jpegQuality"), defaults.jpeg_quality),
            png_compression_level=coerce_int(
                _pick(data, "png_compression_level", "pngCompressionLevel"),
                defaults.png_compression_level,
            ),
            webp_quality=coerce_int(_pick(data, "webp_quality", "webpQuality"), defaults.webp_quality),
            skip_larger_results=coerce_bool(
                _pick(data, "skip_larger_results", "skipLargerResults"),
                defaults.skip_larger_results,
            ),
            resize_on_upload=coerce_bool(
                _pick(data, "resize_on_upload", "resizeOnUpload"),
                defaults.resize_on_upload,
            ),
            max_image_width=coerce_int(
                _pick(data, "max_image_width", "maxImageWidth"),
                defaults.max_image_width,
            ),
        )

    def to_dict(self) -> dict:
        return {
            "auto_optimize": self.auto_optimize,
            "enable_webp": self.enable_webp,
            "compression_level": self.compression_level,
            "jpeg_quality": self.jpeg_quality,
            "png_compression_level": self.png_compression_level,
            "webp_quality": self.webp_quality,
            "skip_larger_results": self.skip_larger_results,
            "resize_on_upload": self.resize_on_upload,
            "max_image_width": self.max_image_width,
        }
