"""
Processing — Pillow codecs, quality presets and WebP siblings.
"""

from .processors import (
    ImageProcessor,
    JpegProcessor,
    PngProcessor,
    ProcessorRegistry,
    WebpProcessor,
    resolve_quality,
)
from .resizer import ImageResizer
from .webp import WebpConverter

__all__ = [
    "ImageProcessor",
    "JpegProcessor",
    "PngProcessor",
    "WebpProcessor",
    "ProcessorRegistry",
    "ImageResizer",
    "resolve_quality",
    "WebpConverter",
]
