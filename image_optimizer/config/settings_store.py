"""
Settings Store — key-value settings persisted as YAML.

The store sanitizes what it writes (unknown keys dropped, compression
level restricted to low/medium/high). Readers get a fresh
``OptimizationConfig`` per call; nothing is cached between operations.
"""

from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Mapping

import yaml

from ..fileio import write_text_atomic
from .optimization import COMPRESSION_LEVELS, OptimizationConfig, coerce_bool, coerce_int

logger = logging.getLogger(__name__)

BOOL_KEYS = ("auto_optimize", "enable_webp", "skip_larger_results", "resize_on_upload")
INT_KEYS = ("jpeg_quality", "png_compression_level", "webp_quality", "max_image_width")
KNOWN_KEYS = BOOL_KEYS + INT_KEYS + ("compression_level",)


class SettingsError(ValueError):
    """Raised when a settings update carries an invalid value."""


class SettingsStore:
    """Read and update optimizer settings in a YAML file."""

    def __init__(self, path: Path):
        self.path = path
        self._lock = Lock()

    def read(self) -> Dict[str, Any]:
        """Return the raw stored mapping (empty if the file is missing)."""
        if not self.path.exists():
            return {}
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            logger.error(f"Invalid settings file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def optimization_config(self) -> OptimizationConfig:
        return OptimizationConfig.from_mapping(self.read())

    def update(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Merge sanitized ``values`` into the stored settings.

        Raises:
            SettingsError: If compression_level is not low/medium/high.
        """
        clean = sanitize(values)
        with self._lock:
            current = self.read()
            current.update(clean)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            write_text_atomic(self.path, yaml.safe_dump(current, sort_keys=True))
        logger.info(f"Settings updated: {', '.join(sorted(clean)) or 'nothing'}")
        return current


def sanitize(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop unknown keys and coerce known ones to their stored types."""
    clean: Dict[str, Any] = {}
    defaults = OptimizationConfig().to_dict()
    for key, value in values.items():
        if key not in KNOWN_KEYS:
            logger.debug(f"Ignoring unknown setting '{key}'")
            continue
        if key in BOOL_KEYS:
            clean[key] = coerce_bool(value, defaults[key])
        elif key in INT_KEYS:
            clean[key] = coerce_int(value, defaults[key])
        else:
            level = str(value).strip().lower()
            if level not in COMPRESSION_LEVELS:
                raise SettingsError(
                    f"compression_level must be one of {', '.join(COMPRESSION_LEVELS)}, got '{value}'"
                )
            clean[key] = level
    return clean
