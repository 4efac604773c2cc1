"""
Errors — exception taxonomy for the optimize/backup/revert pipeline.

``BackupFailed`` and ``OptimizationFailed`` are raised by the lower layers
and converted into ``Result.failure`` at the engine boundary.
``ImmutableViolation`` is a programming error and is never caught.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class OptimizerError(Exception):
    """Base class for recoverable optimizer errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class BackupFailed(OptimizerError):
    """Raised when a backup cannot be created, found, or restored."""


class OptimizationFailed(OptimizerError):
    """Raised when reading, encoding, or writing an image fails."""


class AssetBusy(OptimizationFailed):
    """Raised when another operation holds the lock for an asset."""


class ImmutableViolation(AttributeError):
    """Raised on any attempt to mutate an immutable value object."""
