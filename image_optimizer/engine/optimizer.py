"""
Optimization Engine — Backup → Compress → Ledger for one asset, and back.

Per-asset lifecycle, driven by callers (there is no scheduler):

    Unoptimized ──optimize──▶ Optimized ──revert──▶ Unoptimized
                              Optimized ──optimize──▶ Optimized

Ordering within a call:
1. The backup is in place before the asset is overwritten.
2. The ledger is written only after the file I/O succeeded.

A re-optimize never touches the backup; it always holds the pristine
original. Public methods return a ``Result`` and never raise.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..backup.store import BackupStore
from ..config.optimization import OptimizationConfig
from ..errors import AssetBusy, BackupFailed, OptimizationFailed
from ..fileio import write_bytes_atomic
from ..models.result import Result
from ..persistence.audit import AuditWriter
from ..persistence.ledger import Ledger
from ..processing.processors import ProcessorRegistry, resolve_quality
from ..processing.webp import WebpConverter
from .locks import KeyedLock

logger = logging.getLogger(__name__)


class OptimizationEngine:
    """Optimize and revert single assets against a backup store and ledger."""

    def __init__(
        self,
        backups: BackupStore,
        ledger: Ledger,
        processors: Optional[ProcessorRegistry] = None,
        webp_converter: Optional[WebpConverter] = None,
        audit: Optional[AuditWriter] = None,
        locks: Optional[KeyedLock] = None,
        lock_timeout: Optional[float] = 0,
    ):
        self.backups = backups
        self.ledger = ledger
        self.processors = processors or ProcessorRegistry.default()
        self.webp_converter = webp_converter or WebpConverter()
        self.audit = audit
        self.locks = locks or KeyedLock()
        # 0 = at most one in flight per asset, None = queue behind the holder
        self.lock_timeout = lock_timeout

    # ── Public API ───────────────────────────────────────────────

    def optimize(self, asset_id: int, path: Path, config: OptimizationConfig) -> Result:
        """Recompress ``path`` in place after securing a backup."""
        path = Path(path)
        try:
            with self.locks.hold(asset_id, timeout=self.lock_timeout):
                return self._optimize(asset_id, path, config)
        except AssetBusy as e:
            return self._fail("optimize", asset_id, e, audit=False)
        except BackupFailed as e:
            wrapped = OptimizationFailed(f"Backup failed: {e}")
            wrapped.__cause__ = e
            return self._fail("optimize", asset_id, wrapped)
        except OptimizationFailed as e:
            return self._fail("optimize", asset_id, e)
        except Exception as e:
            logger.exception(
                f"Unexpected error optimizing {path.name}",
                extra={"asset_id": asset_id, "operation": "optimize"},
            )
            return self._fail("optimize", asset_id, OptimizationFailed(f"Optimization failed: {e}"))

    def revert(self, asset_id: int, path: Path) -> Result:
        """Restore ``path`` from its backup and mark the asset unoptimized."""
        path = Path(path)
        try:
            with self.locks.hold(asset_id, timeout=self.lock_timeout):
                return self._revert(asset_id, path)
        except AssetBusy as e:
            return self._fail("revert", asset_id, e, audit=False)
        except BackupFailed as e:
            wrapped = OptimizationFailed(f"Revert failed: {e}")
            wrapped.__cause__ = e
            return self._fail("revert", asset_id, wrapped)
        except OptimizationFailed as e:
            return self._fail("revert", asset_id, e)
        except Exception as e:
            logger.exception(
                f"Unexpected error reverting {path.name}",
                extra={"asset_id": asset_id, "operation": "revert"},
            )
            return self._fail("revert", asset_id, OptimizationFailed(f"Revert failed: {e}"))

    def has_backup(self, asset_id: int, path: Path) -> bool:
        return self.backups.has_backup(Path(path), asset_id)

    # ── Optimize ─────────────────────────────────────────────────

    def _optimize(self, asset_id: int, path: Path, config: OptimizationConfig) -> Result:
        if not path.is_file():
            raise OptimizationFailed(f"File not found: {path}")
        try:
            current_size = path.stat().st_size
        except OSError as e:
            raise OptimizationFailed(f"Cannot determine file size: {path}") from e

        processor = self.processors.find_by_file(path)
        if processor is None:
            raise OptimizationFailed(f"No processor available for file type: {path.name}")

        backup_path = self.backups.create_backup(path, asset_id)
        baseline_size = backup_path.stat().st_size

        quality = resolve_quality(processor, config)
        payload = processor.encode(path, quality)

        if config.skip_larger_results and len(payload) >= current_size:
            message = (
                f"Optimization skipped: output ({len(payload):,} bytes) is not smaller "
                f"than input ({current_size:,} bytes)"
            )
            logger.info(message, extra={"asset_id": asset_id, "operation": "optimize"})
            self._emit("optimize_skipped", asset_id, "warning", {
                "current_size": current_size,
                "encoded_size": len(payload),
            })
            return Result.failure(message, {
                "asset_id": asset_id,
                "original_size": current_size,
                "optimized_size": len(payload),
            })

        try:
            write_bytes_atomic(path, payload)
            optimized_size = path.stat().st_size
        except OSError as e:
            raise OptimizationFailed(f"Failed to write optimized image: {e}") from e

        webp_available = False
        if config.enable_webp:
            try:
                self.webp_converter.convert(path, config.webp_quality)
                webp_available = True
            except (OptimizationFailed, OSError) as e:
                logger.warning(
                    f"WebP conversion skipped for {path.name}: {e}",
                    extra={"asset_id": asset_id, "operation": "optimize"},
                )

        entry = self.ledger.record_optimized(
            asset_id,
            original_size=baseline_size,
            optimized_size=optimized_size,
            codec=processor.codec,
            compression_level=config.compression_level,
            quality=quality,
            webp_available=webp_available,
        )

        data = {
            "original_size": entry.original_size,
            "optimized_size": entry.optimized_size,
            "savings": entry.savings,
            "compression_ratio": entry.compression_ratio,
            "webp_available": webp_available,
        }
        logger.info(
            f"Optimized {path.name} ({processor.codec} q={quality}): "
            f"{entry.original_size:,} → {optimized_size:,} bytes "
            f"({entry.compression_ratio:.1f}% saved)",
            extra={"asset_id": asset_id, "operation": "optimize"},
        )
        self._emit("optimize_succeeded", asset_id, "info", {
            **data,
            "codec": processor.codec,
            "quality": quality,
        })
        return Result.success(
            data,
            f"Image optimized: {entry.compression_ratio:.1f}% compression",
        )

    # ── Revert ───────────────────────────────────────────────────

    def _revert(self, asset_id: int, path: Path) -> Result:
        if not self.backups.has_backup(path, asset_id):
            raise OptimizationFailed(f"No backup found for asset {asset_id}")

        previous = self.ledger.get(asset_id)
        if path.is_file():
            size_before = path.stat().st_size
        else:
            size_before = previous.optimized_size if previous else 0

        self.backups.restore(path, asset_id)
        try:
            restored_size = path.stat().st_size
        except OSError as e:
            raise OptimizationFailed(f"Cannot determine restored file size: {path}") from e

        self.webp_converter.delete_webp_version(path)
        self.ledger.record_reverted(asset_id, restored_size)

        data = {
            "restored_size": restored_size,
            "freed_space": size_before - restored_size,
        }
        logger.info(
            f"Reverted {path.name}: {size_before:,} → {restored_size:,} bytes",
            extra={"asset_id": asset_id, "operation": "revert"},
        )
        self._emit("revert_succeeded", asset_id, "info", data)
        return Result.success(data, "Image restored from backup")

    # ── Helpers ──────────────────────────────────────────────────

    def _fail(self, operation: str, asset_id: int, exc: Exception, audit: bool = True) -> Result:
        message = str(exc)
        logger.warning(
            f"{operation.capitalize()} failed: {message}",
            extra={"asset_id": asset_id, "operation": operation},
        )
        if audit:
            details: Dict[str, Any] = {"message": message}
            if exc.__cause__ is not None:
                details["cause"] = type(exc.__cause__).__name__
            self._emit(f"{operation}_failed", asset_id, "error", details)
        return Result.failure(message, {"asset_id": asset_id})

    def _emit(self, event_type: str, asset_id: int, level: str, details: Dict[str, Any]) -> None:
        if self.audit is None:
            return
        try:
            self.audit.emit(event_type, asset_id=asset_id, level=level, details=details)
        except OSError as e:
            logger.error(f"Failed to write history event {event_type}: {e}")
