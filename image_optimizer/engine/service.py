"""
Optimization Service — id-based facade used by the CLI and admin API.

Resolves asset ids through the media library and reads a fresh
``OptimizationConfig`` from the settings store on every call, then hands
off to the engine. Bulk runs are serial: one asset at a time.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..backup.store import BackupStore
from ..config.loader import AppSettings
from ..config.settings_store import SettingsStore
from ..errors import OptimizationFailed
from ..models.asset import Asset
from ..models.result import Result
from ..persistence.audit import AuditWriter
from ..persistence.ledger import Ledger
from ..library.media import MediaLibrary
from ..processing.resizer import ImageResizer
from .optimizer import OptimizationEngine

logger = logging.getLogger(__name__)

IMAGE_STATUSES = ("optimized", "unoptimized")


class OptimizationService:
    """Optimize, revert and report on library assets by id."""

    def __init__(
        self,
        engine: OptimizationEngine,
        library: MediaLibrary,
        settings: SettingsStore,
        audit: Optional[AuditWriter] = None,
    ):
        self.engine = engine
        self.library = library
        self.settings = settings
        self.audit = audit

    @property
    def ledger(self) -> Ledger:
        return self.engine.ledger

    # ── Core operations ──────────────────────────────────────────

    def get_asset(self, asset_id: int) -> Optional[Asset]:
        return self.library.get(asset_id)

    def optimize(self, asset_id: int) -> Result:
        asset = self.library.get(asset_id)
        if asset is None:
            return _invalid_asset(asset_id)
        return self.engine.optimize(asset.id, asset.path, self.settings.optimization_config())

    def revert(self, asset_id: int) -> Result:
        asset = self.library.get(asset_id)
        if asset is None:
            return _invalid_asset(asset_id)
        return self.engine.revert(asset.id, asset.path)

    def has_backup(self, asset_id: int) -> bool:
        asset = self.library.get(asset_id)
        return asset is not None and self.engine.has_backup(asset.id, asset.path)

    def bulk_optimize(self, asset_ids: Iterable[int]) -> Dict[int, Result]:
        results: Dict[int, Result] = {}
        for asset_id in asset_ids:
            results[asset_id] = self.optimize(asset_id)
        ok = sum(1 for r in results.values() if r.is_success())
        logger.info(f"Bulk optimize: {ok}/{len(results)} succeeded")
        return results

    def pending_ids(self) -> List[int]:
        """Ids of assets that are not currently optimized."""
        optimized = {e.asset_id for e in self.ledger.entries() if e.optimized}
        return [a.id for a in self.library.entries() if a.id not in optimized]

    def register(self, path: Path, title: Optional[str] = None) -> Tuple[Asset, Optional[Result]]:
        """
        Add a file to the library.

        When resize_on_upload is on, images wider than max_image_width are
        scaled down first. Then, if auto_optimize is on, the asset is
        optimized right away.
        """
        asset = self.library.register(path, title=title)
        self.library.save()

        config = self.settings.optimization_config()
        if config.resize_on_upload:
            self._resize_on_register(asset, config.max_image_width)
        if not config.auto_optimize:
            return asset, None
        return asset, self.engine.optimize(asset.id, asset.path, config)

    def _resize_on_register(self, asset: Asset, max_width: int) -> None:
        try:
            outcome = ImageResizer(max_width).scale_to_max_width(asset.path)
        except OptimizationFailed as e:
            logger.warning(f"Resize skipped for #{asset.id}: {e}")
            return
        if not outcome["resized"]:
            return

        logger.info(
            f"Downscaled #{asset.id} to {outcome['new_width']}x{outcome['new_height']} "
            f"(was {outcome['original_width']}x{outcome['original_height']})"
        )
        if self.audit is not None:
            self.audit.emit("asset_resized", asset_id=asset.id, details=outcome)

    # ── Reporting ────────────────────────────────────────────────

    def statistics(self) -> Dict[str, Any]:
        return self.ledger.statistics().model_dump()

    def history(self, asset_id: int, limit: int = 20) -> Optional[Dict[str, Any]]:
        """Ledger entry plus recent events, or None if nothing was ever recorded."""
        entry = self.ledger.get(asset_id)
        events = self.audit.read(asset_id=asset_id, limit=limit) if self.audit else []
        if entry is None and not events:
            return None
        return {
            "asset_id": asset_id,
            "entry": _format_entry(entry) if entry else None,
            "has_backup": self.has_backup(asset_id),
            "events": events,
        }

    def list_images(self, page: int = 1, per_page: int = 20, status: Optional[str] = None) -> Dict[str, Any]:
        entries = {e.asset_id: e for e in self.ledger.entries()}
        assets = self.library.entries()
        if status == "optimized":
            assets = [a for a in assets if a.id in entries and entries[a.id].optimized]
        elif status == "unoptimized":
            assets = [a for a in assets if a.id not in entries or not entries[a.id].optimized]

        paged = self.library.page(page, per_page, assets)
        images = []
        for asset in paged["assets"]:
            entry = entries.get(asset.id)
            images.append({
                "id": asset.id,
                "title": asset.title,
                "filename": asset.filename,
                "mime_type": asset.mime_type,
                "size": asset.size_bytes(),
                "optimized": bool(entry and entry.optimized),
                "optimization": _format_entry(entry) if entry else None,
            })
        return {
            "images": images,
            "paged": paged["paged"],
            "total": paged["total"],
            "pages": paged["pages"],
        }

    # ── Maintenance ──────────────────────────────────────────────

    def purge(self, asset_id: Optional[int] = None, delete_backups: bool = False) -> int:
        """Drop ledger history (one asset or all), optionally with backups."""
        if delete_backups:
            targets = [self.library.get(asset_id)] if asset_id is not None else self.library.entries()
            for asset in targets:
                if asset is not None:
                    self.engine.backups.delete_backup(asset.path, asset.id)

        removed = self.ledger.purge(asset_id)
        if self.audit is not None:
            self.audit.emit(
                "ledger_purged",
                asset_id=asset_id,
                details={"removed": removed, "backups_deleted": delete_backups},
            )
        return removed


def _invalid_asset(asset_id: int) -> Result:
    return Result.failure(f"Invalid asset ID: {asset_id}", {"asset_id": asset_id, "error": "invalid_asset"})


def _format_entry(entry) -> Dict[str, Any]:
    data = entry.model_dump()
    data["status"] = entry.status
    return data


def build_service(settings: AppSettings, lock_timeout: Optional[float] = 0) -> OptimizationService:
    """Wire backup store, ledger, history, library and engine from ``settings``."""
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    audit = AuditWriter(settings.history_path)
    engine = OptimizationEngine(
        backups=BackupStore(settings.backup_dir),
        ledger=Ledger(settings.ledger_path),
        audit=audit,
        lock_timeout=lock_timeout,
    )
    return OptimizationService(
        engine=engine,
        library=MediaLibrary.load(settings.library_path, settings.media_root),
        settings=SettingsStore(settings.settings_path),
        audit=audit,
    )
