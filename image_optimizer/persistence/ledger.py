"""
Ledger — JSON-backed per-asset optimization record.

File layout (data/ledger.json):

    {
        "version": 1,
        "entries": {
            "42": {"asset_id": 42, "original_size": 3145728, ...}
        }
    }

Every mutation is a locked read-modify-write followed by an atomic
replace, so a crash never leaves a truncated ledger.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional

from pydantic import ValidationError

from ..fileio import write_text_atomic
from ..models.ledger import LedgerEntry, LedgerStatistics, now_iso

logger = logging.getLogger(__name__)

LEDGER_VERSION = 1


class Ledger:
    """One row per asset, upserted after each successful operation."""

    def __init__(self, path: Path):
        self.path = path
        self._lock = RLock()

    # ── Storage ──────────────────────────────────────────────────

    def _load(self) -> Dict[int, LedgerEntry]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)

        entries: Dict[int, LedgerEntry] = {}
        for key, raw in data.get("entries", {}).items():
            try:
                entry = LedgerEntry(**raw)
            except ValidationError as e:
                logger.warning(f"Skipping malformed ledger entry '{key}': {e}")
                continue
            entries[entry.asset_id] = entry
        return entries

    def _save(self, entries: Dict[int, LedgerEntry]) -> None:
        data = {
            "version": LEDGER_VERSION,
            "entries": {
                str(asset_id): entry.model_dump()
                for asset_id, entry in sorted(entries.items())
            },
        }
        write_text_atomic(self.path, json.dumps(data, indent=2) + "\n")
        logger.debug(f"Ledger saved: {len(entries)} entries → {self.path.name}")

    # ── Queries ──────────────────────────────────────────────────

    def get(self, asset_id: int) -> Optional[LedgerEntry]:
        with self._lock:
            return self._load().get(asset_id)

    def entries(self) -> List[LedgerEntry]:
        with self._lock:
            return [e for _, e in sorted(self._load().items())]

    def statistics(self) -> LedgerStatistics:
        optimized = [e for e in self.entries() if e.optimized]
        if not optimized:
            return LedgerStatistics()

        total_original = sum(e.original_size for e in optimized)
        total_optimized = sum(e.optimized_size for e in optimized)
        return LedgerStatistics(
            total_optimized=len(optimized),
            total_original_size=total_original,
            total_optimized_size=total_optimized,
            total_savings=total_original - total_optimized,
            average_compression=round(
                sum(e.compression_ratio for e in optimized) / len(optimized), 2
            ),
            webp_count=sum(1 for e in optimized if e.webp_available),
        )

    # ── Mutations ────────────────────────────────────────────────

    def record_optimized(
        self,
        asset_id: int,
        *,
        original_size: int,
        optimized_size: int,
        codec: str,
        compression_level: str,
        quality: int,
        webp_available: bool,
    ) -> LedgerEntry:
        """
        Upsert after a successful optimize.

        An existing entry keeps its ``original_size``: the ledger always
        reports the first known original, not the size before this call.
        """
        with self._lock:
            entries = self._load()
            existing = entries.get(asset_id)
            now = now_iso()
            entry = LedgerEntry(
                asset_id=asset_id,
                original_size=existing.original_size if existing else original_size,
                optimized_size=optimized_size,
                codec=codec,
                compression_level=compression_level,
                quality=quality,
                optimized=True,
                webp_available=webp_available,
                created_at_iso=existing.created_at_iso if existing else now,
                updated_at_iso=now,
            )
            entries[asset_id] = entry
            self._save(entries)
        return entry

    def record_reverted(self, asset_id: int, restored_size: int) -> LedgerEntry:
        """Mark an asset as back to its original after a restore."""
        with self._lock:
            entries = self._load()
            existing = entries.get(asset_id)
            now = now_iso()
            if existing is None:
                entry = LedgerEntry(
                    asset_id=asset_id,
                    original_size=restored_size,
                    optimized_size=restored_size,
                    created_at_iso=now,
                    updated_at_iso=now,
                )
            else:
                entry = existing.model_copy(update={
                    "optimized_size": restored_size,
                    "optimized": False,
                    "webp_available": False,
                    "updated_at_iso": now,
                })
            entries[asset_id] = entry
            self._save(entries)
        return entry

    def purge(self, asset_id: Optional[int] = None) -> int:
        """Delete one entry, or every entry when ``asset_id`` is None."""
        with self._lock:
            entries = self._load()
            if asset_id is None:
                removed = len(entries)
                entries = {}
            else:
                removed = 1 if entries.pop(asset_id, None) is not None else 0
            if removed:
                self._save(entries)
        logger.info(f"Ledger purged: {removed} entr{'y' if removed == 1 else 'ies'} removed")
        return removed
