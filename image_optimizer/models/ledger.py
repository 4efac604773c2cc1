"""
Ledger Models — Pydantic schemas for the per-asset optimization ledger.

The ledger file (data/ledger.json) holds one entry per asset id with the
first known original size, the current size, and the codec used.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field, computed_field


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class LedgerEntry(BaseModel):
    """Outcome of the last optimize or revert for one asset."""

    asset_id: int
    original_size: int
    optimized_size: int
    codec: str = ""
    compression_level: str = ""
    quality: int = 0
    optimized: bool = False
    webp_available: bool = False
    created_at_iso: str = Field(default_factory=now_iso)
    updated_at_iso: str = Field(default_factory=now_iso)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def savings(self) -> int:
        return self.original_size - self.optimized_size

    @computed_field  # type: ignore[prop-decorator]
    @property
    def compression_ratio(self) -> float:
        """Percentage saved relative to the original; 0 when nothing was saved."""
        if self.original_size <= 0 or self.savings <= 0:
            return 0.0
        return round(self.savings / self.original_size * 100, 2)

    @property
    def status(self) -> str:
        return "optimized" if self.optimized else "reverted"


class LedgerStatistics(BaseModel):
    """Aggregate numbers over currently optimized entries."""

    total_optimized: int = 0
    total_original_size: int = 0
    total_optimized_size: int = 0
    total_savings: int = 0
    average_compression: float = 0.0
    webp_count: int = 0
