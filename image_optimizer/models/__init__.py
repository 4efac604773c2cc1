"""
Models — value objects shared across the optimizer.
"""

from .asset import Asset
from .ledger import LedgerEntry, LedgerStatistics
from .result import Result

__all__ = ["Asset", "LedgerEntry", "LedgerStatistics", "Result"]
