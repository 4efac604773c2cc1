"""
Persistence — the per-asset ledger and the append-only operation history.
"""

from .audit import AuditWriter
from .ledger import Ledger

__all__ = ["Ledger", "AuditWriter"]
