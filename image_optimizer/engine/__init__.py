"""
Engine — the optimize/backup/revert lifecycle and its id-based facade.
"""

from .locks import KeyedLock
from .optimizer import OptimizationEngine
from .service import OptimizationService, build_service

__all__ = ["KeyedLock", "OptimizationEngine", "OptimizationService", "build_service"]
