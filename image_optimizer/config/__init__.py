"""
Config — locations, stored settings, and the per-call optimization snapshot.
"""

from .loader import AppSettings, load_settings
from .optimization import COMPRESSION_LEVELS, OptimizationConfig
from .settings_store import SettingsError, SettingsStore

__all__ = [
    "AppSettings",
    "load_settings",
    "OptimizationConfig",
    "COMPRESSION_LEVELS",
    "SettingsStore",
    "SettingsError",
]
