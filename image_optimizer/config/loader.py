"""
Config Loader — resolve filesystem locations from a master key or env vars.

Supports two modes:
1. Master JSON key: single IMAGE_OPTIMIZER_CONFIG env var
2. Individual keys: separate env vars per setting (fallback)

## Usage

    # Option 1: Master config
    export IMAGE_OPTIMIZER_CONFIG='{"media_root": "/srv/media", "backup_dir": ".originals"}'

    # Option 2: Individual keys
    export IMAGE_OPTIMIZER_MEDIA_ROOT=/srv/media
    export IMAGE_OPTIMIZER_DATA_DIR=/srv/optimizer-data

The loader tries master config first, then fills the gaps from individual
keys, then falls back to <root>/media and <root>/data.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

MASTER_ENV_VAR = "IMAGE_OPTIMIZER_CONFIG"
DEFAULT_BACKUP_DIR = ".backups"


@dataclass
class AppSettings:
    """Where media, backups and bookkeeping files live."""

    media_root: Path
    data_dir: Path
    backup_dir: str = DEFAULT_BACKUP_DIR

    @property
    def ledger_path(self) -> Path:
        return self.data_dir / "ledger.json"

    @property
    def history_path(self) -> Path:
        return self.data_dir / "history.ndjson"

    @property
    def library_path(self) -> Path:
        return self.data_dir / "library.json"

    @property
    def settings_path(self) -> Path:
        return self.data_dir / "settings.yaml"

    def to_dict(self) -> Dict[str, str]:
        return {
            "media_root": str(self.media_root),
            "data_dir": str(self.data_dir),
            "backup_dir": self.backup_dir,
        }


def load_settings(root: Path) -> AppSettings:
    """
    Load locations from master key or individual env vars.

    Priority:
    1. IMAGE_OPTIMIZER_CONFIG (master JSON)
    2. IMAGE_OPTIMIZER_MEDIA_ROOT / _DATA_DIR / _BACKUP_DIR
    3. Defaults relative to ``root``
    """
    master: Dict[str, Any] = {}
    raw = os.environ.get(MASTER_ENV_VAR)
    if raw:
        try:
            master = json.loads(raw)
            logger.info(f"Loaded configuration from {MASTER_ENV_VAR}")
        except json.JSONDecodeError as e:
            logger.error(f"Invalid {MASTER_ENV_VAR} JSON: {e}")

    media_root = _resolve(master, "media_root", "IMAGE_OPTIMIZER_MEDIA_ROOT")
    data_dir = _resolve(master, "data_dir", "IMAGE_OPTIMIZER_DATA_DIR")
    backup_dir = _resolve(master, "backup_dir", "IMAGE_OPTIMIZER_BACKUP_DIR")

    return AppSettings(
        media_root=_as_path(media_root, root) if media_root else root / "media",
        data_dir=_as_path(data_dir, root) if data_dir else root / "data",
        backup_dir=backup_dir or DEFAULT_BACKUP_DIR,
    )


def _resolve(master: Dict[str, Any], key: str, env_var: str) -> Optional[str]:
    value = master.get(key) or master.get(env_var)
    return value or os.environ.get(env_var) or None


def _as_path(value: str, root: Path) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else root / path
