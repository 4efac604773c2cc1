"""
Backup Store — sidecar copies of the pristine original of each asset.

Layout (deterministic, no index):

    <dir>/<backup_dir>/<stem>-backup-<identifier><suffix>

    media/2026/10/photo.jpg
    media/2026/10/.backups/photo-backup-42.jpg

Existence is always re-derived from the filesystem, so ``has_backup`` and
``restore`` work without any state from ``create_backup``. The first
backup is never overwritten: it is the original the revert goes back to.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from ..errors import BackupFailed
from ..fileio import copy_file_atomic

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = "-backup"

Identifier = Union[int, str]


class BackupStore:
    """Create, restore, check and delete per-asset backups."""

    def __init__(self, backup_dir: str = ".backups"):
        self.backup_dir = backup_dir

    def backup_path(self, file_path: Path, identifier: Identifier) -> Path:
        file_path = Path(file_path)
        filename = f"{file_path.stem}{BACKUP_SUFFIX}-{identifier}{file_path.suffix}"
        return file_path.parent / self.backup_dir / filename

    def create_backup(self, file_path: Path, identifier: Identifier) -> Path:
        """
        Copy ``file_path`` into the backup location.

        Returns the existing backup path untouched if one is already there.

        Raises:
            BackupFailed: Source missing, directory not creatable, or copy failed.
        """
        file_path = Path(file_path)
        if not file_path.is_file():
            raise BackupFailed(f"Source file not found: {file_path}")

        backup_path = self.backup_path(file_path, identifier)

        try:
            backup_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupFailed(f"Failed to create backup directory: {backup_path.parent}") from e

        if backup_path.exists():
            logger.debug(f"Backup already present: {backup_path.name}")
            return backup_path

        try:
            copy_file_atomic(file_path, backup_path)
        except OSError as e:
            raise BackupFailed(f"Failed to copy file to backup: {file_path}") from e

        logger.info(f"Backup created: {file_path.name} → {backup_path}")
        return backup_path

    def restore(self, file_path: Path, identifier: Identifier) -> bool:
        """
        Copy the backup back over ``file_path``.

        Raises:
            BackupFailed: No backup exists or the copy failed.
        """
        file_path = Path(file_path)
        backup_path = self.backup_path(file_path, identifier)

        if not backup_path.is_file():
            raise BackupFailed(f"Backup not found: {backup_path}")

        try:
            copy_file_atomic(backup_path, file_path)
        except OSError as e:
            raise BackupFailed(f"Failed to restore file from backup: {file_path}") from e

        logger.info(f"Restored {file_path.name} from {backup_path.name}")
        return True

    def has_backup(self, file_path: Path, identifier: Identifier) -> bool:
        return self.backup_path(file_path, identifier).is_file()

    def delete_backup(self, file_path: Path, identifier: Identifier) -> bool:
        """Delete the backup; a missing backup counts as already deleted."""
        backup_path = self.backup_path(file_path, identifier)
        if not backup_path.exists():
            return True
        try:
            backup_path.unlink()
        except OSError as e:
            logger.warning(f"Failed to delete backup {backup_path}: {e}")
            return False
        logger.info(f"Backup deleted: {backup_path.name}")
        return True
