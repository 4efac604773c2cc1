from .store import BACKUP_SUFFIX, BackupStore

__all__ = ["BackupStore", "BACKUP_SUFFIX"]
