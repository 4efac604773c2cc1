"""
Asset — one media file identified by an integer id and a filesystem path.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict


@dataclass
class Asset:
    """A registered media file."""

    id: int
    path: Path
    title: str = ""
    mime_type: str = ""
    added_at: str = ""

    def __post_init__(self):
        self.path = Path(self.path)
        if not self.title:
            self.title = self.path.stem
        if not self.mime_type:
            self.mime_type = mimetypes.guess_type(self.path.name)[0] or "application/octet-stream"
        if not self.added_at:
            self.added_at = datetime.now(timezone.utc).isoformat()

    @property
    def filename(self) -> str:
        return self.path.name

    def size_bytes(self) -> int:
        """Current on-disk size, 0 if the file is gone."""
        try:
            return self.path.stat().st_size
        except OSError:
            return 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "path": str(self.path),
            "title": self.title,
            "mime_type": self.mime_type,
            "added_at": self.added_at,
        }
