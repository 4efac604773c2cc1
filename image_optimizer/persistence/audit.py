"""
Operation History — Append-only NDJSON log of optimize/revert events.

Each line is one JSON object (newline-delimited JSON).
Events are never edited, only appended. Failures land here rather than
in the ledger, so the ledger only ever reflects completed I/O.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional
from uuid import uuid4

logger = logging.getLogger(__name__)


class AuditWriter:
    """
    Append-only NDJSON history writer.

    Usage:
        audit = AuditWriter(Path("data/history.ndjson"))
        audit.emit("optimize_succeeded", asset_id=42, details={"optimized_size": 812345})
    """

    def __init__(self, path: Path):
        self.path = path
        self._lock = Lock()
        self._ensure_exists()

    def _ensure_exists(self) -> None:
        """Ensure the history file and directory exist."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self.path.touch()

    def emit(
        self,
        event_type: str,
        asset_id: Optional[int] = None,
        level: str = "info",
        details: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Append an event.

        Args:
            event_type: optimize_succeeded, optimize_failed, revert_succeeded, ...
            asset_id: Asset the event concerns (None for global events)
            level: info, warning, error
            details: Additional event details

        Returns:
            Generated event_id
        """
        event_id = f"E-{uuid4().hex[:8].upper()}"
        now = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

        entry: Dict[str, Any] = {
            "ts_iso": now,
            "event_id": event_id,
            "type": event_type,
            "level": level,
        }
        if asset_id is not None:
            entry["asset_id"] = asset_id
        if details:
            entry["details"] = details

        with self._lock:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")

        return event_id

    def read(self, asset_id: Optional[int] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Return events oldest first, optionally filtered and tail-limited."""
        if not self.path.exists():
            return []

        events: List[Dict[str, Any]] = []
        with self.path.open("r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    event = json.loads(line)
                except json.JSONDecodeError:
                    logger.warning(f"Skipping corrupt history line {line_no}")
                    continue
                if asset_id is not None and event.get("asset_id") != asset_id:
                    continue
                events.append(event)

        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events
