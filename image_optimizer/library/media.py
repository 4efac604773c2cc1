"""
Media Library — registry of image assets keyed by integer id.

Manages data/library.json, which maps asset ids to files under the media
root. Paths inside the media root are stored relative to it so the
library survives moving the whole tree.

## Usage

    from image_optimizer.library.media import MediaLibrary

    library = MediaLibrary.load(settings.library_path, settings.media_root)
    asset = library.register(settings.media_root / "2026" / "hero.jpg")
    library.save()

    library.get(asset.id).path   # absolute path
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Iterable, List, Optional

from ..fileio import write_text_atomic
from ..models.asset import Asset

logger = logging.getLogger(__name__)

LIBRARY_VERSION = 1
DEFAULT_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")


class MediaLibrary:
    """Load, query, and update the asset registry."""

    def __init__(
        self,
        assets: List[Asset],
        media_root: Path,
        path: Path,
        next_id: int = 1,
    ):
        self.media_root = media_root
        self._path = path
        self._lock = RLock()
        self._by_id: Dict[int, Asset] = {a.id: a for a in assets}
        self._next_id = max([next_id] + [a.id + 1 for a in assets])

    @classmethod
    def load(cls, path: Path, media_root: Path) -> "MediaLibrary":
        """Load the registry from JSON; a missing file yields an empty library."""
        if not path.exists():
            logger.info(f"Media library not found at {path}, starting empty")
            return cls(assets=[], media_root=media_root, path=path)

        data = json.loads(path.read_text(encoding="utf-8"))
        assets = []
        for raw in data.get("assets", []):
            try:
                assets.append(cls._asset_from_dict(raw, media_root))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed asset entry '{raw.get('id', 'unknown')}': {e}")

        return cls(
            assets=assets,
            media_root=media_root,
            path=path,
            next_id=int(data.get("next_id", 1)),
        )

    @staticmethod
    def _asset_from_dict(raw: Dict[str, Any], media_root: Path) -> Asset:
        stored = Path(raw["path"])
        return Asset(
            id=int(raw["id"]),
            path=stored if stored.is_absolute() else media_root / stored,
            title=raw.get("title", ""),
            mime_type=raw.get("mime_type", ""),
            added_at=raw.get("added_at", ""),
        )

    def save(self) -> None:
        """Write the registry back to disk."""
        with self._lock:
            data = {
                "version": LIBRARY_VERSION,
                "next_id": self._next_id,
                "assets": [self._asset_to_dict(a) for a in self.entries()],
            }
            write_text_atomic(self._path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")
        logger.debug(f"Saved media library: {len(self._by_id)} assets → {self._path}")

    def _asset_to_dict(self, asset: Asset) -> Dict[str, Any]:
        data = asset.to_dict()
        data["path"] = self._relative(asset.path)
        return data

    def _relative(self, path: Path) -> str:
        try:
            return path.resolve().relative_to(self.media_root.resolve()).as_posix()
        except ValueError:
            return str(path.resolve())

    # ── Queries ──────────────────────────────────────────────────

    def get(self, asset_id: int) -> Optional[Asset]:
        return self._by_id.get(asset_id)

    def find_by_path(self, path: Path) -> Optional[Asset]:
        target = Path(path).resolve()
        for asset in self._by_id.values():
            if asset.path.resolve() == target:
                return asset
        return None

    def entries(self) -> List[Asset]:
        return [self._by_id[k] for k in sorted(self._by_id)]

    def page(self, page: int = 1, per_page: int = 20, assets: Optional[List[Asset]] = None) -> Dict[str, Any]:
        """Newest-first page of assets with paging totals."""
        items = list(reversed(assets if assets is not None else self.entries()))
        page = max(1, page)
        start = (page - 1) * per_page
        total = len(items)
        return {
            "assets": items[start:start + per_page],
            "paged": page,
            "total": total,
            "pages": (total + per_page - 1) // per_page if per_page > 0 else 0,
        }

    def __len__(self) -> int:
        return len(self._by_id)

    # ── Mutations ────────────────────────────────────────────────

    def register(self, path: Path, title: Optional[str] = None) -> Asset:
        """
        Add a file to the library and return its asset.

        Registering an already known file returns the existing asset.

        Raises:
            FileNotFoundError: If ``path`` is not a file.
        """
        path = Path(path)
        if not path.is_absolute():
            path = self.media_root / path
        if not path.is_file():
            raise FileNotFoundError(f"Not a file: {path}")

        with self._lock:
            existing = self.find_by_path(path)
            if existing is not None:
                return existing
            asset = Asset(id=self._next_id, path=path.resolve(), title=title or "")
            self._by_id[asset.id] = asset
            self._next_id += 1

        logger.info(f"Registered asset #{asset.id}: {asset.filename}")
        return asset

    def remove(self, asset_id: int) -> bool:
        with self._lock:
            return self._by_id.pop(asset_id, None) is not None

    def scan(
        self,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        backup_dir: str = ".backups",
    ) -> List[Asset]:
        """Register every image under the media root; return the new ones."""
        wanted = {e.lower() for e in extensions}
        added: List[Asset] = []
        if not self.media_root.is_dir():
            return added

        for path in sorted(self.media_root.rglob("*")):
            if not path.is_file() or path.suffix.lower() not in wanted:
                continue
            rel_parts = path.relative_to(self.media_root).parts
            if backup_dir in rel_parts or any(p.startswith(".") for p in rel_parts):
                continue
            # photo.jpg.webp is a generated sibling, not an asset
            if path.suffix.lower() == ".webp" and Path(path.stem).suffix.lower() in wanted:
                continue
            if self.find_by_path(path) is None:
                added.append(self.register(path))

        logger.info(f"Scan complete: {len(added)} new assets under {self.media_root}")
        return added
