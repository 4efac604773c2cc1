"""
Shared fixtures for optimizer tests.

Provides a temporary project (media/ + data/), a wired service over it,
a Flask test app, and Pillow helpers that write real images to disk.
"""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from PIL import Image

from image_optimizer.config.loader import AppSettings
from image_optimizer.engine.service import build_service


# ── Image helpers ────────────────────────────────────────────────


def noisy_rgb(width: int, height: int) -> Image.Image:
    """RGB image full of noise; compresses badly, so quality changes show."""
    bands = [Image.effect_noise((width, height), 64) for _ in range(3)]
    return Image.merge("RGB", bands)


def write_jpeg(path: Path, width: int = 320, height: int = 240, quality: int = 95) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    noisy_rgb(width, height).save(path, format="JPEG", quality=quality)
    return path


def write_png(path: Path, width: int = 200, height: int = 150, color=(30, 120, 200)) -> Path:
    """Flat-color PNG stored without compression."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", (width, height), color).save(path, format="PNG", compress_level=0)
    return path


def png_bytes(width: int = 8, height: int = 8) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), (255, 0, 0)).save(buf, format="PNG")
    return buf.getvalue()


# ── Project fixtures ─────────────────────────────────────────────


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    media = tmp_path / "media"
    media.mkdir()
    return AppSettings(media_root=media, data_dir=tmp_path / "data")


@pytest.fixture
def media_root(settings: AppSettings) -> Path:
    return settings.media_root


@pytest.fixture
def service(settings: AppSettings):
    return build_service(settings)


@pytest.fixture
def jpeg_asset(service, media_root: Path):
    """A registered noisy JPEG at high quality."""
    path = write_jpeg(media_root / "2026" / "10" / "photo.jpg")
    asset, _ = service.register(path)
    return asset


@pytest.fixture
def png_asset(service, media_root: Path):
    """A registered uncompressed PNG."""
    path = write_png(media_root / "banner.png")
    asset, _ = service.register(path)
    return asset


@pytest.fixture
def app(service, tmp_path: Path):
    """Flask test app over the temporary service."""
    pytest.importorskip("flask")
    from image_optimizer.admin.server import create_app

    app = create_app(service=service, project_root=tmp_path)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()
