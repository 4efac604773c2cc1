"""
Tests for the optimization engine.

Tests cover:
- Optimize: backup first, then overwrite, then ledger
- Revert: byte-identical restore and ledger reset
- Repeated optimizes keep the pristine backup
- Size-regression guard
- WebP siblings and degraded WebP
- Per-asset locking
- Every failure surfaces as Result.failure, never an exception
"""

from __future__ import annotations

import io
import threading
from pathlib import Path

import pytest
from PIL import Image, features

from image_optimizer.backup.store import BackupStore
from image_optimizer.config.optimization import OptimizationConfig
from image_optimizer.engine.optimizer import OptimizationEngine
from image_optimizer.errors import OptimizationFailed
from image_optimizer.persistence.audit import AuditWriter
from image_optimizer.persistence.ledger import Ledger
from image_optimizer.processing.processors import JpegProcessor, ProcessorRegistry
from image_optimizer.processing.webp import WebpConverter
from tests.conftest import write_jpeg, write_png

requires_webp = pytest.mark.skipif(not features.check("webp"), reason="Pillow built without WebP")

MEDIUM = OptimizationConfig(compression_level="medium")


@pytest.fixture
def ledger(tmp_path: Path) -> Ledger:
    return Ledger(tmp_path / "data" / "ledger.json")


@pytest.fixture
def audit(tmp_path: Path) -> AuditWriter:
    return AuditWriter(tmp_path / "data" / "history.ndjson")


@pytest.fixture
def engine(ledger: Ledger, audit: AuditWriter) -> OptimizationEngine:
    return OptimizationEngine(backups=BackupStore(".backups"), ledger=ledger, audit=audit)


@pytest.fixture
def photo(tmp_path: Path) -> Path:
    return write_jpeg(tmp_path / "media" / "photo.jpg", width=640, height=480, quality=95)


class FailingWebpConverter(WebpConverter):
    def convert(self, file_path, quality=None):
        raise OptimizationFailed("WebP support not available in Pillow")


class ExplodingProcessor(JpegProcessor):
    def encode(self, file_path, quality):
        raise RuntimeError("encoder crashed")


# ═══════════════════════════════════════════════════════════════════
# Optimize
# ═══════════════════════════════════════════════════════════════════


class TestOptimize:

    def test_shrinks_large_jpeg(self, engine: OptimizationEngine, photo: Path):
        original = photo.stat().st_size
        result = engine.optimize(42, photo, MEDIUM)

        assert result.is_success(), result.message
        assert result.get("original_size") == original
        assert result.get("optimized_size") == photo.stat().st_size
        assert result.get("optimized_size") < original
        assert result.get("savings") == original - result.get("optimized_size")
        assert result.message.startswith("Image optimized:")

    def test_backup_at_derived_path(self, engine: OptimizationEngine, photo: Path):
        original = photo.read_bytes()
        engine.optimize(42, photo, MEDIUM)

        backup = photo.parent / ".backups" / "photo-backup-42.jpg"
        assert backup.read_bytes() == original
        assert engine.has_backup(42, photo)

    def test_three_megabyte_jpeg_at_medium(self, engine: OptimizationEngine, tmp_path: Path):
        path = tmp_path / "media" / "2026" / "10" / "camera-roll.jpg"
        width, height = 1200, 900
        write_jpeg(path, width, height, quality=95)
        while path.stat().st_size < 3_000_000:
            width, height = int(width * 1.25), int(height * 1.25)
            write_jpeg(path, width, height, quality=95)
        pristine = path.read_bytes()

        result = engine.optimize(7, path, MEDIUM)

        assert result.is_success(), result.message
        assert result.get("original_size") == len(pristine)
        assert result.get("optimized_size") < 3_000_000
        assert result.get("optimized_size") < len(pristine)
        backup = path.parent / ".backups" / "camera-roll-backup-7.jpg"
        assert backup.read_bytes() == pristine
        with Image.open(path) as img:
            assert img.size == (width, height)

    def test_preserves_dimensions(self, engine: OptimizationEngine, photo: Path):
        engine.optimize(42, photo, MEDIUM)
        with Image.open(photo) as img:
            assert img.size == (640, 480)
            assert img.format == "JPEG"

    def test_never_downscales_wide_image(self, engine: OptimizationEngine, tmp_path: Path):
        path = write_jpeg(tmp_path / "media" / "panorama.jpg", width=2400, height=400, quality=95)
        config = OptimizationConfig(compression_level="medium", resize_on_upload=True, max_image_width=800)
        assert engine.optimize(5, path, config).is_success()
        with Image.open(path) as img:
            assert img.size == (2400, 400)

    def test_records_ledger(self, engine: OptimizationEngine, ledger: Ledger, photo: Path):
        original = photo.stat().st_size
        engine.optimize(42, photo, OptimizationConfig(compression_level="high"))

        entry = ledger.get(42)
        assert entry.optimized is True
        assert entry.original_size == original
        assert entry.optimized_size == photo.stat().st_size
        assert entry.codec == "jpeg"
        assert entry.compression_level == "high"
        assert entry.quality == 60

    def test_png(self, engine: OptimizationEngine, tmp_path: Path):
        path = write_png(tmp_path / "media" / "flat.png")
        original = path.stat().st_size
        result = engine.optimize(7, path, MEDIUM)

        assert result.is_success()
        assert result.get("optimized_size") < original
        with Image.open(path) as img:
            assert img.size == (200, 150)

    def test_emits_success_event(self, engine: OptimizationEngine, audit: AuditWriter, photo: Path):
        engine.optimize(42, photo, MEDIUM)
        events = audit.read(asset_id=42)
        assert [e["type"] for e in events] == ["optimize_succeeded"]
        assert events[0]["details"]["codec"] == "jpeg"

    def test_works_without_audit(self, ledger: Ledger, photo: Path):
        engine = OptimizationEngine(backups=BackupStore(), ledger=ledger)
        assert engine.optimize(1, photo, MEDIUM).is_success()


class TestRepeatedOptimize:

    def test_backup_keeps_pristine_original(self, engine: OptimizationEngine, photo: Path):
        pristine = photo.read_bytes()
        engine.optimize(42, photo, OptimizationConfig(compression_level="low"))
        engine.optimize(42, photo, OptimizationConfig(compression_level="high"))

        backups = list((photo.parent / ".backups").iterdir())
        assert len(backups) == 1
        assert backups[0].read_bytes() == pristine

    def test_original_size_is_first_known(self, engine: OptimizationEngine, ledger: Ledger, photo: Path):
        pristine_size = photo.stat().st_size
        engine.optimize(42, photo, OptimizationConfig(compression_level="low"))
        second = engine.optimize(42, photo, OptimizationConfig(compression_level="high"))

        assert second.get("original_size") == pristine_size
        assert ledger.get(42).original_size == pristine_size

    def test_revert_after_two_optimizes_restores_original(self, engine: OptimizationEngine, photo: Path):
        pristine = photo.read_bytes()
        engine.optimize(42, photo, OptimizationConfig(compression_level="low"))
        engine.optimize(42, photo, OptimizationConfig(compression_level="high"))
        assert engine.revert(42, photo).is_success()
        assert photo.read_bytes() == pristine


class TestSkipLargerResults:

    @pytest.fixture
    def small_jpeg(self, tmp_path: Path) -> Path:
        # Already at very low quality: re-encoding at 80 grows it
        return write_jpeg(tmp_path / "media" / "tiny.jpg", quality=10)

    def test_guard_discards_larger_output(self, engine: OptimizationEngine, ledger: Ledger, small_jpeg: Path):
        before = small_jpeg.read_bytes()
        config = OptimizationConfig(compression_level="low", skip_larger_results=True)
        result = engine.optimize(3, small_jpeg, config)

        assert result.is_failure()
        assert result.message.startswith("Optimization skipped")
        assert result.get("optimized_size") >= result.get("original_size")
        assert small_jpeg.read_bytes() == before
        assert ledger.get(3) is None

    def test_default_accepts_larger_output(self, engine: OptimizationEngine, ledger: Ledger, small_jpeg: Path):
        result = engine.optimize(3, small_jpeg, OptimizationConfig(compression_level="low"))

        assert result.is_success()
        assert result.get("compression_ratio") == 0.0
        assert ledger.get(3).optimized is True


# ═══════════════════════════════════════════════════════════════════
# Revert
# ═══════════════════════════════════════════════════════════════════


class TestRevert:

    def test_round_trip_is_byte_identical(self, engine: OptimizationEngine, ledger: Ledger, photo: Path):
        pristine = photo.read_bytes()
        engine.optimize(42, photo, MEDIUM)
        optimized_size = photo.stat().st_size

        result = engine.revert(42, photo)

        assert result.is_success()
        assert result.message == "Image restored from backup"
        assert photo.read_bytes() == pristine
        assert result.get("restored_size") == len(pristine)
        assert result.get("freed_space") == optimized_size - len(pristine)

        entry = ledger.get(42)
        assert entry.optimized is False
        assert entry.optimized_size == entry.original_size

    def test_without_backup_fails_and_changes_nothing(
        self, engine: OptimizationEngine, ledger: Ledger, audit: AuditWriter, photo: Path
    ):
        before = photo.read_bytes()
        result = engine.revert(42, photo)

        assert result.is_failure()
        assert "No backup found" in result.message
        assert result.get("asset_id") == 42
        assert photo.read_bytes() == before
        assert ledger.get(42) is None
        assert audit.read(asset_id=42)[-1]["type"] == "revert_failed"

    def test_ledger_unchanged_on_failed_revert(self, engine: OptimizationEngine, ledger: Ledger, photo: Path):
        engine.optimize(42, photo, MEDIUM)
        backup = photo.parent / ".backups" / "photo-backup-42.jpg"
        backup.unlink()
        snapshot = ledger.get(42)

        assert engine.revert(42, photo).is_failure()
        assert ledger.get(42) == snapshot

    def test_restores_deleted_asset(self, engine: OptimizationEngine, photo: Path):
        pristine = photo.read_bytes()
        engine.optimize(42, photo, MEDIUM)
        photo.unlink()

        result = engine.revert(42, photo)
        assert result.is_success()
        assert photo.read_bytes() == pristine

    def test_keeps_backup(self, engine: OptimizationEngine, photo: Path):
        engine.optimize(42, photo, MEDIUM)
        engine.revert(42, photo)
        assert engine.has_backup(42, photo)

    def test_reoptimize_after_revert(self, engine: OptimizationEngine, ledger: Ledger, photo: Path):
        engine.optimize(42, photo, MEDIUM)
        engine.revert(42, photo)
        assert engine.optimize(42, photo, MEDIUM).is_success()
        assert ledger.get(42).optimized is True


# ═══════════════════════════════════════════════════════════════════
# WebP
# ═══════════════════════════════════════════════════════════════════


class TestWebp:

    @requires_webp
    def test_creates_and_reverts_sibling(self, engine: OptimizationEngine, ledger: Ledger, photo: Path):
        result = engine.optimize(42, photo, OptimizationConfig(enable_webp=True))
        sibling = photo.with_name("photo.jpg.webp")

        assert result.get("webp_available") is True
        assert sibling.exists()
        assert ledger.get(42).webp_available is True

        engine.revert(42, photo)
        assert not sibling.exists()
        assert ledger.get(42).webp_available is False

    def test_failure_is_degraded_success(self, ledger: Ledger, photo: Path):
        engine = OptimizationEngine(
            backups=BackupStore(),
            ledger=ledger,
            webp_converter=FailingWebpConverter(),
        )
        result = engine.optimize(42, photo, OptimizationConfig(enable_webp=True))

        assert result.is_success()
        assert result.get("webp_available") is False
        assert ledger.get(42).webp_available is False

    def test_disabled_by_default(self, engine: OptimizationEngine, photo: Path):
        result = engine.optimize(42, photo, MEDIUM)
        assert result.get("webp_available") is False
        assert not photo.with_name("photo.jpg.webp").exists()


# ═══════════════════════════════════════════════════════════════════
# Failures never raise
# ═══════════════════════════════════════════════════════════════════


class TestFailures:

    def test_missing_file(self, engine: OptimizationEngine, ledger: Ledger, tmp_path: Path):
        result = engine.optimize(1, tmp_path / "gone.jpg", MEDIUM)
        assert result.is_failure()
        assert "File not found" in result.message
        assert ledger.get(1) is None

    def test_unsupported_type(self, engine: OptimizationEngine, tmp_path: Path):
        path = tmp_path / "media" / "anim.gif"
        path.parent.mkdir(parents=True)
        Image.new("P", (4, 4)).save(path, format="GIF")

        result = engine.optimize(1, path, MEDIUM)
        assert result.is_failure()
        assert result.message == "No processor available for file type: anim.gif"
        assert not (path.parent / ".backups").exists()

    def test_backup_failure_is_wrapped(self, engine: OptimizationEngine, ledger: Ledger, photo: Path):
        (photo.parent / ".backups").write_text("in the way")
        before = photo.read_bytes()

        result = engine.optimize(42, photo, MEDIUM)

        assert result.is_failure()
        assert result.message.startswith("Backup failed:")
        assert photo.read_bytes() == before
        assert ledger.get(42) is None

    def test_corrupt_image(self, engine: OptimizationEngine, ledger: Ledger, tmp_path: Path):
        path = tmp_path / "media" / "broken.jpg"
        path.parent.mkdir(parents=True)
        path.write_bytes(b"not really a jpeg")

        result = engine.optimize(5, path, MEDIUM)

        assert result.is_failure()
        assert "JPEG optimization failed" in result.message
        assert path.read_bytes() == b"not really a jpeg"
        assert ledger.get(5) is None

    def test_unexpected_error(self, ledger: Ledger, audit: AuditWriter, photo: Path):
        engine = OptimizationEngine(
            backups=BackupStore(),
            ledger=ledger,
            audit=audit,
            processors=ProcessorRegistry.from_processors(ExplodingProcessor()),
        )
        before = photo.read_bytes()

        result = engine.optimize(42, photo, MEDIUM)

        assert result.is_failure()
        assert result.message == "Optimization failed: encoder crashed"
        assert photo.read_bytes() == before
        assert ledger.get(42) is None
        assert audit.read(asset_id=42)[-1]["type"] == "optimize_failed"


# ═══════════════════════════════════════════════════════════════════
# Locking
# ═══════════════════════════════════════════════════════════════════


class TestLocking:

    def test_busy_asset_fails_fast(self, engine: OptimizationEngine, ledger: Ledger, photo: Path):
        before = photo.read_bytes()
        engine.locks.acquire(42)
        try:
            result = engine.optimize(42, photo, MEDIUM)
        finally:
            engine.locks.release(42)

        assert result.is_failure()
        assert "already in progress" in result.message
        assert photo.read_bytes() == before
        assert not engine.has_backup(42, photo)
        assert ledger.get(42) is None

    def test_busy_revert(self, engine: OptimizationEngine, photo: Path):
        engine.optimize(42, photo, MEDIUM)
        engine.locks.acquire(42)
        try:
            result = engine.revert(42, photo)
        finally:
            engine.locks.release(42)
        assert result.is_failure()
        assert "already in progress" in result.message

    def test_other_assets_unaffected(self, engine: OptimizationEngine, tmp_path: Path, photo: Path):
        other = write_png(tmp_path / "media" / "other.png")
        engine.locks.acquire(42)
        try:
            assert engine.optimize(43, other, MEDIUM).is_success()
        finally:
            engine.locks.release(42)

    def test_concurrent_optimizes_keep_pristine_backup(self, ledger: Ledger, photo: Path):
        engine = OptimizationEngine(backups=BackupStore(), ledger=ledger, lock_timeout=None)
        pristine = photo.read_bytes()
        results = []

        def worker():
            results.append(engine.optimize(42, photo, MEDIUM))

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert all(r.is_success() for r in results)
        assert (photo.parent / ".backups" / "photo-backup-42.jpg").read_bytes() == pristine
        with Image.open(io.BytesIO(photo.read_bytes())) as img:
            assert img.size == (640, 480)
