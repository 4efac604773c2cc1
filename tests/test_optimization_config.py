"""
Tests for OptimizationConfig, SettingsStore and the location loader.
"""

import dataclasses
import json
from pathlib import Path

import pytest
import yaml

from image_optimizer.config.loader import MASTER_ENV_VAR, load_settings
from image_optimizer.config.optimization import OptimizationConfig, coerce_bool, coerce_int
from image_optimizer.config.settings_store import SettingsError, SettingsStore, sanitize


# ═══════════════════════════════════════════════════════════════════
# OptimizationConfig
# ═══════════════════════════════════════════════════════════════════


class TestOptimizationConfig:

    def test_defaults(self):
        config = OptimizationConfig()
        assert config.auto_optimize is False
        assert config.enable_webp is False
        assert config.compression_level == "medium"
        assert config.jpeg_quality == 70
        assert config.png_compression_level == 8
        assert config.skip_larger_results is False
        assert config.resize_on_upload is True
        assert config.max_image_width == 1920

    def test_from_empty_mapping(self):
        assert OptimizationConfig.from_mapping({}) == OptimizationConfig()
        assert OptimizationConfig.from_mapping(None) == OptimizationConfig()

    def test_from_camel_case(self):
        config = OptimizationConfig.from_mapping({
            "autoOptimize": True,
            "enableWebp": "1",
            "compressionLevel": "HIGH",
            "jpegQuality": "55",
            "pngCompressionLevel": 6,
        })
        assert config.auto_optimize is True
        assert config.enable_webp is True
        assert config.compression_level == "high"
        assert config.jpeg_quality == 55
        assert config.png_compression_level == 6

    def test_snake_case_wins_over_camel(self):
        config = OptimizationConfig.from_mapping({"jpeg_quality": 40, "jpegQuality": 90})
        assert config.jpeg_quality == 40

    def test_values_are_not_clamped(self):
        assert OptimizationConfig.from_mapping({"jpeg_quality": 250}).jpeg_quality == 250

    def test_bad_int_falls_back(self):
        assert OptimizationConfig.from_mapping({"jpeg_quality": "lots"}).jpeg_quality == 70

    def test_resize_keys_camel_case(self):
        config = OptimizationConfig.from_mapping({"resizeOnUpload": "no", "maxImageWidth": "1280"})
        assert config.resize_on_upload is False
        assert config.max_image_width == 1280

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            OptimizationConfig().jpeg_quality = 10

    def test_to_dict_round_trips(self):
        config = OptimizationConfig(enable_webp=True, compression_level="low")
        assert OptimizationConfig.from_mapping(config.to_dict()) == config


class TestCoercion:

    @pytest.mark.parametrize("value", ["1", "true", "Yes", " on "])
    def test_truthy_strings(self, value):
        assert coerce_bool(value, False) is True

    @pytest.mark.parametrize("value", ["0", "false", "no", ""])
    def test_falsy_strings(self, value):
        assert coerce_bool(value, True) is False

    def test_bool_is_not_an_int(self):
        assert coerce_int(True, 8) == 8

    def test_float_string(self):
        assert coerce_int("7.0", 0) == 7


# ═══════════════════════════════════════════════════════════════════
# SettingsStore
# ═══════════════════════════════════════════════════════════════════


class TestSettingsStore:

    def test_missing_file_reads_empty(self, tmp_path: Path):
        store = SettingsStore(tmp_path / "settings.yaml")
        assert store.read() == {}
        assert store.optimization_config() == OptimizationConfig()

    def test_update_persists_yaml(self, tmp_path: Path):
        path = tmp_path / "data" / "settings.yaml"
        store = SettingsStore(path)
        store.update({"enable_webp": "true", "jpeg_quality": "65"})

        stored = yaml.safe_load(path.read_text())
        assert stored == {"enable_webp": True, "jpeg_quality": 65}
        assert store.optimization_config().enable_webp is True

    def test_update_merges(self, tmp_path: Path):
        store = SettingsStore(tmp_path / "settings.yaml")
        store.update({"enable_webp": True})
        merged = store.update({"compression_level": "low"})
        assert merged == {"enable_webp": True, "compression_level": "low"}

    def test_invalid_level_rejected(self, tmp_path: Path):
        store = SettingsStore(tmp_path / "settings.yaml")
        with pytest.raises(SettingsError, match="compression_level"):
            store.update({"compression_level": "extreme"})
        assert not store.path.exists()

    def test_invalid_yaml_reads_empty(self, tmp_path: Path):
        path = tmp_path / "settings.yaml"
        path.write_text("enable_webp: [unclosed\n")
        assert SettingsStore(path).read() == {}

    def test_sanitize_drops_unknown_keys(self):
        assert sanitize({"enable_webp": 1, "admin_password": "x"}) == {"enable_webp": True}

    def test_sanitize_resize_keys(self):
        clean = sanitize({"resize_on_upload": "off", "max_image_width": "2560"})
        assert clean == {"resize_on_upload": False, "max_image_width": 2560}


# ═══════════════════════════════════════════════════════════════════
# Location loader
# ═══════════════════════════════════════════════════════════════════


@pytest.fixture
def clean_env(monkeypatch):
    for var in (
        MASTER_ENV_VAR,
        "IMAGE_OPTIMIZER_MEDIA_ROOT",
        "IMAGE_OPTIMIZER_DATA_DIR",
        "IMAGE_OPTIMIZER_BACKUP_DIR",
    ):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


class TestLoadSettings:

    def test_defaults(self, tmp_path: Path, clean_env):
        settings = load_settings(tmp_path)
        assert settings.media_root == tmp_path / "media"
        assert settings.data_dir == tmp_path / "data"
        assert settings.backup_dir == ".backups"
        assert settings.ledger_path == tmp_path / "data" / "ledger.json"

    def test_individual_env_vars(self, tmp_path: Path, clean_env):
        clean_env.setenv("IMAGE_OPTIMIZER_MEDIA_ROOT", str(tmp_path / "uploads"))
        clean_env.setenv("IMAGE_OPTIMIZER_DATA_DIR", "state")
        clean_env.setenv("IMAGE_OPTIMIZER_BACKUP_DIR", ".originals")
        settings = load_settings(tmp_path)
        assert settings.media_root == tmp_path / "uploads"
        assert settings.data_dir == tmp_path / "state"
        assert settings.backup_dir == ".originals"

    def test_master_json_wins(self, tmp_path: Path, clean_env):
        clean_env.setenv(MASTER_ENV_VAR, json.dumps({"media_root": "/srv/media"}))
        clean_env.setenv("IMAGE_OPTIMIZER_MEDIA_ROOT", "/elsewhere")
        assert load_settings(tmp_path).media_root == Path("/srv/media")

    def test_invalid_master_json_falls_back(self, tmp_path: Path, clean_env):
        clean_env.setenv(MASTER_ENV_VAR, "{not json")
        assert load_settings(tmp_path).media_root == tmp_path / "media"
