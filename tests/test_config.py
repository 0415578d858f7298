"""Tests for configuration resolution and persistence"""

from pathlib import Path

import pytest

from managers.config_manager import (
    ExportConfig,
    get_config_dir,
    get_config_file,
    load_config,
    save_config,
)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Point the persistent config at a temp file and clear env overrides."""
    config_dir = tmp_path / "config"
    path = config_dir / "config.json"
    monkeypatch.setattr("managers.config_manager.get_config_dir", lambda: config_dir)
    monkeypatch.setattr("managers.config_manager.get_config_file", lambda: path)
    for env_var in ("ASSET_BLOB_ROOT", "ASSET_CATALOG_PATH", "ASSET_EXPORT_DIR",
                    "ASSET_EXPORT_FORMAT", "ASSET_EXPORT_QUALITY"):
        monkeypatch.delenv(env_var, raising=False)
    return path


class TestPersistentConfig:
    """Tests for the config file helpers"""

    def test_get_config_dir(self):
        """Test config dir is an absolute platform path"""
        config_dir = get_config_dir()
        assert isinstance(config_dir, Path)
        assert config_dir.is_absolute()
        assert get_config_file().name == "config.json"

    def test_save_and_load_config(self, config_file):
        """Test save merges into existing config"""
        assert load_config() == {}
        assert save_config({"blob_root": "/data/blobs"}) is True
        assert save_config({"default_quality": 75}) is True

        assert config_file.exists()
        assert load_config() == {"blob_root": "/data/blobs", "default_quality": 75}

    def test_load_corrupt_config(self, config_file):
        """Test unreadable config falls back to empty"""
        config_file.parent.mkdir(parents=True)
        config_file.write_text("[broken", encoding="utf-8")
        assert load_config() == {}


class TestExportConfig:
    """Tests for ExportConfig precedence"""

    def test_hardcoded_defaults(self, config_file):
        """Test defaults apply when nothing else is set"""
        config = ExportConfig()
        assert config.default_format == "original"
        assert config.default_quality == 90
        assert config.blob_root.name == "blobs"

    def test_precedence(self, config_file, tmp_path, monkeypatch):
        """Test explicit > env > config file > hardcoded"""
        save_config({
            "blob_root": str(tmp_path / "file-blobs"),
            "export_dir": str(tmp_path / "file-exports"),
            "default_quality": 60,
        })
        monkeypatch.setenv("ASSET_EXPORT_DIR", str(tmp_path / "env-exports"))
        monkeypatch.setenv("ASSET_EXPORT_QUALITY", "70")

        config = ExportConfig(default_quality=80)

        assert config.blob_root == tmp_path / "file-blobs"
        assert config.export_dir == tmp_path / "env-exports"
        assert config.default_quality == 80

    def test_invalid_quality_falls_back(self, config_file, monkeypatch):
        """Test a non-numeric quality setting falls back to 90"""
        monkeypatch.setenv("ASSET_EXPORT_QUALITY", "high")
        assert ExportConfig().default_quality == 90

    def test_to_dict(self, config_file, tmp_path):
        """Test config summary lists paths as strings"""
        info = ExportConfig(blob_root=tmp_path / "b").to_dict()
        assert info["blob_root"] == str(tmp_path / "b")
        assert info["config_file"] == str(config_file)
