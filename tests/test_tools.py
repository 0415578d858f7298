"""Tests for tool helpers: export-to-file and asset import"""

import zipfile
from unittest.mock import patch

import pytest

from errors import SinkFailureError
from managers.asset_store import AssetStore
from managers.config_manager import ExportConfig
from models.export import ExportRequest
from tests.conftest import make_image_bytes
from tools.export import safe_zip_name, write_export
from tools.helpers import read_source, register_asset_from_bytes


@pytest.fixture
def config(tmp_path):
    return ExportConfig(
        blob_root=tmp_path / "blobs",
        catalog_path=tmp_path / "catalog.json",
        export_dir=tmp_path / "exports",
    )


class TestWriteExport:
    """Tests for write_export"""

    def test_safe_zip_name(self):
        """Test zip name hints are reduced to plain file stems"""
        assert safe_zip_name("my export") == "my-export"
        assert safe_zip_name("../../etc/passwd") == "etc-passwd"
        assert safe_zip_name("heroes.zip") == "heroes"
        assert safe_zip_name("///") == "asset-export"

    def test_writes_zip_file(self, export_manager, add_asset, config):
        """Test a successful export lands at <export_dir>/<zip_name>.zip"""
        add_asset("a", file_name="a.png")

        result = write_export(export_manager, config, ExportRequest(asset_ids=["a"], zip_name="heroes"))

        assert result["zip_path"] == str(config.export_dir / "heroes.zip")
        assert result["total_assets"] == 1
        with zipfile.ZipFile(result["zip_path"]) as zf:
            assert zf.namelist() == ["assets/a.png", "manifest.json"]
        assert list(config.export_dir.iterdir()) == [config.export_dir / "heroes.zip"]

    def test_validation_error_leaves_no_file(self, export_manager, add_asset, config):
        """Test failed exports return an error dict and no archive"""
        add_asset("a")

        result = write_export(export_manager, config, ExportRequest(asset_ids=["a"], format="tiff"))
        assert result["error_code"] == "UNSUPPORTED_FORMAT"

        result = write_export(export_manager, config, ExportRequest(asset_ids=["ghost"]))
        assert result["error_code"] == "EMPTY_RESULT"

        assert list(config.export_dir.iterdir()) == []

    def test_same_zip_name_keeps_earlier_export(self, export_manager, add_asset, config):
        """Test a repeated zip name gets a suffix instead of replacing the first archive"""
        add_asset("a", file_name="a.png")
        add_asset("b", file_name="b.png")

        first = write_export(export_manager, config, ExportRequest(asset_ids=["a"], zip_name="heroes"))
        second = write_export(export_manager, config, ExportRequest(asset_ids=["b"], zip_name="heroes"))

        assert first["zip_path"] == str(config.export_dir / "heroes.zip")
        assert second["zip_path"] == str(config.export_dir / "heroes_2.zip")
        with zipfile.ZipFile(first["zip_path"]) as zf:
            assert "assets/a.png" in zf.namelist()

    def test_sink_failure_removes_partial_archive(self, export_manager, add_asset, config, monkeypatch):
        """Test a stream that breaks midway leaves nothing in the export dir"""
        add_asset("a")

        def broken_export(request, sink):
            sink.write(b"PK\x03\x04partial")
            raise SinkFailureError("Failed to write to export sink", details="disk full")

        monkeypatch.setattr(export_manager, "export_assets", broken_export)

        result = write_export(export_manager, config, ExportRequest(asset_ids=["a"], zip_name="heroes"))

        assert result["error_code"] == "SINK_FAILURE"
        assert result["details"] == "disk full"
        assert list(config.export_dir.iterdir()) == []


class TestImportAsset:
    """Tests for asset import helpers"""

    def test_register_asset_from_bytes(self, blob_store, tmp_path):
        """Test import stores the blob, reads dimensions and persists the catalog"""
        store = AssetStore(tmp_path / "catalog.json")
        data = make_image_bytes(size=(20, 10))

        asset = register_asset_from_bytes(
            store,
            blob_store,
            data,
            "hero.png",
            asset_type="character_portrait",
            tags=["hero"],
            generation_params={"sampler": {"name": "euler"}},
        )

        assert asset.name == "hero"
        assert asset.file_size == len(data)
        assert asset.mime_type == "image/png"
        assert (asset.width, asset.height) == (20, 10)
        assert asset.generation_params == {"sampler.name": "euler"}
        assert blob_store.read(asset.file_path) == data
        assert AssetStore(tmp_path / "catalog.json").resolve_one(asset.id).file_name == "hero.png"

    def test_unknown_extension_uses_decoded_format(self, blob_store, asset_store):
        """Test MIME type falls back to the decoded image format"""
        asset = register_asset_from_bytes(asset_store, blob_store, make_image_bytes(format="JPEG"), "upload")
        assert asset.mime_type == "image/jpeg"

    def test_read_source_local(self, tmp_path):
        """Test local paths are read with their file name"""
        source = tmp_path / "hero.png"
        source.write_bytes(b"data")
        assert read_source(str(source)) == (b"data", "hero.png")

    def test_read_source_url(self):
        """Test URLs are downloaded and named from the last path segment"""
        with patch("tools.helpers.fetch_asset_bytes", return_value=b"data") as mock_fetch:
            assert read_source("https://cdn.example.test/img/hero.webp?sig=1") == (b"data", "hero.webp")
        mock_fetch.assert_called_once_with("https://cdn.example.test/img/hero.webp?sig=1")
