"""Pytest configuration and fixtures"""

import random
from datetime import datetime, timezone
from io import BytesIO

import pytest
from PIL import Image

from managers.asset_store import AssetStore
from managers.blob_store import BlobStore
from managers.export_manager import ExportManager


def make_image_bytes(size=(32, 32), color=(200, 40, 40), format="PNG", mode="RGB") -> bytes:
    """Encode a solid-color image."""
    buf = BytesIO()
    fill = color if mode == "RGB" else color + (128,)
    Image.new(mode, size, fill).save(buf, format=format)
    return buf.getvalue()


def make_noisy_image_bytes(size=(96, 96), seed=7) -> bytes:
    """Encode a gradient with noise, so lossy encoders have detail to trade away."""
    rng = random.Random(seed)
    width, height = size
    pixels = bytearray()
    for y in range(height):
        for x in range(width):
            base = (x * 255 // width, y * 255 // height, (x + y) * 255 // (width + height))
            pixels.extend(min(255, max(0, c + rng.randint(-40, 40))) for c in base)
    buf = BytesIO()
    Image.frombytes("RGB", size, bytes(pixels)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def blob_store(tmp_path):
    """Blob store rooted in a temp directory."""
    return BlobStore(tmp_path / "blobs")


@pytest.fixture
def asset_store():
    """In-memory asset store."""
    return AssetStore()


@pytest.fixture
def export_manager(asset_store, blob_store):
    return ExportManager(asset_store, blob_store)


@pytest.fixture
def add_asset(asset_store, blob_store):
    """Factory that writes a blob and registers its asset record.

    Pass data=None to register a record whose blob is missing.
    """
    def _add_asset(asset_id, file_name="image.png", data=b"", write_blob=True, **kwargs):
        if data == b"":
            data = make_image_bytes()
        file_path = kwargs.pop("file_path", f"images/{asset_id}/{file_name}")
        if write_blob and data is not None:
            blob_store.write(file_path, data)
        kwargs.setdefault("created_at", datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))
        return asset_store.register_asset(
            asset_id=asset_id,
            name=kwargs.pop("name", f"Asset {asset_id}"),
            asset_type=kwargs.pop("asset_type", "character_portrait"),
            file_path=file_path,
            file_name=file_name,
            file_size=kwargs.pop("file_size", len(data) if data else 0),
            **kwargs
        )
    return _add_asset
