"""Shared helper functions for tool implementations"""

import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from asset_processor import fetch_asset_bytes, get_image_metadata, mime_type_for_file_name
from managers.asset_store import AssetStore
from managers.blob_store import BlobStore
from models.asset import Asset

logger = logging.getLogger("Asset_Export")


def read_source(source: str) -> Tuple[bytes, str]:
    """Read asset bytes from a URL or local path.

    Returns:
        Tuple of (bytes, file name taken from the source)
    """
    if source.startswith(("http://", "https://")):
        data = fetch_asset_bytes(source)
        file_name = source.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1]
        return data, file_name or "asset.png"

    path = Path(source).expanduser()
    with open(path, "rb") as f:
        return f.read(), path.name


def register_asset_from_bytes(
    asset_store: AssetStore,
    blob_store: BlobStore,
    data: bytes,
    file_name: str,
    name: Optional[str] = None,
    asset_type: str = "image",
    description: Optional[str] = None,
    tags: Optional[List[str]] = None,
    world_id: Optional[str] = None,
    generation_provider: Optional[str] = None,
    generation_prompt: Optional[str] = None,
    generation_params: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> Asset:
    """Store bytes in the blob store and register a catalog record for them.

    Eliminates duplication between URL and local-file imports. Dimensions are
    read from the image; the MIME type comes from the file extension, or
    from the decoded format when the extension is unknown.
    """
    asset_id = str(uuid.uuid4())
    blob_path = f"{asset_type}/{asset_id}/{file_name}"
    blob_store.write(blob_path, data)

    image_info = get_image_metadata(data)
    mime_type = mime_type_for_file_name(file_name)
    if mime_type == "application/octet-stream" and image_info["format"]:
        mime_type = f"image/{image_info['format'].lower()}"

    asset = asset_store.register_asset(
        asset_id=asset_id,
        name=name or Path(file_name).stem,
        asset_type=asset_type,
        file_path=blob_path,
        file_name=file_name,
        file_size=len(data),
        mime_type=mime_type,
        description=description,
        width=image_info["width"],
        height=image_info["height"],
        generation_provider=generation_provider,
        generation_prompt=generation_prompt,
        generation_params=generation_params,
        tags=tags,
        metadata=metadata,
        world_id=world_id,
    )
    asset_store.save()
    logger.info(f"Imported asset {asset.id} ({file_name}, {len(data)} bytes)")
    return asset
