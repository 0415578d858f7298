"""Asset and collection tools for the asset export server"""

import logging
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP, Image as FastMCPImage

from asset_processor import image_format_name
from errors import AssetExportError, error_response
from managers.asset_store import AssetStore
from managers.blob_store import BlobStore
from managers.export_manager import ExportManager
from tools.helpers import read_source, register_asset_from_bytes

logger = logging.getLogger("Asset_Export")


def register_asset_tools(
    mcp: FastMCP,
    asset_store: AssetStore,
    blob_store: BlobStore,
    export_manager: ExportManager
):
    """Register asset, download and collection tools with the MCP server"""

    @mcp.tool()
    def get_asset_file(
        asset_id: str,
        format: Optional[str] = None,
        quality: int = 90
    ):
        """Fetch a single asset file inline, optionally converted.

        Args:
            asset_id: Asset ID
            format: "original" (default), "png", "webp" or "jpeg"
            quality: 1-100, used for webp/jpeg only (default: 90)

        Returns:
            Image content, or a dict with error/error_code
        """
        try:
            asset_file = export_manager.get_asset_file(asset_id, format=format, quality=quality)
        except AssetExportError as e:
            return error_response(e)
        except Exception as e:
            logger.exception(f"Failed to fetch asset {asset_id}")
            return {"error": f"Failed to fetch asset: {e}", "error_code": "EXPORT_FAILED"}

        logger.info(f"get_asset_file: asset_id={asset_id} file={asset_file.file_name} bytes={len(asset_file.data)}")
        image_format = image_format_name(asset_file.data, asset_file.mime_type)
        return FastMCPImage(data=asset_file.data, format=image_format)

    @mcp.tool()
    def get_asset_info(asset_id: str) -> dict:
        """Get the catalog record of an asset, including whether its file is present."""
        try:
            asset = asset_store.resolve_one(asset_id)
        except AssetExportError as e:
            return error_response(e)
        info = asset.to_dict()
        info["fileExists"] = blob_store.exists(asset.file_path)
        return info

    @mcp.tool()
    def import_asset(
        source: str,
        name: Optional[str] = None,
        asset_type: str = "image",
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
        world_id: Optional[str] = None,
        generation_provider: Optional[str] = None,
        generation_prompt: Optional[str] = None,
        generation_params: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> dict:
        """Import an image from a URL or local path into the asset catalog.

        Nested generation_params/metadata values are flattened to dotted keys.

        Args:
            source: http(s) URL or local file path
            name: Display name (default: file name without extension)
            asset_type: Free-form category, e.g. "character_portrait"
            description: Optional description
            tags: Optional tags
            world_id: Optional owner scope (used by cleanup_assets)
            generation_provider: Provider that generated the image
            generation_prompt: Prompt used to generate the image
            generation_params: Generation parameters
            metadata: Free-form metadata

        Returns:
            The registered asset record, or error/error_code
        """
        try:
            data, file_name = read_source(source)
            asset = register_asset_from_bytes(
                asset_store,
                blob_store,
                data,
                file_name,
                name=name,
                asset_type=asset_type,
                description=description,
                tags=tags,
                world_id=world_id,
                generation_provider=generation_provider,
                generation_prompt=generation_prompt,
                generation_params=generation_params,
                metadata=metadata,
            )
        except AssetExportError as e:
            return error_response(e)
        except Exception as e:
            logger.exception(f"Failed to import asset from {source}")
            return {"error": f"Failed to import asset: {e}", "error_code": "IMPORT_FAILED"}
        return asset.to_dict()

    @mcp.tool()
    def list_collections() -> dict:
        """List asset collections with their member ids."""
        collections = asset_store.list_collections()
        return {
            "collections": [collection.to_dict() for collection in collections],
            "count": len(collections),
        }

    @mcp.tool()
    def create_collection(name: str, asset_ids: List[str]) -> dict:
        """Create a named collection; asset_ids order is the export order."""
        collection = asset_store.save_collection(name, asset_ids)
        try:
            asset_store.save()
        except AssetExportError as e:
            return error_response(e)
        return collection.to_dict()

    logger.info("Registered asset tools")
