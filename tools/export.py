"""Export and cleanup tools for the asset export server"""

import logging
import re
import uuid
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from errors import AssetExportError, error_response
from managers.config_manager import ExportConfig
from managers.export_manager import ExportManager, dedupe_file_name
from models.export import CleanupCriteria, ExportRequest

logger = logging.getLogger("Asset_Export")

ZIP_NAME_REGEX = re.compile(r'[^A-Za-z0-9._-]+')


def safe_zip_name(zip_name: str) -> str:
    """Reduce a zip name hint to a plain file stem."""
    cleaned = ZIP_NAME_REGEX.sub("-", zip_name).strip(".-")
    if cleaned.lower().endswith(".zip"):
        cleaned = cleaned[:-4]
    return cleaned or "asset-export"


def write_export(export_manager: ExportManager, config: ExportConfig, request: ExportRequest) -> dict:
    """Run an export into <export_dir>/<zip_name>.zip and describe the result.

    A validation error leaves no file behind. A failed stream removes the
    partial archive, since it cannot be told apart from a complete one. An
    existing archive of the same name is kept and the new one gets a _2, _3
    suffix.
    """
    config.export_dir.mkdir(parents=True, exist_ok=True)
    temp_path = config.export_dir / f".export-{uuid.uuid4().hex}.zip.tmp"
    try:
        request.validate()
        with open(temp_path, "wb") as sink:
            report = export_manager.export_assets(request, sink)
        existing = {path.name for path in config.export_dir.iterdir()}
        zip_path = config.export_dir / dedupe_file_name(f"{safe_zip_name(report.zip_name)}.zip", existing)
        temp_path.replace(zip_path)
    except AssetExportError as e:
        logger.warning(f"Export failed: {e}")
        return error_response(e)
    except Exception as e:
        logger.exception("Export failed")
        return {"error": f"Export failed: {e}", "error_code": "EXPORT_FAILED"}
    finally:
        if temp_path.exists():
            temp_path.unlink()

    result = report.to_dict()
    result["zip_path"] = str(zip_path)
    return result


def register_export_tools(
    mcp: FastMCP,
    export_manager: ExportManager,
    config: ExportConfig
):
    """Register export, preview and cleanup tools with the MCP server"""

    @mcp.tool()
    def export_assets(
        asset_ids: List[str],
        format: Optional[str] = None,
        quality: Optional[int] = None,
        include_metadata: bool = True,
        zip_name: Optional[str] = None
    ) -> dict:
        """Export assets as a ZIP archive with optional format conversion and a manifest.

        Unknown asset ids are ignored, and assets whose files are missing or
        cannot be converted are skipped (listed under "skipped"). The archive
        holds assets/<fileName> entries plus manifest.json when include_metadata
        is True.

        Args:
            asset_ids: Asset IDs in export order
            format: "original" (default), "png", "webp" or "jpeg"
            quality: 1-100, used for webp/jpeg only (default: 90)
            include_metadata: Add manifest.json to the archive (default: True)
            zip_name: Archive file name hint (default: asset-export-<timestamp>)

        Returns:
            Dict with zip_path, total_assets, entries, skipped, missing_ids, bytes_written
            or error/error_code on failure.
        """
        request = ExportRequest(
            asset_ids=list(asset_ids),
            format=format or config.default_format,
            quality=quality if quality is not None else config.default_quality,
            include_metadata=include_metadata,
            zip_name=zip_name,
        )
        return write_export(export_manager, config, request)

    @mcp.tool()
    def export_collection(
        collection_id: str,
        format: Optional[str] = None,
        quality: Optional[int] = None,
        include_metadata: bool = True,
        zip_name: Optional[str] = None
    ) -> dict:
        """Export every asset of a collection as a ZIP archive, in collection order.

        Args:
            collection_id: Collection ID
            format: "original" (default), "png", "webp" or "jpeg"
            quality: 1-100, used for webp/jpeg only (default: 90)
            include_metadata: Add manifest.json to the archive (default: True)
            zip_name: Archive file name hint (default: collection-<name>-<timestamp>)
        """
        request = ExportRequest(
            collection_id=collection_id,
            format=format or config.default_format,
            quality=quality if quality is not None else config.default_quality,
            include_metadata=include_metadata,
            zip_name=zip_name,
        )
        return write_export(export_manager, config, request)

    @mcp.tool()
    def get_export_preview(asset_ids: List[str]) -> dict:
        """Estimate an export before running it: asset count, total size, type histogram.

        Uses catalog metadata only; no files are read or converted.
        """
        return export_manager.get_export_preview(list(asset_ids)).to_dict()

    @mcp.tool()
    def cleanup_assets(
        world_id: Optional[str] = None,
        status: Optional[str] = None,
        older_than_days: Optional[int] = None,
        dry_run: bool = True
    ) -> dict:
        """Find and optionally delete assets by owner, status and age.

        With dry_run=True (the default) nothing is deleted; the counts describe
        what a real run would remove.

        Args:
            world_id: Only assets owned by this world
            status: "failed" or "archived"
            older_than_days: Only assets created more than this many days ago
            dry_run: Report only, do not delete (default: True)

        Returns:
            Dict with deletedCount, freedSpace (bytes), assets (ids), failures, dryRun
        """
        criteria = CleanupCriteria(
            world_id=world_id,
            status=status,
            older_than_days=older_than_days,
            dry_run=dry_run,
        )
        try:
            return export_manager.cleanup_assets(criteria).to_dict()
        except AssetExportError as e:
            logger.warning(f"Cleanup failed: {e}")
            return error_response(e)

    @mcp.tool()
    def get_export_config() -> dict:
        """Show the effective blob root, catalog path, export directory and defaults."""
        return config.to_dict()

    logger.info("Registered export tools")
