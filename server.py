import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from mcp.server.fastmcp import FastMCP

from managers.asset_store import AssetStore
from managers.blob_store import BlobStore
from managers.config_manager import ExportConfig
from managers.export_manager import ExportManager
from tools.asset import register_asset_tools
from tools.export import register_export_tools

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("Asset_Export")

config = ExportConfig()
blob_store = BlobStore(config.blob_root)
asset_store = AssetStore(config.catalog_path)
export_manager = ExportManager(asset_store, blob_store)


class AppContext:
    def __init__(self, export_manager: ExportManager):
        self.export_manager = export_manager


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Manage application lifecycle"""
    logger.info("Starting asset export server...")
    try:
        logger.info(
            f"Blob root: {config.blob_root}, catalog: {config.catalog_path}, exports: {config.export_dir}"
        )
        yield AppContext(export_manager=export_manager)
    finally:
        logger.info("Shutting down asset export server")


mcp = FastMCP("Asset_Export_Server", lifespan=app_lifespan)

register_export_tools(mcp, export_manager, config)
register_asset_tools(mcp, asset_store, blob_store, export_manager)


def main():
    mcp.run(transport="streamable-http")


if __name__ == "__main__":
    main()
