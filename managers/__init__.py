"""Manager classes for the asset export server"""

from managers.archive_builder import ArchiveBuilder
from managers.asset_store import AssetStore
from managers.blob_store import BlobStore
from managers.config_manager import ExportConfig
from managers.export_manager import ExportManager

__all__ = ["ArchiveBuilder", "AssetStore", "BlobStore", "ExportConfig", "ExportManager"]
