"""Data models for the asset export server"""

from models.asset import Asset, Collection, normalize_metadata
from models.export import (
    AssetFile,
    CleanupCriteria,
    CleanupResult,
    ExportManifest,
    ExportPreview,
    ExportReport,
    ExportRequest,
    ManifestEntry,
)

__all__ = [
    "Asset",
    "AssetFile",
    "CleanupCriteria",
    "CleanupResult",
    "Collection",
    "ExportManifest",
    "ExportPreview",
    "ExportReport",
    "ExportRequest",
    "ManifestEntry",
    "normalize_metadata",
]
