"""Export, preview and cleanup data models"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from errors import InvalidRequestError, UnsupportedFormatError
from models.asset import Asset, MetadataMap, format_timestamp

ORIGINAL_FORMAT = "original"
EXPORT_FORMATS = (ORIGINAL_FORMAT, "png", "webp", "jpeg")
CLEANUP_STATUSES = ("failed", "archived")

DEFAULT_QUALITY = 90
MANIFEST_ENTRY_NAME = "manifest.json"
ASSET_ENTRY_PREFIX = "assets/"


def validate_format(format: Optional[str]) -> str:
    """Normalize an export format selector, rejecting unknown values."""
    normalized = (format or ORIGINAL_FORMAT).strip().lower()
    if normalized == "jpg":
        normalized = "jpeg"
    if normalized not in EXPORT_FORMATS:
        raise UnsupportedFormatError(
            f"Unsupported format: {format}. Expected one of: {', '.join(EXPORT_FORMATS)}"
        )
    return normalized


def validate_quality(quality: int) -> int:
    if isinstance(quality, bool) or not isinstance(quality, int) or not 1 <= quality <= 100:
        raise InvalidRequestError(f"Quality must be an integer between 1 and 100, got {quality!r}")
    return quality


@dataclass
class ExportRequest:
    """Per-call export options; exactly one of asset_ids or collection_id is set"""
    asset_ids: Optional[List[str]] = None
    collection_id: Optional[str] = None
    format: str = ORIGINAL_FORMAT
    quality: int = DEFAULT_QUALITY
    include_metadata: bool = True
    zip_name: Optional[str] = None

    def validate(self) -> "ExportRequest":
        """Check the request before any byte is written. Normalizes format in place."""
        self.format = validate_format(self.format)
        validate_quality(self.quality)
        if self.asset_ids is not None and self.collection_id is not None:
            raise InvalidRequestError("Provide either asset_ids or collection_id, not both")
        if self.asset_ids is None and self.collection_id is None:
            raise InvalidRequestError("Provide asset_ids or collection_id")
        return self


@dataclass
class ManifestEntry:
    """Snapshot of one exported asset, as written to manifest.json"""
    id: str
    name: str
    description: Optional[str]
    asset_type: str
    file_name: str
    original_file_name: str
    file_size: int
    mime_type: str
    width: Optional[int]
    height: Optional[int]
    generation_provider: Optional[str]
    generation_prompt: Optional[str]
    generation_params: MetadataMap
    tags: List[str]
    created_at: Optional[datetime]
    metadata: MetadataMap

    @classmethod
    def from_asset(cls, asset: Asset, file_name: str, file_size: int, mime_type: str) -> "ManifestEntry":
        return cls(
            id=asset.id,
            name=asset.name,
            description=asset.description,
            asset_type=asset.asset_type,
            file_name=file_name,
            original_file_name=asset.file_name,
            file_size=file_size,
            mime_type=mime_type,
            width=asset.width,
            height=asset.height,
            generation_provider=asset.generation_provider,
            generation_prompt=asset.generation_prompt,
            generation_params=dict(asset.generation_params),
            tags=list(asset.tags),
            created_at=asset.created_at,
            metadata=dict(asset.metadata),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "assetType": self.asset_type,
            "fileName": self.file_name,
            "originalFileName": self.original_file_name,
            "fileSize": self.file_size,
            "mimeType": self.mime_type,
            "width": self.width,
            "height": self.height,
            "generationProvider": self.generation_provider,
            "generationPrompt": self.generation_prompt,
            "generationParams": self.generation_params,
            "tags": self.tags,
            "createdAt": format_timestamp(self.created_at),
            "metadata": self.metadata,
        }


@dataclass
class ExportManifest:
    export_date: datetime
    format: str
    assets: List[ManifestEntry] = field(default_factory=list)

    @property
    def total_assets(self) -> int:
        return len(self.assets)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exportDate": format_timestamp(self.export_date),
            "totalAssets": self.total_assets,
            "format": self.format,
            "assets": [entry.to_dict() for entry in self.assets],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


@dataclass(frozen=True)
class ExportedItem:
    """Asset that made it into the archive"""
    asset_id: str
    entry_path: str
    entry: ManifestEntry


@dataclass(frozen=True)
class SkippedItem:
    """Asset left out of the archive and the manifest"""
    asset_id: str
    reason: str


@dataclass
class ExportReport:
    """Outcome of one export call"""
    zip_name: str
    format: str
    manifest: ExportManifest
    exported: List[ExportedItem] = field(default_factory=list)
    skipped: List[SkippedItem] = field(default_factory=list)
    missing_ids: List[str] = field(default_factory=list)
    manifest_included: bool = False
    bytes_written: int = 0

    @property
    def total_assets(self) -> int:
        return len(self.exported)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "zip_name": self.zip_name,
            "format": self.format,
            "total_assets": self.total_assets,
            "entries": [item.entry_path for item in self.exported],
            "skipped": [{"asset_id": item.asset_id, "reason": item.reason} for item in self.skipped],
            "missing_ids": list(self.missing_ids),
            "manifest_included": self.manifest_included,
            "bytes_written": self.bytes_written,
        }


@dataclass(frozen=True)
class AssetFile:
    """Single asset download payload"""
    data: bytes
    file_name: str
    mime_type: str


@dataclass
class ExportPreview:
    total_assets: int
    total_size: int
    asset_types: Dict[str, int]
    assets: List[Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalAssets": self.total_assets,
            "totalSize": self.total_size,
            "assetTypes": dict(self.asset_types),
            "assets": list(self.assets),
        }


@dataclass
class CleanupCriteria:
    """Filters for the retention sweep; absent filters match everything"""
    world_id: Optional[str] = None
    status: Optional[str] = None
    older_than_days: Optional[int] = None
    dry_run: bool = True

    def validate(self) -> "CleanupCriteria":
        if self.status is not None and self.status not in CLEANUP_STATUSES:
            raise InvalidRequestError(
                f"Invalid status: {self.status}. Expected one of: {', '.join(CLEANUP_STATUSES)}"
            )
        if self.older_than_days is not None and self.older_than_days < 0:
            raise InvalidRequestError(f"older_than_days must be >= 0, got {self.older_than_days}")
        return self

    def cutoff(self, now: datetime) -> Optional[datetime]:
        if self.older_than_days is None:
            return None
        return now - timedelta(days=self.older_than_days)


@dataclass(frozen=True)
class DeletionFailure:
    asset_id: str
    reason: str


@dataclass
class CleanupResult:
    """Matched set of a cleanup sweep; identical for dry and real runs"""
    dry_run: bool
    deleted_count: int = 0
    freed_space: int = 0
    assets: List[str] = field(default_factory=list)
    failures: List[DeletionFailure] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deletedCount": self.deleted_count,
            "freedSpace": self.freed_space,
            "assets": list(self.assets),
            "failures": [{"asset_id": f.asset_id, "reason": f.reason} for f in self.failures],
            "dryRun": self.dry_run,
        }
