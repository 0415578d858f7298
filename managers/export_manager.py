"""Export orchestration: bulk ZIP export, single file fetch, preview and cleanup"""

import logging
import time
from collections import Counter
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, List, Optional, Set, Tuple, Union

from asset_processor import convert_image_format
from errors import AssetExportError, EmptyResultError, NotFoundError
from managers.archive_builder import ArchiveBuilder
from managers.asset_store import AssetStore
from managers.blob_store import BlobStore
from models.asset import Asset, Collection
from models.export import (
    ASSET_ENTRY_PREFIX,
    DEFAULT_QUALITY,
    MANIFEST_ENTRY_NAME,
    ORIGINAL_FORMAT,
    AssetFile,
    CleanupCriteria,
    CleanupResult,
    DeletionFailure,
    ExportedItem,
    ExportManifest,
    ExportPreview,
    ExportReport,
    ExportRequest,
    ManifestEntry,
    SkippedItem,
    validate_format,
    validate_quality,
)

logger = logging.getLogger("Asset_Export")


def export_file_name(file_name: str, format: str) -> str:
    """File name an asset gets in an export of the given format."""
    if format == ORIGINAL_FORMAT:
        return file_name
    return f"{Path(file_name).stem}.{format}"


def dedupe_file_name(file_name: str, used: Set[str]) -> str:
    """Return file_name, or file_name with a _2, _3, ... suffix if already used."""
    if file_name not in used:
        used.add(file_name)
        return file_name
    path = Path(file_name)
    suffix = 2
    while f"{path.stem}_{suffix}{path.suffix}" in used:
        suffix += 1
    deduped = f"{path.stem}_{suffix}{path.suffix}"
    used.add(deduped)
    return deduped


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class ExportManager:
    """Turns export requests into streamed archives and runs cleanup sweeps."""

    def __init__(self, asset_store: AssetStore, blob_store: BlobStore):
        self.asset_store = asset_store
        self.blob_store = blob_store

    def _resolve_ids(self, request: ExportRequest) -> Tuple[List[str], Optional[Collection]]:
        if request.collection_id is None:
            return list(request.asset_ids), None

        collection = self.asset_store.resolve_collection(request.collection_id)
        if not collection.asset_ids:
            raise EmptyResultError(f"Collection {collection.id} has no assets")
        return list(collection.asset_ids), collection

    def _load_asset_file(self, asset: Asset, format: str, quality: int) -> AssetFile:
        """Read an asset's blob and convert it unless format is original."""
        source_bytes = self.blob_store.read(asset.file_path)
        if format == ORIGINAL_FORMAT:
            return AssetFile(
                data=source_bytes,
                file_name=asset.file_name,
                mime_type=asset.mime_type or "image/png",
            )

        converted = convert_image_format(source_bytes, format, quality)
        return AssetFile(
            data=converted.data,
            file_name=export_file_name(asset.file_name, format),
            mime_type=converted.mime_type,
        )

    def _prepare_item(self, asset: Asset, format: str, quality: int) -> Union[AssetFile, SkippedItem]:
        if not self.blob_store.exists(asset.file_path):
            logger.warning(f"Asset file not found for {asset.id}: {asset.file_path}")
            return SkippedItem(asset_id=asset.id, reason=f"Asset file not found: {asset.file_path}")
        try:
            return self._load_asset_file(asset, format, quality)
        except Exception as e:
            logger.warning(f"Skipping asset {asset.id}: {e}")
            return SkippedItem(asset_id=asset.id, reason=f"{type(e).__name__}: {e}")

    def export_assets(self, request: ExportRequest, sink: BinaryIO) -> ExportReport:
        """Stream a ZIP export of the requested assets into sink.

        Everything that can fail validation (format, quality, unknown
        collection, nothing to export) fails before the archive is opened.
        Assets whose blob is missing or cannot be read or converted are
        skipped and reported. A SinkFailureError aborts the export.

        Args:
            request: Export options
            sink: Binary writable stream receiving the archive bytes

        Returns:
            ExportReport with the manifest, skipped items and bytes written

        Raises:
            UnsupportedFormatError, InvalidRequestError: Invalid request
            NotFoundError: Collection does not exist
            EmptyResultError: No asset records resolved
            SinkFailureError: The sink failed mid-stream
        """
        request.validate()
        asset_ids, collection = self._resolve_ids(request)

        assets = self.asset_store.resolve_by_ids(asset_ids)
        if not assets:
            raise EmptyResultError("No assets found with the provided IDs")
        resolved_ids = {asset.id for asset in assets}
        missing_ids = [asset_id for asset_id in dict.fromkeys(asset_ids) if asset_id not in resolved_ids]
        if missing_ids:
            logger.info(f"Resolved {len(assets)} assets; {len(missing_ids)} requested ids not found")

        if request.zip_name:
            zip_name = request.zip_name
        elif collection:
            zip_name = f"collection-{collection.name}-{_epoch_ms()}"
        else:
            zip_name = f"asset-export-{_epoch_ms()}"

        manifest = ExportManifest(export_date=datetime.now(timezone.utc), format=request.format)
        report = ExportReport(
            zip_name=zip_name,
            format=request.format,
            manifest=manifest,
            missing_ids=missing_ids,
        )
        used_names: Set[str] = set()

        archive = ArchiveBuilder()
        archive.open(sink)

        for asset in assets:
            outcome = self._prepare_item(asset, request.format, request.quality)
            if isinstance(outcome, SkippedItem):
                report.skipped.append(outcome)
                continue

            file_name = dedupe_file_name(outcome.file_name, used_names)
            entry_path = f"{ASSET_ENTRY_PREFIX}{file_name}"
            archive.append(entry_path, outcome.data, asset.created_at)

            entry = ManifestEntry.from_asset(
                asset,
                file_name=file_name,
                file_size=len(outcome.data),
                mime_type=outcome.mime_type,
            )
            manifest.assets.append(entry)
            report.exported.append(ExportedItem(asset_id=asset.id, entry_path=entry_path, entry=entry))

        if request.include_metadata:
            archive.append(MANIFEST_ENTRY_NAME, manifest.to_json().encode("utf-8"))
            report.manifest_included = True

        report.bytes_written = archive.finalize()
        logger.info(
            f"Exported {report.total_assets} assets as {zip_name} "
            f"(format={request.format}, skipped={len(report.skipped)}, {report.bytes_written} bytes)"
        )
        return report

    def export_collection(self, collection_id: str, request: ExportRequest, sink: BinaryIO) -> ExportReport:
        """Export a collection's members in collection order."""
        return self.export_assets(replace(request, asset_ids=None, collection_id=collection_id), sink)

    def get_asset_file(
        self,
        asset_id: str,
        format: Optional[str] = None,
        quality: int = DEFAULT_QUALITY
    ) -> AssetFile:
        """Fetch one asset, converted the same way a bulk export would.

        Raises:
            NotFoundError: Asset record or its file is absent
            UnsupportedFormatError: Unknown format
        """
        format = validate_format(format)
        validate_quality(quality)
        asset = self.asset_store.resolve_one(asset_id)
        if not self.blob_store.exists(asset.file_path):
            raise NotFoundError(f"Asset file not found for {asset_id}: {asset.file_path}")
        return self._load_asset_file(asset, format, quality)

    def get_export_preview(self, asset_ids: List[str]) -> ExportPreview:
        """Summarize an export from catalog metadata only (no file reads)."""
        assets = self.asset_store.resolve_by_ids(asset_ids)
        asset_types = Counter(asset.asset_type for asset in assets)
        return ExportPreview(
            total_assets=len(assets),
            total_size=sum(asset.file_size or 0 for asset in assets),
            asset_types=dict(asset_types),
            assets=[
                {
                    "id": asset.id,
                    "name": asset.name,
                    "assetType": asset.asset_type,
                    "fileSize": asset.file_size,
                }
                for asset in assets
            ],
        )

    def cleanup_assets(self, criteria: CleanupCriteria, now: Optional[datetime] = None) -> CleanupResult:
        """Select assets by criteria and, unless dry_run, delete them.

        Selection and size accounting do not depend on dry_run. Each deletion
        removes the blob first, then the record, then saves the catalog, so the
        catalog never lists an asset whose deletion already finished. A failing
        asset (including a failed catalog save) is recorded and the sweep moves on.
        """
        criteria.validate()
        assets = self.asset_store.select_for_cleanup(criteria, now=now)
        result = CleanupResult(dry_run=criteria.dry_run)

        for asset in assets:
            result.freed_space += asset.file_size or 0
            result.assets.append(asset.id)

            if criteria.dry_run:
                continue

            try:
                if not self.blob_store.delete(asset.file_path):
                    logger.debug(f"Asset file already absent for {asset.id}: {asset.file_path}")
                self.asset_store.delete(asset.id)
                self.asset_store.save()
            except (OSError, ValueError, AssetExportError) as e:
                logger.warning(f"Failed to delete asset {asset.id}: {e}")
                result.failures.append(DeletionFailure(asset_id=asset.id, reason=str(e)))

        result.deleted_count = len(result.assets)

        logger.info(
            f"Cleanup {'preview' if criteria.dry_run else 'run'}: {result.deleted_count} assets, "
            f"{result.freed_space} bytes, {len(result.failures)} failures"
        )
        return result
