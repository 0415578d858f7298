"""Asset catalog: metadata gateway over stored asset records and collections"""

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from errors import NotFoundError, UnavailableError
from models.asset import Asset, Collection, normalize_metadata
from models.export import CleanupCriteria

logger = logging.getLogger("Asset_Export")


class AssetStore:
    """Holds asset records and collections, optionally backed by a JSON catalog file.

    Catalog layout::

        {"assets": [{...asset record...}], "collections": [{...}]}
    """

    def __init__(self, catalog_path: Optional[Union[str, Path]] = None):
        self._assets: Dict[str, Asset] = {}
        self._collections: Dict[str, Collection] = {}
        self._lock = threading.Lock()
        self.catalog_path = Path(catalog_path) if catalog_path else None
        if self.catalog_path and self.catalog_path.exists():
            self.load()
        logger.info(f"Initialized AssetStore with {len(self._assets)} assets (catalog: {self.catalog_path})")

    def load(self):
        """Replace in-memory state with the catalog file contents."""
        if not self.catalog_path:
            return
        try:
            with open(self.catalog_path, "r", encoding="utf-8") as f:
                catalog = json.load(f)
            assets = [Asset.from_dict(record) for record in catalog.get("assets", [])]
            collections = [Collection.from_dict(record) for record in catalog.get("collections", [])]
        except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
            raise UnavailableError(f"Failed to load asset catalog {self.catalog_path}", details=str(e))

        with self._lock:
            self._assets = {asset.id: asset for asset in assets}
            self._collections = {collection.id: collection for collection in collections}

    def save(self):
        """Persist the catalog atomically. No-op for purely in-memory stores."""
        if not self.catalog_path:
            return
        with self._lock:
            catalog = {
                "assets": [asset.to_dict() for asset in self._assets.values()],
                "collections": [collection.to_dict() for collection in self._collections.values()],
            }
            temp_path = self.catalog_path.with_suffix(".tmp")
            try:
                self.catalog_path.parent.mkdir(parents=True, exist_ok=True)
                with open(temp_path, "w", encoding="utf-8") as f:
                    json.dump(catalog, f, indent=2)
                temp_path.replace(self.catalog_path)
            except OSError as e:
                if temp_path.exists():
                    try:
                        temp_path.unlink()
                    except OSError:
                        pass
                raise UnavailableError(f"Failed to save asset catalog {self.catalog_path}", details=str(e))
        logger.debug(f"Saved asset catalog to {self.catalog_path}")

    def add_asset(self, asset: Asset) -> Asset:
        with self._lock:
            self._assets[asset.id] = asset
        return asset

    def register_asset(
        self,
        name: str,
        asset_type: str,
        file_path: str,
        file_name: str,
        file_size: int,
        mime_type: str = "image/png",
        asset_id: Optional[str] = None,
        description: Optional[str] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        generation_provider: Optional[str] = None,
        generation_prompt: Optional[str] = None,
        generation_params: Optional[Dict[str, Any]] = None,
        tags: Optional[Iterable[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        world_id: Optional[str] = None,
        status: str = "completed",
        created_at: Optional[datetime] = None
    ) -> Asset:
        """Register a new asset record and return it"""
        asset = Asset(
            id=asset_id or str(uuid.uuid4()),
            name=name,
            asset_type=asset_type,
            file_path=file_path,
            file_name=file_name,
            file_size=file_size,
            mime_type=mime_type,
            description=description,
            width=width,
            height=height,
            generation_provider=generation_provider,
            generation_prompt=generation_prompt,
            generation_params=normalize_metadata(generation_params),
            tags=list(tags or []),
            created_at=created_at or datetime.now(timezone.utc),
            metadata=normalize_metadata(metadata),
            world_id=world_id,
            status=status,
        )
        self.add_asset(asset)
        logger.debug(f"Registered asset {asset.id} ({file_name}, {file_size} bytes)")
        return asset

    def save_collection(self, name: str, asset_ids: Iterable[str], collection_id: Optional[str] = None) -> Collection:
        collection = Collection(
            id=collection_id or str(uuid.uuid4()),
            name=name,
            asset_ids=list(asset_ids),
        )
        with self._lock:
            self._collections[collection.id] = collection
        return collection

    def list_assets(self) -> List[Asset]:
        with self._lock:
            return list(self._assets.values())

    def list_collections(self) -> List[Collection]:
        with self._lock:
            return list(self._collections.values())

    def resolve_by_ids(self, ids: Iterable[str]) -> List[Asset]:
        """Return existing assets in request order; unknown and repeated ids are dropped."""
        resolved = []
        seen = set()
        with self._lock:
            for asset_id in ids:
                if asset_id in seen:
                    continue
                seen.add(asset_id)
                asset = self._assets.get(asset_id)
                if asset:
                    resolved.append(asset)
        return resolved

    def resolve_one(self, asset_id: str) -> Asset:
        with self._lock:
            asset = self._assets.get(asset_id)
        if not asset:
            raise NotFoundError(f"Asset {asset_id} not found")
        return asset

    def resolve_collection(self, collection_id: str) -> Collection:
        with self._lock:
            collection = self._collections.get(collection_id)
        if not collection:
            raise NotFoundError(f"Collection {collection_id} not found")
        return collection

    def select_for_cleanup(self, criteria: CleanupCriteria, now: Optional[datetime] = None) -> List[Asset]:
        """Return assets matching every supplied filter.

        Assets without a creation time never match an age filter.
        """
        cutoff = criteria.cutoff(now or datetime.now(timezone.utc))
        selected = []
        with self._lock:
            for asset in self._assets.values():
                if criteria.world_id is not None and asset.world_id != criteria.world_id:
                    continue
                if criteria.status is not None and asset.status != criteria.status:
                    continue
                if cutoff is not None and (asset.created_at is None or asset.created_at >= cutoff):
                    continue
                selected.append(asset)
        return selected

    def delete(self, asset_id: str):
        """Remove an asset record. The blob must already be gone."""
        with self._lock:
            if asset_id not in self._assets:
                raise NotFoundError(f"Asset {asset_id} not found")
            del self._assets[asset_id]
        logger.debug(f"Deleted asset record {asset_id}")
