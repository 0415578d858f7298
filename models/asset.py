"""Asset data models"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

ScalarValue = Union[str, int, float, bool, None]
MetadataMap = Dict[str, ScalarValue]


def normalize_metadata(raw: Optional[Dict[str, Any]], prefix: str = "") -> MetadataMap:
    """Flatten a loosely typed mapping into a scalar-valued metadata map.

    Nested mappings become dotted keys (``{"a": {"b": 1}}`` -> ``{"a.b": 1}``).
    Lists and any other non-scalar values are stored as their JSON text.
    """
    normalized: MetadataMap = {}
    if not raw:
        return normalized

    for key, value in raw.items():
        full_key = f"{prefix}{key}"
        if isinstance(value, dict):
            normalized.update(normalize_metadata(value, prefix=f"{full_key}."))
        elif value is None or isinstance(value, (str, int, float, bool)):
            normalized[full_key] = value
        else:
            normalized[full_key] = json.dumps(value, default=str)
    return normalized


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


@dataclass
class Asset:
    """Stored image asset and its catalog metadata"""
    id: str
    name: str
    asset_type: str
    file_path: str  # Location inside the blob store
    file_name: str  # Original file name
    file_size: int
    mime_type: str = "image/png"
    description: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    generation_provider: Optional[str] = None
    generation_prompt: Optional[str] = None
    generation_params: MetadataMap = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    metadata: MetadataMap = field(default_factory=dict)
    world_id: Optional[str] = None
    status: str = "completed"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Asset":
        """Build an asset from a catalog record (camelCase keys)"""
        return cls(
            id=str(data["id"]),
            name=data.get("name") or str(data["id"]),
            asset_type=data.get("assetType") or "unknown",
            file_path=data["filePath"],
            file_name=data.get("fileName") or data["filePath"].rsplit("/", 1)[-1],
            file_size=int(data.get("fileSize") or 0),
            mime_type=data.get("mimeType") or "image/png",
            description=data.get("description"),
            width=data.get("width"),
            height=data.get("height"),
            generation_provider=data.get("generationProvider"),
            generation_prompt=data.get("generationPrompt"),
            generation_params=normalize_metadata(data.get("generationParams")),
            tags=list(data.get("tags") or []),
            created_at=parse_timestamp(data.get("createdAt")),
            metadata=normalize_metadata(data.get("metadata")),
            world_id=data.get("worldId"),
            status=data.get("status") or "completed",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "assetType": self.asset_type,
            "filePath": self.file_path,
            "fileName": self.file_name,
            "fileSize": self.file_size,
            "mimeType": self.mime_type,
            "width": self.width,
            "height": self.height,
            "generationProvider": self.generation_provider,
            "generationPrompt": self.generation_prompt,
            "generationParams": dict(self.generation_params),
            "tags": list(self.tags),
            "createdAt": format_timestamp(self.created_at),
            "metadata": dict(self.metadata),
            "worldId": self.world_id,
            "status": self.status,
        }


@dataclass
class Collection:
    """Named, ordered group of asset ids"""
    id: str
    name: str
    asset_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Collection":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or str(data["id"]),
            asset_ids=[str(asset_id) for asset_id in data.get("assetIds") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "assetIds": list(self.asset_ids)}
