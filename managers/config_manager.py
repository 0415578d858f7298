"""Configuration for the asset export server"""

import json
import logging
import os
import platform
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger("Asset_Export")

APP_DIR_NAME = "asset-export-server"

# Setting name -> environment variable
ENV_VARS = {
    "blob_root": "ASSET_BLOB_ROOT",
    "catalog_path": "ASSET_CATALOG_PATH",
    "export_dir": "ASSET_EXPORT_DIR",
    "default_format": "ASSET_EXPORT_FORMAT",
    "default_quality": "ASSET_EXPORT_QUALITY",
}


def get_config_dir() -> Path:
    """Get platform-specific config directory.

    Returns:
        Windows: %APPDATA%/asset-export-server
        Mac: ~/Library/Application Support/asset-export-server
        Linux: ~/.config/asset-export-server
    """
    system = platform.system()
    if system == "Windows":
        appdata = os.getenv("APPDATA")
        if appdata:
            return Path(appdata) / APP_DIR_NAME
        return Path.home() / "AppData" / "Roaming" / APP_DIR_NAME
    elif system == "Darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME
    else:
        return Path.home() / ".config" / APP_DIR_NAME


def get_config_file() -> Path:
    return get_config_dir() / "config.json"


def load_config() -> Dict[str, Any]:
    """Load persistent configuration, or {} if missing or unreadable."""
    config_file = get_config_file()
    if not config_file.exists():
        return {}

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config = json.load(f)
            return config if isinstance(config, dict) else {}
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Failed to load config from {config_file}: {e}")
        return {}


def save_config(config: Dict[str, Any]) -> bool:
    """Merge config into the persistent config file.

    Returns:
        True if successful, False otherwise
    """
    config_file = get_config_file()

    try:
        config_file.parent.mkdir(parents=True, exist_ok=True)
        existing = load_config()
        existing.update(config)
        with open(config_file, "w", encoding="utf-8") as f:
            json.dump(existing, f, indent=2)
        logger.info(f"Saved config to {config_file}")
        return True
    except (IOError, OSError) as e:
        logger.error(f"Failed to save config to {config_file}: {e}")
        return False


class ExportConfig:
    """Resolved settings with precedence: explicit > env > config file > hardcoded"""

    def __init__(
        self,
        blob_root: Optional[Union[str, Path]] = None,
        catalog_path: Optional[Union[str, Path]] = None,
        export_dir: Optional[Union[str, Path]] = None,
        default_format: Optional[str] = None,
        default_quality: Optional[int] = None
    ):
        data_dir = Path.home() / ".local" / "share" / APP_DIR_NAME
        self._hardcoded_defaults = {
            "blob_root": str(data_dir / "blobs"),
            "catalog_path": str(data_dir / "catalog.json"),
            "export_dir": str(data_dir / "exports"),
            "default_format": "original",
            "default_quality": 90,
        }
        self._file_config = load_config()

        self.blob_root = Path(self._resolve("blob_root", blob_root)).expanduser()
        self.catalog_path = Path(self._resolve("catalog_path", catalog_path)).expanduser()
        self.export_dir = Path(self._resolve("export_dir", export_dir)).expanduser()
        self.default_format = str(self._resolve("default_format", default_format)).lower()

        quality = self._resolve("default_quality", default_quality)
        try:
            self.default_quality = int(quality)
        except (TypeError, ValueError):
            logger.warning(f"Invalid default quality {quality!r}, using 90")
            self.default_quality = 90

    def _resolve(self, name: str, explicit: Any) -> Any:
        if explicit is not None:
            return explicit
        env_value = os.getenv(ENV_VARS[name])
        if env_value:
            return env_value
        if self._file_config.get(name) is not None:
            return self._file_config[name]
        return self._hardcoded_defaults[name]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "blob_root": str(self.blob_root),
            "catalog_path": str(self.catalog_path),
            "export_dir": str(self.export_dir),
            "default_format": self.default_format,
            "default_quality": self.default_quality,
            "config_file": str(get_config_file()),
        }
