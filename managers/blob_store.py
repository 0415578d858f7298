"""Blob store for asset bytes rooted at an explicit directory"""

import logging
import os
from pathlib import Path
from typing import Union

logger = logging.getLogger("Asset_Export")


def canonicalize_path(path: Union[str, Path], must_exist: bool = True) -> Path:
    """Resolve path to absolute real path (handles symlinks).

    Args:
        path: Path to canonicalize (can be string or Path)
        must_exist: If True, path must exist (default: True)

    Returns:
        Absolute Path object with symlinks resolved

    Raises:
        ValueError: If path cannot be resolved
    """
    try:
        return Path(path).resolve(strict=must_exist)
    except (OSError, RuntimeError) as e:
        raise ValueError(f"Cannot resolve path {path}: {e}")


def is_within(child_path: Union[str, Path], parent_path: Union[str, Path], child_must_exist: bool = True) -> bool:
    """Check if child_path is within parent_path using real path resolution.

    Both paths are canonicalized (symlinks resolved) before comparison,
    so a blob path cannot escape the store through ``..`` or a symlink.
    """
    try:
        child_real = canonicalize_path(child_path, must_exist=child_must_exist)
        parent_real = canonicalize_path(parent_path, must_exist=True)
        return child_real.is_relative_to(parent_real)
    except (ValueError, OSError):
        return False


class BlobStore:
    """Reads, writes and deletes asset blobs under a single root directory.

    Blob paths are the ``file_path`` values stored on asset records, relative
    to the root (a leading slash is ignored).
    """

    def __init__(self, root: Union[str, Path], create: bool = True):
        self.root = Path(root).resolve()
        if create:
            self.root.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initialized BlobStore at {self.root}")

    def resolve(self, blob_path: str) -> Path:
        """Map a stored blob path to a filesystem path inside the root.

        Raises:
            ValueError: If the path is empty or escapes the store root
        """
        relative = blob_path.replace("\\", "/").lstrip("/")
        if not relative:
            raise ValueError("Blob path is empty")

        target = self.root / relative
        if not is_within(target, self.root, child_must_exist=False):
            raise ValueError(f"Blob path {blob_path} is outside blob root {self.root}")
        return target

    def exists(self, blob_path: str) -> bool:
        try:
            return self.resolve(blob_path).is_file()
        except ValueError:
            return False

    def read(self, blob_path: str) -> bytes:
        """Read blob bytes.

        Raises:
            FileNotFoundError: If the blob is absent
            ValueError: If the path escapes the store root
        """
        with open(self.resolve(blob_path), "rb") as f:
            return f.read()

    def write(self, blob_path: str, data: bytes) -> Path:
        """Write blob bytes atomically (temp file then rename)."""
        target = self.resolve(blob_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        temp_path = target.with_suffix(target.suffix + ".tmp")
        try:
            with open(temp_path, "wb") as f:
                f.write(data)
            temp_path.replace(target)
        except OSError:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    pass
            raise
        logger.debug(f"Wrote blob {blob_path} ({len(data)} bytes)")
        return target

    def delete(self, blob_path: str) -> bool:
        """Delete a blob. Returns False if it was already absent."""
        target = self.resolve(blob_path)
        try:
            os.unlink(target)
        except FileNotFoundError:
            return False
        logger.debug(f"Deleted blob {blob_path}")
        return True
