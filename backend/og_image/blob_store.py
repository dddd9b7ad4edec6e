"""
Durable Blob Store

File-based durable tier for rendered screenshots.

Cache structure:
cache_dir/
├── 0cc175b9c0f1b6a831c399e269772661.jpg
└── ...

There is no metadata file. An entry's size and age come straight from the
file's stat, so the cache directory can be wiped or inspected by hand.

Any object exposing the same five methods (exists, read, write, delete,
list) can stand in for FileBlobStore.
"""

import os
import logging
import tempfile
from pathlib import Path
from typing import List
from dataclasses import dataclass

from .errors import StorageError

logger = logging.getLogger(__name__)

BLOB_SUFFIX = ".jpg"


@dataclass(frozen=True)
class BlobInfo:
    """Listing record for one durable entry."""
    key: str
    size_bytes: int
    modified_at: float


class FileBlobStore:
    """Stores one ``<key>.jpg`` file per cache entry."""

    def __init__(self, cache_dir: str = "./cache"):
        self.cache_dir = Path(cache_dir)
        self._init_cache_dir()

    def _init_cache_dir(self) -> None:
        """Create cache directory if it doesn't exist."""
        if not self.cache_dir.exists():
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"[BlobStore] Created cache directory at {self.cache_dir}")

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{key}{BLOB_SUFFIX}"

    def exists(self, key: str) -> bool:
        try:
            return self._path(key).is_file()
        except OSError as e:
            raise StorageError("exists", key, e) from e

    def read(self, key: str) -> bytes:
        try:
            with open(self._path(key), "rb") as f:
                return f.read()
        except OSError as e:
            raise StorageError("read", key, e) from e

    def write(self, key: str, data: bytes) -> None:
        """
        Write a blob.

        Data goes to a temporary file in the same directory first and is then
        renamed into place, so readers never observe a half-written image.
        Concurrent writers to one key resolve as last writer wins.
        """
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=self.cache_dir, prefix=f".{key}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_path, self._path(key))
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                try:
                    os.unlink(tmp_path)
                except OSError:
                    logger.warning(f"[BlobStore] Could not remove temp file {tmp_path}")
            raise StorageError("write", key, e) from e

    def delete(self, key: str) -> bool:
        """
        Delete a blob.

        Returns:
            True if a file was removed, False if it was already gone.
        """
        try:
            self._path(key).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError("delete", key, e) from e

    def list(self) -> List[BlobInfo]:
        """List every ``*.jpg`` blob with its size and modification time."""
        blobs = []
        try:
            entries = list(os.scandir(self.cache_dir))
        except OSError as e:
            raise StorageError("list", cause=e) from e

        for entry in entries:
            if not entry.name.endswith(BLOB_SUFFIX) or entry.name.startswith("."):
                continue
            try:
                stat = entry.stat()
            except FileNotFoundError:
                # Removed between scandir and stat
                continue
            except OSError as e:
                raise StorageError("list", entry.name, e) from e
            blobs.append(BlobInfo(
                key=entry.name[:-len(BLOB_SUFFIX)],
                size_bytes=stat.st_size,
                modified_at=stat.st_mtime,
            ))
        return blobs
