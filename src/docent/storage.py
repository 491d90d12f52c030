"""Object storage for raw uploaded bytes."""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


def blob_key(content_hash: str) -> str:
    """Hash-derived storage key: ``ab/cd/<hash>``.

    Identical bytes map to the same key for every user and file name.
    """
    return f"{content_hash[:2]}/{content_hash[2:4]}/{content_hash}"


class BlobStore(ABC):
    """Key → bytes store. Keys are relative, slash-separated paths."""

    @abstractmethod
    def put(self, key: str, data: bytes) -> bool:
        """Store *data* under *key*.

        Returns:
            True if the blob was written, False if it already existed
            (not an error).
        """

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Return the bytes under *key*. Raises FileNotFoundError if absent."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove *key*; a missing key is ignored."""

    @abstractmethod
    def exists(self, key: str) -> bool: ...


class LocalBlobStore(BlobStore):
    """Blobs stored as files under *root*."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise ValueError(f"Blob key escapes the storage root: {key!r}")
        return path

    def put(self, key: str, data: bytes) -> bool:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(path, "xb") as fh:
                fh.write(data)
        except FileExistsError:
            logger.debug("Blob already stored", extra={"key": key})
            return False
        return True

    def get(self, key: str) -> bytes:
        return self._path(key).read_bytes()

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            os.remove(path)
        except FileNotFoundError:
            return

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()
