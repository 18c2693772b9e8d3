"""
Local Storage Implementations

JsonFileBlobStore is the default backend: one `<key>.json` file per key
in a data directory. Writes go to a temporary file first and are moved
into place, so a crash mid-write never leaves a half-written blob.

InMemoryBlobStore keeps everything in a dict. Used by tests and for
throwaway sessions.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional, Union

import structlog

from estateflow.services.storage.interface import (
    BlobStoreInterface,
    StorageError,
    UnreadableBlobError,
)


logger = structlog.get_logger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.\-]+$")


class InMemoryBlobStore(BlobStoreInterface):
    """Dict-backed blob store."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self._data)


class JsonFileBlobStore(BlobStoreInterface):
    """
    File-per-key blob store.

    Keys must be plain file-name safe strings (letters, digits, `_`, `-`, `.`).
    """

    SUFFIX = ".json"

    def __init__(self, directory: Union[str, Path]):
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key) or key.startswith("."):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}{self.SUFFIX}"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}")

        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise UnreadableBlobError(f"{key} is not valid UTF-8: {e.reason} at byte {e.start}")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._directory, prefix=f".{key}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            logger.error("blob_write_failed", key=key, error=str(e))
            raise StorageError(f"Failed to write {key}: {e}")

    def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}")

    def keys(self) -> list[str]:
        if not self._directory.exists():
            return []
        return sorted(
            p.name[: -len(self.SUFFIX)]
            for p in self._directory.glob(f"*{self.SUFFIX}")
            if not p.name.startswith(".")
        )
