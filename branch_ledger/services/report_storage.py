"""
Blob storage for generated report artifacts.

The archive only needs three operations on an object key — upload (with
overwrite), download and remove — so the store is a small class that can be
swapped for an S3/Supabase-style bucket client with the same methods.

LocalBlobStore keeps objects as files under a root directory. Keys are
relative POSIX paths ("2025-03/Kabul_Main_2025-03.pdf"); anything resolving
outside the root is rejected. File I/O runs in a worker thread so the event
loop is not blocked.
"""

import asyncio
import logging
from pathlib import Path

from branch_ledger.config import settings
from branch_ledger.exceptions import StorageError

logger = logging.getLogger(__name__)


class LocalBlobStore:
    """Filesystem-backed object store rooted at `root`."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def _path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root):
            raise StorageError(f"Invalid object key '{key}'")
        return path

    async def upload(self, key: str, data: bytes, content_type: str = "application/pdf", upsert: bool = True) -> None:
        """
        Write `data` under `key`.

        Raises:
            StorageError: If the object exists and upsert is False, or the write fails.
        """
        path = self._path_for(key)

        def _write():
            if path.exists() and not upsert:
                raise StorageError(f"Object '{key}' already exists")
            path.parent.mkdir(parents=True, exist_ok=True)
            # Write-then-rename so readers never see a half-written PDF
            tmp = path.with_suffix(path.suffix + ".tmp")
            tmp.write_bytes(data)
            tmp.replace(path)

        try:
            await asyncio.to_thread(_write)
        except StorageError:
            raise
        except OSError as exc:
            raise StorageError(f"Failed to upload '{key}': {exc}") from exc

        logger.info("Stored object %s (%d bytes, %s)", key, len(data), content_type)

    async def download(self, key: str) -> bytes:
        path = self._path_for(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as exc:
            raise StorageError(f"Object '{key}' not found") from exc
        except OSError as exc:
            raise StorageError(f"Failed to download '{key}': {exc}") from exc

    async def remove(self, key: str) -> None:
        """Delete the object. Removing a missing object is not an error."""
        path = self._path_for(key)
        try:
            await asyncio.to_thread(path.unlink, True)
        except OSError as exc:
            raise StorageError(f"Failed to remove '{key}': {exc}") from exc

    async def exists(self, key: str) -> bool:
        return await asyncio.to_thread(self._path_for(key).exists)


_default_store: LocalBlobStore | None = None


def get_blob_store() -> LocalBlobStore:
    """FastAPI dependency returning the configured report store."""
    global _default_store
    if _default_store is None:
        _default_store = LocalBlobStore(settings.REPORTS_STORAGE_DIR)
    return _default_store
