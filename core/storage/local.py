"""Local filesystem blob store, for development."""

import asyncio
from pathlib import Path
from typing import Optional
import logging

from core.config import settings
from core.storage.base import StoredBlob, build_blob_key

logger = logging.getLogger(__name__)


class LocalBlobStore:
    """Local file storage handler."""

    def __init__(
        self,
        base_path: Optional[str] = None,
        base_url: str = "/uploads",
        key_prefix: str = "resumes",
    ):
        """
        Initialize local storage.

        Args:
            base_path: Base directory for file storage
            base_url: URL prefix the directory is served under
            key_prefix: Prefix for generated keys
        """
        self.base_path = Path(base_path or settings.local_storage_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url.rstrip("/")
        self.key_prefix = key_prefix

    def _path_for(self, blob_id: str) -> Path:
        path = (self.base_path / blob_id).resolve()
        if self.base_path not in path.parents:
            raise ValueError(f"Blob id escapes storage root: {blob_id}")
        return path

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def upload(
        self,
        data: bytes,
        filename: str,
        content_type: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> StoredBlob:
        """
        Save file to local storage.

        Args:
            data: File contents
            filename: Original filename
            content_type: Ignored locally
            metadata: Ignored locally

        Returns:
            StoredBlob with the relative key and its URL
        """
        key = build_blob_key(filename, self.key_prefix)
        path = self._path_for(key)
        await asyncio.to_thread(self._write, path, data)

        logger.info(f"Saved file to {path}")
        return StoredBlob(id=key, url=f"{self.base_url}/{key}")

    async def delete(self, blob_id: str) -> bool:
        """
        Delete file from local storage.

        Returns:
            True if a file was removed
        """
        path = self._path_for(blob_id)
        if not path.exists():
            return False

        await asyncio.to_thread(path.unlink)
        logger.info(f"Deleted file: {path}")
        return True

    async def url_for(self, blob_id: str) -> str:
        return f"{self.base_url}/{blob_id}"
