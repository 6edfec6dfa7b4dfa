"""Blob store interface shared by the S3 and local backends."""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional, Protocol

from core.exceptions import UpstreamError
from core.utils.timeouts import call_collaborator
from core.utils.validators import sanitize_filename

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredBlob:
    """Reference to an uploaded object."""
    id: str
    url: str


@dataclass(frozen=True)
class UploadedFile:
    """A file received from a client, fully read into memory."""
    filename: str
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class BlobStore(Protocol):
    async def upload(
        self,
        data: bytes,
        filename: str,
        content_type: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> StoredBlob:
        ...

    async def delete(self, blob_id: str) -> bool:
        ...

    async def url_for(self, blob_id: str) -> str:
        ...


async def discard_blob(blob_store: BlobStore, blob_id: str) -> bool:
    """
    Best-effort delete of an orphaned or replaced blob.

    Failures are logged for manual cleanup rather than raised; the caller's
    outcome does not depend on the blob being gone.
    """
    try:
        await call_collaborator(blob_store.delete(blob_id), "Blob delete")
        return True
    except UpstreamError:
        logger.error(f"Could not delete blob {blob_id}, manual cleanup required")
        return False


def build_blob_key(filename: str, prefix: str = "resumes") -> str:
    """
    Unique object key for an upload, e.g. ``resumes/3f2a.../cv.pdf``.

    The client filename is sanitized and never used on its own.
    """
    return f"{prefix}/{uuid.uuid4().hex}/{sanitize_filename(filename)}"
