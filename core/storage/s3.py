"""S3 blob store for résumé uploads."""

import aioboto3
from typing import Optional
import logging

from core.config import settings
from core.storage.base import StoredBlob, build_blob_key

logger = logging.getLogger(__name__)


def _get_credentials() -> dict:
    """Build session kwargs from settings; empty keys fall back to the default AWS chain."""
    credentials = {"region_name": settings.aws_region}
    if settings.aws_access_key_id and settings.aws_secret_access_key:
        credentials["aws_access_key_id"] = settings.aws_access_key_id
        credentials["aws_secret_access_key"] = settings.aws_secret_access_key
    return credentials


class S3BlobStore:
    """S3 storage handler for async operations."""

    def __init__(
        self,
        bucket_name: Optional[str] = None,
        key_prefix: str = "resumes",
        url_expiry: Optional[int] = None,
    ):
        """
        Initialize S3 storage.

        Args:
            bucket_name: S3 bucket name (uses settings if not provided)
            key_prefix: Prefix for generated object keys
            url_expiry: Presigned URL lifetime in seconds
        """
        self.bucket_name = bucket_name or settings.aws_s3_bucket
        if not self.bucket_name:
            raise ValueError("S3 bucket name not provided and AWS_S3_BUCKET not set")

        self.key_prefix = key_prefix
        self.url_expiry = url_expiry or settings.presigned_url_expiry_seconds
        self.credentials = _get_credentials()

    def _client(self):
        session = aioboto3.Session(**self.credentials)
        return session.client("s3", endpoint_url=settings.aws_s3_endpoint_url)

    async def upload(
        self,
        data: bytes,
        filename: str,
        content_type: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> StoredBlob:
        """
        Upload file to S3.

        Args:
            data: File contents
            filename: Original filename, sanitized into the object key
            content_type: MIME type of the file
            metadata: Optional metadata dictionary (values must be strings)

        Returns:
            StoredBlob with the object key and a presigned download URL
        """
        key = build_blob_key(filename, self.key_prefix)

        async with self._client() as client:
            upload_args = {
                "Bucket": self.bucket_name,
                "Key": key,
                "Body": data,
            }

            if content_type:
                upload_args["ContentType"] = content_type

            if metadata:
                upload_args["Metadata"] = {k: str(v) for k, v in metadata.items()}

            await client.put_object(**upload_args)

            url = await client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": key},
                ExpiresIn=self.url_expiry,
            )

        logger.info(f"Uploaded file to S3: {self.bucket_name}/{key}")
        return StoredBlob(id=key, url=url)

    async def delete(self, blob_id: str) -> bool:
        """
        Delete file from S3.

        Args:
            blob_id: S3 object key

        Returns:
            True if deleted successfully
        """
        async with self._client() as client:
            await client.delete_object(Bucket=self.bucket_name, Key=blob_id)

        logger.info(f"Deleted file from S3: {self.bucket_name}/{blob_id}")
        return True

    async def url_for(self, blob_id: str) -> str:
        """
        Generate a fresh presigned download URL.

        Args:
            blob_id: S3 object key

        Returns:
            Presigned URL
        """
        async with self._client() as client:
            return await client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": blob_id},
                ExpiresIn=self.url_expiry,
            )
