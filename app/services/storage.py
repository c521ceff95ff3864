"""
Storage Service
Handles object storage on Cloudflare R2 through its S3-compatible API.

Objects are addressed by an opaque key (``<user>/datasets/<id>.zip``,
``<user>/models/model-<id>.safetensors``). Records store full URIs of the
form ``r2://<bucket>/<key>``; ``extract_storage_key`` converts them back.
"""

import logging
from typing import Optional
from urllib.parse import urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.core.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

R2_SCHEME = "r2://"


def validate_key(key: str):
    """Reject empty keys and keys that could escape the bucket prefix."""
    if not key or not isinstance(key, str):
        raise ValidationError("Key must be a non-empty string")
    if ".." in key or key.startswith("/"):
        raise ValidationError("Invalid key format")


def extract_storage_key(url: str) -> str:
    """
    Extract the storage key from a stored artifact or dataset URI.

    Handles both R2 URIs and standard HTTPS URLs:
        r2://bucket-name/path/to/file     -> path/to/file
        https://host/path/to/file         -> path/to/file
    """
    if url.startswith(R2_SCHEME):
        # Skip bucket name, keep the rest
        parts = url[len(R2_SCHEME):].split("/", 1)
        key = parts[1] if len(parts) > 1 else ""
    else:
        key = urlparse(url).path[1:]

    validate_key(key)
    return key


class StorageService:
    """Service for R2 object storage operations."""

    def __init__(self, client=None, bucket: Optional[str] = None, url_expiration: Optional[int] = None):
        self.bucket = bucket or settings.R2_BUCKET
        self.url_expiration = url_expiration or settings.R2_URL_EXPIRATION

        if client is not None:
            self.s3 = client
        else:
            self.s3 = boto3.client(
                "s3",
                endpoint_url=settings.R2_ENDPOINT or None,
                aws_access_key_id=settings.R2_ACCESS_KEY_ID,
                aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
                region_name="auto",
                config=Config(signature_version="s3v4")
            )
            logger.info(f"[Storage] Using R2 bucket: {self.bucket}")

    def build_uri(self, key: str) -> str:
        """Full r2:// URI for a key in this bucket."""
        validate_key(key)
        return f"{R2_SCHEME}{self.bucket}/{key}"

    async def generate_upload_url(self, key: str) -> str:
        """Presigned PUT URL for uploading an object."""
        return self._presign("put_object", key)

    async def generate_download_url(self, key: str) -> str:
        """Presigned GET URL for downloading an object."""
        return self._presign("get_object", key)

    def _presign(self, operation: str, key: str) -> str:
        validate_key(key)
        try:
            return self.s3.generate_presigned_url(
                operation,
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=self.url_expiration,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"[Storage] Could not presign {operation} for {key}: {e}")
            raise StorageError(f"Failed to generate presigned URL: {e}")

    async def file_exists(self, key: str) -> bool:
        """Check if an object exists. Errors other than not-found are raised."""
        validate_key(key)
        try:
            self.s3.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            error = e.response.get("Error", {})
            http_status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            if http_status == 404 or error.get("Code") in ("404", "NoSuchKey", "NotFound"):
                return False
            logger.error(f"[Storage] Existence check failed for {key}: {e}")
            raise StorageError(f"Storage existence check failed: {e}", http_status=http_status)
        except BotoCoreError as e:
            logger.error(f"[Storage] Existence check failed for {key}: {e}")
            raise StorageError(f"Storage existence check failed: {e}")

    async def delete_file(self, key: str):
        """Delete a single object."""
        validate_key(key)
        try:
            self.s3.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to delete {key}: {e}")
        logger.info(f"[Storage] Deleted file: {key}")

    async def delete_uri(self, url: str):
        """Delete the object behind a stored r2:// or https:// URI."""
        await self.delete_file(extract_storage_key(url))
