import logging
from typing import BinaryIO, Optional
from minio.error import S3Error

from cemse_backend.minio_client import get_minio_client, MINIO_PUBLIC_URL
from cemse_backend.api.exceptions import (
    ServiceUnavailableException,
    NotFoundException
)
from cemse_backend.interface.storage import StoredObject

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = 'application/octet-stream'

_MISSING_CODES = {
    'NoSuchBucket': "Bucket not found: {bucket}",
    'NoSuchKey': "Object not found: {object_key}",
}


def _storage_error(e: S3Error, operation: str, bucket: str, object_key: str = None):
    """Translate a MinIO error into the matching API exception."""
    logger.error(f"Storage {operation} failed for {bucket}/{object_key or ''}: {e}")
    template = _MISSING_CODES.get(e.code)
    if template is not None:
        return NotFoundException(template.format(bucket=bucket, object_key=object_key))
    return ServiceUnavailableException(f"Storage {operation} error: {e}")


def _stream_size(data: BinaryIO) -> int:
    data.seek(0, 2)
    size = data.tell()
    data.seek(0)
    return size


class StorageService:
    """
    Object storage for profile pictures and case evidence.

    Objects are addressed by (bucket, object key) and exposed to clients
    through ``{public_url}/{bucket}/{object_key}``.
    """

    def __init__(self, client=None, public_url: Optional[str] = None):
        self.client = client or get_minio_client()
        self.public_base_url = (public_url or MINIO_PUBLIC_URL).rstrip('/')

    async def ensure_bucket_exists(self, bucket: str) -> str:
        try:
            if not self.client.bucket_exists(bucket):
                self.client.make_bucket(bucket)
                logger.info(f"Created bucket: {bucket}")
        except S3Error as e:
            raise _storage_error(e, "bucket check", bucket)
        return bucket

    def public_url(self, bucket: str, object_key: str) -> str:
        return f"{self.public_base_url}/{bucket}/{object_key}"

    def object_key_from_url(self, bucket: str, url: str) -> Optional[str]:
        """Inverse of public_url for objects of the given bucket."""
        prefix = f"{self.public_base_url}/{bucket}/"
        if url and url.startswith(prefix):
            return url[len(prefix):] or None
        return None

    async def upload_file(
        self,
        file_data: BinaryIO,
        object_key: str,
        bucket: str,
        content_type: Optional[str] = None
    ) -> StoredObject:
        await self.ensure_bucket_exists(bucket)

        content_type = content_type or DEFAULT_CONTENT_TYPE
        size = _stream_size(file_data)

        try:
            self.client.put_object(
                bucket_name=bucket,
                object_name=object_key,
                data=file_data,
                length=size,
                content_type=content_type
            )
        except S3Error as e:
            raise _storage_error(e, "upload", bucket, object_key)

        logger.info(f"Stored {bucket}/{object_key} ({size} bytes)")

        return StoredObject(
            bucket=bucket,
            object_key=object_key,
            url=self.public_url(bucket, object_key),
            content_type=content_type,
            size=size
        )

    async def delete_file(self, object_key: str, bucket: str) -> bool:
        try:
            self.client.remove_object(bucket, object_key)
        except S3Error as e:
            raise _storage_error(e, "delete", bucket, object_key)

        logger.info(f"Removed {bucket}/{object_key}")
        return True


_storage_service: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    """FastAPI dependency returning the shared storage service."""
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
