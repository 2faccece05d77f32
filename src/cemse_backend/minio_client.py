import os
import logging
from typing import Optional
from minio import Minio
from minio.error import S3Error

from cemse_backend.storage_config import CASE_EVIDENCE_BUCKET, LIBRARY_BUCKET, PROFILE_PICTURE_BUCKET

logger = logging.getLogger(__name__)

MINIO_ENDPOINT = os.environ.get('MINIO_ENDPOINT', 'localhost:9000')
MINIO_ACCESS_KEY = os.environ.get('MINIO_ACCESS_KEY', 'minioadmin')
MINIO_SECRET_KEY = os.environ.get('MINIO_SECRET_KEY', 'minioadmin')
MINIO_SECURE = os.environ.get('MINIO_SECURE', 'false').lower() == 'true'
MINIO_REGION = os.environ.get('MINIO_REGION', 'us-east-1')
# Base URL objects are served from, defaults to the MinIO endpoint itself
MINIO_PUBLIC_URL = os.environ.get(
    'MINIO_PUBLIC_URL',
    f"{'https' if MINIO_SECURE else 'http'}://{MINIO_ENDPOINT}"
)

APPLICATION_BUCKETS = (PROFILE_PICTURE_BUCKET, CASE_EVIDENCE_BUCKET, LIBRARY_BUCKET)

_minio_client: Optional[Minio] = None


def _create_buckets(client: Minio):
    for bucket in APPLICATION_BUCKETS:
        try:
            if not client.bucket_exists(bucket):
                client.make_bucket(bucket, location=MINIO_REGION)
                logger.info(f"Created bucket {bucket}")
        except S3Error as e:
            # storage may come up after the API, uploads retry the check
            logger.warning(f"Could not prepare bucket {bucket}: {e}")


def get_minio_client() -> Minio:
    """Shared MinIO client, created with the application buckets on first use."""
    global _minio_client
    if _minio_client is None:
        logger.info(f"Connecting to MinIO at {MINIO_ENDPOINT}")
        client = Minio(
            MINIO_ENDPOINT,
            access_key=MINIO_ACCESS_KEY,
            secret_key=MINIO_SECRET_KEY,
            secure=MINIO_SECURE,
            region=MINIO_REGION
        )
        _create_buckets(client)
        _minio_client = client

    return _minio_client


def reset_minio_client():
    global _minio_client
    _minio_client = None
