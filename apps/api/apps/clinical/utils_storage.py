"""
MinIO storage utilities for patient media.

Low-level asset store calls. Failures are raised as ``AssetResolutionFailed``
so callers can decide whether to degrade (read path) or fail (write path).
"""
import io
import uuid
from datetime import timedelta

from django.conf import settings
from minio import Minio
from minio.error import S3Error
from urllib3.exceptions import HTTPError

from apps.core.errors import AssetResolutionFailed


def get_minio_client():
    """Get configured MinIO client instance."""
    return Minio(
        settings.MINIO_ENDPOINT,
        access_key=settings.MINIO_ACCESS_KEY,
        secret_key=settings.MINIO_SECRET_KEY,
        secure=settings.MINIO_USE_SSL,
        region=settings.MINIO_REGION,
    )


def generate_presigned_get_url(bucket_name: str, object_key: str, expires: timedelta = timedelta(hours=1)) -> str:
    """
    Generate presigned GET URL for viewing a file from MinIO.

    Args:
        bucket_name: MinIO bucket name
        object_key: Object key/path in bucket
        expires: URL expiration time (default 1 hour)

    Returns:
        Presigned URL string

    Raises:
        AssetResolutionFailed: If MinIO operation fails
    """
    client = get_minio_client()
    try:
        return client.presigned_get_object(
            bucket_name=bucket_name,
            object_name=object_key,
            expires=expires
        )
    except (S3Error, HTTPError, ValueError) as e:
        raise AssetResolutionFailed(f"Failed to generate presigned GET URL: {e}")


def put_object(bucket_name: str, object_key: str, data: bytes, content_type: str) -> str:
    """
    Upload bytes to MinIO.

    Returns:
        The object key that was written

    Raises:
        AssetResolutionFailed: If MinIO operation fails
    """
    client = get_minio_client()
    try:
        client.put_object(
            bucket_name=bucket_name,
            object_name=object_key,
            data=io.BytesIO(data),
            length=len(data),
            content_type=content_type,
        )
    except (S3Error, HTTPError, ValueError) as e:
        raise AssetResolutionFailed(f"Failed to upload object to MinIO: {e}")
    return object_key


def delete_object(bucket_name: str, object_key: str) -> None:
    """
    Delete an object from MinIO storage (hard delete).

    Raises:
        AssetResolutionFailed: If MinIO operation fails
    """
    client = get_minio_client()
    try:
        client.remove_object(bucket_name=bucket_name, object_name=object_key)
    except (S3Error, HTTPError, ValueError) as e:
        raise AssetResolutionFailed(f"Failed to delete object from MinIO: {e}")


def generate_object_key(prefix: str, filename: str) -> str:
    """
    Generate unique object key for MinIO storage.

    Args:
        prefix: Folder prefix (e.g., 'avatars', 'photos', 'signatures')
        filename: Original filename

    Returns:
        Unique object key string
    """
    unique_id = uuid.uuid4().hex[:12]
    safe_filename = "".join(c for c in filename if c.isalnum() or c in "._-")
    return f"{prefix}/{unique_id}_{safe_filename}"
