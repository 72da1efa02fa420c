"""
Media reference resolver.

Records store a *stable path* (bucket-relative object key) for every
binary asset. Access URLs are short-lived presigned URLs computed on each
read and must never be written back to a record.

- ``resolve_media_url`` turns a stable path into a fresh access URL.
- ``select_stable_path`` is applied on every write that touches a media
  field so an access URL sent back by a client can not replace the path.
- ``store_media`` uploads bytes and returns the new stable path.
"""
import logging
from datetime import timedelta
from typing import Optional
from urllib.parse import unquote, urlsplit

from django.conf import settings

from apps.core.errors import AssetResolutionFailed
from apps.core.observability import metrics
from apps.clinical.utils_storage import (
    generate_object_key,
    generate_presigned_get_url,
    put_object,
)

logger = logging.getLogger(__name__)


def is_access_url(value: Optional[str]) -> bool:
    """True when ``value`` is a fully-qualified URL rather than a stable path."""
    return bool(value) and value.lower().startswith(('http://', 'https://'))


def extract_stable_path(value: str, bucket_name: Optional[str] = None) -> Optional[str]:
    """
    Recover the stable path from an access URL.

    The path is whatever follows ``/<bucket>/`` in the URL path, with the
    query string (signature) dropped. Returns None when the URL does not
    point into the bucket.
    """
    bucket_name = bucket_name or settings.MINIO_CLINICAL_BUCKET
    url_path = unquote(urlsplit(value).path)
    marker = f'/{bucket_name}/'
    index = url_path.find(marker)
    if index == -1:
        return None
    stable_path = url_path[index + len(marker):].strip('/')
    return stable_path or None


def resolve_media_url(stable_path: Optional[str]) -> Optional[str]:
    """
    Return a fresh access URL for ``stable_path``, or None.

    - Empty input returns None; no placeholder is synthesized.
    - An access URL is reduced to its stable path before signing. If the
      path can not be recovered the input is returned unchanged.
    - Asset store failures are logged and return None so a missing
      preview never blocks the rest of a record.

    A new URL is requested on every call.
    """
    if not stable_path:
        metrics.media_access_urls_total.labels(result='empty').inc()
        return None

    object_key = stable_path
    if is_access_url(stable_path):
        object_key = extract_stable_path(stable_path)
        if object_key is None:
            logger.warning(
                'Media reference is a foreign URL, returning it unchanged',
                extra={'event': 'media_url_passthrough'}
            )
            metrics.media_access_urls_total.labels(result='passthrough').inc()
            return stable_path

    try:
        url = generate_presigned_get_url(
            settings.MINIO_CLINICAL_BUCKET,
            object_key,
            expires=timedelta(seconds=settings.MEDIA_ACCESS_URL_TTL_SECONDS),
        )
    except AssetResolutionFailed as exc:
        logger.warning(
            'Could not resolve media access URL',
            extra={
                'event': 'media_url_resolution_failed',
                'object_key': object_key,
                'error': exc.message_text,
            }
        )
        metrics.media_access_urls_total.labels(result='failed').inc()
        return None

    metrics.media_access_urls_total.labels(result='issued').inc()
    return url


def select_stable_path(current: Optional[str], supplied: Optional[str]) -> Optional[str]:
    """
    Pick the value to persist in a media path field.

    Args:
        current: Stable path stored on the record (None for new records)
        supplied: Value the caller sent, if any

    Returns:
        ``current`` when nothing new was supplied or the supplied URL does
        not point into the bucket; the extracted path when an access URL
        was sent back; otherwise the supplied stable path. Never an access URL.
    """
    if not supplied:
        return current

    supplied = supplied.strip()
    if not supplied:
        return current

    if is_access_url(supplied):
        extracted = extract_stable_path(supplied)
        if extracted is None:
            logger.warning(
                'Discarded non-bucket URL on a media path field',
                extra={'event': 'media_path_write_rejected'}
            )
            return current
        return extracted

    return supplied.lstrip('/')


def store_media(prefix: str, filename: str, data: bytes, content_type: str) -> str:
    """
    Upload ``data`` under a fresh key and return its stable path.

    Raises:
        AssetResolutionFailed: when the asset store rejects the upload
    """
    object_key = generate_object_key(prefix, filename)
    try:
        put_object(settings.MINIO_CLINICAL_BUCKET, object_key, data, content_type)
    except AssetResolutionFailed:
        metrics.media_uploads_total.labels(prefix=prefix, result='failed').inc()
        raise
    metrics.media_uploads_total.labels(prefix=prefix, result='success').inc()
    logger.info(
        'Media stored',
        extra={'event': 'media_stored', 'object_key': object_key, 'size_bytes': len(data)}
    )
    return object_key
