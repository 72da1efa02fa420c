"""
Health check endpoints.

Provides /healthz and /readyz endpoints for monitoring.
"""
import logging
from django.http import JsonResponse
from django.views import View
from django.db import connection
from django.conf import settings
from minio.error import S3Error
from urllib3.exceptions import HTTPError

from apps.clinical.utils_storage import get_minio_client

logger = logging.getLogger(__name__)


class HealthzView(View):
    """
    Basic health check endpoint.

    Returns 200 OK if application is running.
    Does not check dependencies.
    """

    def get(self, request):
        health_data = {
            'status': 'ok',
            'version': getattr(settings, 'VERSION', 'unknown'),
        }

        commit_hash = getattr(settings, 'COMMIT_HASH', None)
        if commit_hash:
            health_data['commit'] = commit_hash

        return JsonResponse(health_data, status=200)


class ReadyzView(View):
    """
    Readiness check endpoint.

    Returns 200 OK if application is ready to serve traffic.
    Checks the record store and the asset store.
    """

    def get(self, request):
        checks = {
            'database': self._check_database(),
            'asset_store': self._check_asset_store(),
        }

        all_healthy = all(checks.values())

        response_data = {
            'status': 'ready' if all_healthy else 'not_ready',
            'checks': checks,
        }

        return JsonResponse(response_data, status=200 if all_healthy else 503)

    def _check_database(self):
        try:
            with connection.cursor() as cursor:
                cursor.execute('SELECT 1')
                return True
        except Exception as e:
            logger.error(
                'Database health check failed',
                extra={
                    'event': 'health_check_failed',
                    'check': 'database',
                    'error': str(e)
                }
            )
            return False

    def _check_asset_store(self):
        try:
            return get_minio_client().bucket_exists(settings.MINIO_CLINICAL_BUCKET)
        except (S3Error, HTTPError, ValueError) as e:
            logger.error(
                'Asset store health check failed',
                extra={
                    'event': 'health_check_failed',
                    'check': 'asset_store',
                    'error': str(e)
                }
            )
            return False
