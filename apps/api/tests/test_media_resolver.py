"""
Tests for media references.

Business Rules:
- Records store stable, bucket-relative paths; never access URLs
- Access URLs are presigned on every read and differ between reads
- A client that echoes an access URL back on save must not overwrite the path
- Empty, missing or unresolvable references come back as null
- NO actual MinIO interaction in tests - mock the presign method
"""
import itertools
import io
from unittest.mock import patch

import pytest
from PIL import Image

from apps.clinical.media import (
    extract_stable_path,
    resolve_media_url,
    select_stable_path,
)
from apps.clinical.models import ClinicalAuditLog

STABLE_PATH = 'avatars/3f9a1c2b7d0e_face.jpg'


def presign_factory():
    """Fake presign returning a different signature on every call."""
    counter = itertools.count(1)

    def _presign(bucket_name, object_name, expires):
        return f'http://minio:9000/{bucket_name}/{object_name}?X-Amz-Signature=sig{next(counter)}'

    return _presign


def png_bytes(size=(8, 8)):
    buf = io.BytesIO()
    Image.new('RGB', size, color=(200, 120, 90)).save(buf, format='PNG')
    return buf.getvalue()


# ============================================================================
# Resolver
# ============================================================================

class TestResolveMediaUrl:

    @patch('minio.Minio.presigned_get_object')
    def test_empty_reference_returns_none(self, mock_presign):
        assert resolve_media_url(None) is None
        assert resolve_media_url('') is None
        mock_presign.assert_not_called()

    @patch('minio.Minio.presigned_get_object')
    def test_each_call_issues_a_fresh_url(self, mock_presign):
        mock_presign.side_effect = presign_factory()

        first = resolve_media_url(STABLE_PATH)
        second = resolve_media_url(STABLE_PATH)

        assert first != second
        assert STABLE_PATH in first
        assert mock_presign.call_count == 2

    @patch('minio.Minio.presigned_get_object')
    def test_access_url_input_is_resigned_from_its_path(self, mock_presign):
        mock_presign.side_effect = presign_factory()
        stale = f'http://minio:9000/patient-media/{STABLE_PATH}?X-Amz-Signature=expired'

        url = resolve_media_url(stale)

        assert mock_presign.call_args.kwargs['object_name'] == STABLE_PATH
        assert 'expired' not in url

    @patch('minio.Minio.presigned_get_object')
    def test_foreign_url_is_returned_unchanged(self, mock_presign):
        foreign = 'https://cdn.example.com/legacy/face.jpg'
        assert resolve_media_url(foreign) == foreign
        mock_presign.assert_not_called()

    @patch('minio.Minio.presigned_get_object')
    def test_store_failure_degrades_to_none(self, mock_presign):
        mock_presign.side_effect = ValueError('endpoint down')
        assert resolve_media_url(STABLE_PATH) is None


class TestSelectStablePath:

    def test_nothing_supplied_keeps_current(self):
        assert select_stable_path(STABLE_PATH, None) == STABLE_PATH
        assert select_stable_path(STABLE_PATH, '') == STABLE_PATH
        assert select_stable_path(STABLE_PATH, '   ') == STABLE_PATH

    def test_access_url_is_reduced_to_path(self):
        url = f'http://minio:9000/patient-media/{STABLE_PATH}?X-Amz-Signature=abc'
        assert select_stable_path(None, url) == STABLE_PATH

    def test_foreign_url_never_replaces_path(self):
        assert select_stable_path(STABLE_PATH, 'https://cdn.example.com/x.jpg') == STABLE_PATH

    def test_new_stable_path_is_accepted(self):
        assert select_stable_path(STABLE_PATH, '/avatars/new.jpg') == 'avatars/new.jpg'

    def test_extract_requires_bucket_marker(self):
        assert extract_stable_path('http://minio:9000/other-bucket/a.jpg') is None
        assert extract_stable_path('http://minio:9000/patient-media/a%20b.jpg') == 'a b.jpg'


# ============================================================================
# Ephemeral URL regression (API)
# ============================================================================

@pytest.mark.django_db
class TestEphemeralUrlRegression:
    """A record loaded, displayed and saved back keeps its stable path."""

    @patch('minio.Minio.presigned_get_object')
    def test_echoed_access_url_does_not_overwrite_path(self, mock_presign, admin_client, patient):
        mock_presign.side_effect = presign_factory()
        patient.avatar_path = STABLE_PATH
        patient.save()

        response = admin_client.get(f'/api/v1/clinical/patients/{patient.id}/')
        assert response.status_code == 200
        record = dict(response.data)
        assert record['avatar_path'] == STABLE_PATH
        assert record['avatar_url'].startswith('http://minio:9000/')

        # Client writes the displayed URL into the path field and saves
        record['avatar_path'] = record['avatar_url']
        record['first_name'] = 'Johnny'
        for read_only in ('id', 'full_name', 'is_deleted', 'deleted_at', 'created_at', 'updated_at'):
            record.pop(read_only)

        response = admin_client.put(f'/api/v1/clinical/patients/{patient.id}/', record, format='json')
        assert response.status_code == 200

        patient.refresh_from_db()
        assert patient.first_name == 'Johnny'
        assert patient.avatar_path == STABLE_PATH

    @patch('minio.Minio.presigned_get_object')
    def test_legacy_avatar_url_key_is_normalized(self, mock_presign, admin_client, patient):
        mock_presign.side_effect = presign_factory()
        patient.avatar_path = STABLE_PATH
        patient.save()

        response = admin_client.patch(
            f'/api/v1/clinical/patients/{patient.id}/',
            {'avatar_url': f'http://minio:9000/patient-media/{STABLE_PATH}?X-Amz-Signature=old'},
            format='json'
        )

        assert response.status_code == 200
        patient.refresh_from_db()
        assert patient.avatar_path == STABLE_PATH

    @patch('minio.Minio.presigned_get_object')
    def test_null_avatar_keeps_current_path(self, mock_presign, admin_client, patient):
        mock_presign.side_effect = presign_factory()
        patient.avatar_path = STABLE_PATH
        patient.save()

        response = admin_client.patch(
            f'/api/v1/clinical/patients/{patient.id}/', {'avatar_path': None}, format='json'
        )

        assert response.status_code == 200
        patient.refresh_from_db()
        assert patient.avatar_path == STABLE_PATH

    @patch('minio.Minio.presigned_get_object')
    def test_two_reads_return_different_urls(self, mock_presign, admin_client, patient):
        mock_presign.side_effect = presign_factory()
        patient.avatar_path = STABLE_PATH
        patient.save()

        first = admin_client.get(f'/api/v1/clinical/patients/{patient.id}/').data['avatar_url']
        second = admin_client.get(f'/api/v1/clinical/patients/{patient.id}/').data['avatar_url']

        assert first != second
        patient.refresh_from_db()
        assert patient.avatar_path == STABLE_PATH

    @patch('minio.Minio.presigned_get_object')
    def test_missing_avatar_is_null(self, mock_presign, admin_client, patient):
        response = admin_client.get(f'/api/v1/clinical/patients/{patient.id}/')
        assert response.data['avatar_url'] is None
        mock_presign.assert_not_called()


# ============================================================================
# Uploads
# ============================================================================

@pytest.mark.django_db
class TestAvatarUpload:

    @patch('minio.Minio.presigned_get_object')
    @patch('minio.Minio.put_object')
    def test_upload_stores_jpeg_and_stable_path(self, mock_put, mock_presign, practitioner_client, patient):
        mock_presign.side_effect = presign_factory()
        upload = io.BytesIO(png_bytes())
        upload.name = 'face.png'

        response = practitioner_client.post(
            f'/api/v1/clinical/patients/{patient.id}/avatar/', {'file': upload}, format='multipart'
        )

        assert response.status_code == 200
        patient.refresh_from_db()
        assert patient.avatar_path.startswith('avatars/')
        assert patient.avatar_path.endswith('face.jpg')
        assert mock_put.call_args.kwargs['content_type'] == 'image/jpeg'
        assert ClinicalAuditLog.objects.filter(entity_id=patient.id, action='update').exists()

    @patch('minio.Minio.put_object')
    def test_non_image_upload_rejected(self, mock_put, practitioner_client, patient):
        upload = io.BytesIO(b'not an image')
        upload.name = 'face.png'

        response = practitioner_client.post(
            f'/api/v1/clinical/patients/{patient.id}/avatar/', {'file': upload}, format='multipart'
        )

        assert response.status_code == 400
        assert response.data['error']['code'] == 'invalid_image'
        mock_put.assert_not_called()

    def test_delete_clears_reference(self, practitioner_client, patient):
        patient.avatar_path = STABLE_PATH
        patient.save()

        response = practitioner_client.delete(f'/api/v1/clinical/patients/{patient.id}/avatar/')

        assert response.status_code == 200
        patient.refresh_from_db()
        assert patient.avatar_path is None
