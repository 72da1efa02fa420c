"""
Tests for the consent document state machine and API.

Endpoints tested:
- POST /api/v1/consents/documents/ (request signature)
- POST /api/v1/consents/documents/{id}/sign/
- POST /api/v1/consents/documents/{id}/sign-print/
- POST /api/v1/consents/documents/reissue/
- GET  /api/v1/consents/documents/ and /{id}/history/

Business Rules:
- At most one current pending document per (patient, type)
- Requesting again while pending: duplicate_request; after signing: already_signed
- Only pending documents can be signed; superseded ones never
- Signing appends a "document" clinical event to the timeline
- Reissue supersedes the current instance and links the new one to it
"""
import io
from unittest.mock import patch

import pytest
from PIL import Image

from apps.clinical.models import ClinicalEvent
from apps.core.errors import DomainError, DuplicateRequest, InvalidTransition
from apps.documents.models import ConsentDocument
from apps.documents.services import (
    current_document,
    current_documents,
    document_history,
    mark_signed_via_print,
    reissue,
    request_signature,
    sign,
)

SIGNATURE_PATH = 'signatures/abc_20240131.png'


def signature_png():
    buf = io.BytesIO()
    Image.new('RGBA', (40, 20), color=(0, 0, 0, 0)).save(buf, format='PNG')
    buf.seek(0)
    buf.name = 'signature.png'
    return buf


# ============================================================================
# Services
# ============================================================================

@pytest.mark.django_db
class TestRequestSignature:

    def test_creates_pending_document(self, patient, admin_user):
        document = request_signature(patient, 'botox', user=admin_user)

        assert document.status == 'pending'
        assert document.title == 'Consent form - Botulinum Toxin'
        assert document.issued_by_user == admin_user

    def test_second_request_while_pending_is_duplicate(self, patient):
        first = request_signature(patient, 'botox')

        with pytest.raises(DuplicateRequest) as exc_info:
            request_signature(patient, 'botox')

        assert exc_info.value.code == 'duplicate_request'
        assert ConsentDocument.objects.filter(patient=patient, document_type='botox').count() == 1
        assert current_document(patient, 'botox') == first

    def test_request_after_signing_says_already_signed(self, patient):
        document = request_signature(patient, 'botox')
        mark_signed_via_print(document)

        with pytest.raises(DuplicateRequest) as exc_info:
            request_signature(patient, 'botox')

        assert exc_info.value.code == 'already_signed'

    def test_types_are_independent(self, patient, other_patient):
        request_signature(patient, 'botox')
        request_signature(patient, 'filler')
        request_signature(other_patient, 'botox')

        assert [doc.document_type for doc in current_documents(patient)] == ['botox', 'filler']


@pytest.mark.django_db
class TestSign:

    def test_sign_pending_document(self, patient, practitioner_user):
        document = request_signature(patient, 'botox')

        signed = sign(document, SIGNATURE_PATH, user=practitioner_user)

        assert signed.status == 'signed'
        assert signed.signed_at is not None
        assert signed.signing_method == 'digital_pad'
        assert signed.signature_path == SIGNATURE_PATH

    def test_sign_appends_timeline_event(self, patient):
        document = request_signature(patient, 'botox')
        sign(document, SIGNATURE_PATH)

        event = ClinicalEvent.objects.get(patient=patient, event_type='document')
        assert document.title in event.title
        assert document.title in event.patient_summary
        assert event.tags == ['document']

    def test_access_url_signature_is_stored_as_path(self, patient):
        document = request_signature(patient, 'botox')
        signed = sign(document, f'http://minio:9000/patient-media/{SIGNATURE_PATH}?X-Amz-Signature=x')
        assert signed.signature_path == SIGNATURE_PATH

    def test_signing_twice_is_invalid_transition(self, patient):
        document = request_signature(patient, 'botox')
        sign(document, SIGNATURE_PATH)

        with pytest.raises(InvalidTransition):
            sign(document, SIGNATURE_PATH)

        assert ClinicalEvent.objects.filter(patient=patient, event_type='document').count() == 1

    def test_stale_instance_cannot_sign_twice(self, patient):
        document = request_signature(patient, 'botox')
        stale_copy = ConsentDocument.objects.get(pk=document.pk)
        mark_signed_via_print(document)

        with pytest.raises(InvalidTransition):
            sign(stale_copy, SIGNATURE_PATH)

    def test_signature_required(self, patient):
        document = request_signature(patient, 'botox')

        with pytest.raises(DomainError) as exc_info:
            sign(document, '')

        assert exc_info.value.code == 'signature_required'

    def test_print_signature_has_no_asset(self, patient):
        document = request_signature(patient, 'peeling')
        signed = mark_signed_via_print(document)

        assert signed.signing_method == 'print'
        assert signed.signature_path is None


@pytest.mark.django_db
class TestReissue:

    def test_reissue_supersedes_signed_document(self, patient):
        original = request_signature(patient, 'botox', title='Botox consent v1')
        mark_signed_via_print(original)

        renewed = reissue(patient, 'botox')

        original.refresh_from_db()
        assert original.effective_status == 'superseded'
        assert renewed.status == 'pending'
        assert renewed.supersedes == original
        assert renewed.title == 'Botox consent v1'
        assert current_document(patient, 'botox') == renewed

    def test_superseded_document_cannot_be_signed(self, patient):
        original = request_signature(patient, 'botox')
        reissue(patient, 'botox')

        with pytest.raises(InvalidTransition) as exc_info:
            sign(original, SIGNATURE_PATH)

        assert exc_info.value.code == 'document_superseded'

    def test_history_keeps_every_instance(self, patient):
        request_signature(patient, 'botox')
        reissue(patient, 'botox')
        reissue(patient, 'botox')

        history = document_history(patient, 'botox')

        assert len(history) == 3
        assert sum(1 for doc in history if not doc.is_superseded) == 1

    def test_reissue_without_previous_creates_first(self, patient):
        document = reissue(patient, 'lifting')
        assert document.supersedes is None
        assert document.status == 'pending'

    def test_concurrent_reissue_is_duplicate(self, patient):
        # The other request inserted its pending row after our locked read
        first = reissue(patient, 'botox')

        with patch('apps.documents.services._locked_current', return_value=None):
            with pytest.raises(DuplicateRequest) as exc_info:
                reissue(patient, 'botox')

        assert exc_info.value.code == 'duplicate_request'
        assert list(ConsentDocument.objects.filter(patient=patient)) == [first]
        assert current_document(patient, 'botox') == first


# ============================================================================
# API
# ============================================================================

@pytest.mark.django_db
class TestConsentDocumentApi:

    def test_request_and_duplicate(self, reception_client, patient):
        payload = {'patient': str(patient.id), 'document_type': 'botox'}

        first = reception_client.post('/api/v1/consents/documents/', payload, format='json')
        second = reception_client.post('/api/v1/consents/documents/', payload, format='json')

        assert first.status_code == 201
        assert first.data['status'] == 'pending'
        assert second.status_code == 409
        assert second.data['error']['code'] == 'duplicate_request'

    @patch('minio.Minio.presigned_get_object')
    @patch('minio.Minio.put_object')
    def test_sign_with_uploaded_image(self, mock_put, mock_presign, practitioner_client, patient):
        mock_presign.return_value = 'http://minio:9000/patient-media/signatures/x.png?X-Amz-Signature=1'
        document = request_signature(patient, 'botox')

        response = practitioner_client.post(
            f'/api/v1/consents/documents/{document.id}/sign/',
            {'file': signature_png()},
            format='multipart'
        )

        assert response.status_code == 200
        assert response.data['status'] == 'signed'
        assert response.data['signature_path'].startswith('signatures/')
        assert response.data['signature_url'].startswith('http://minio:9000/')
        assert mock_put.call_args.kwargs['content_type'] == 'image/png'

    def test_sign_print_then_sign_again_conflicts(self, reception_client, patient):
        document = request_signature(patient, 'botox')

        first = reception_client.post(f'/api/v1/consents/documents/{document.id}/sign-print/')
        second = reception_client.post(f'/api/v1/consents/documents/{document.id}/sign-print/')

        assert first.status_code == 200
        assert second.status_code == 409
        assert second.data['error']['code'] == 'invalid_transition'

    def test_reissue_endpoint(self, reception_client, patient):
        original = request_signature(patient, 'botox')
        mark_signed_via_print(original)

        response = reception_client.post(
            '/api/v1/consents/documents/reissue/',
            {'patient': str(patient.id), 'document_type': 'botox'},
            format='json'
        )

        assert response.status_code == 201
        assert response.data['supersedes'] == original.id

        listing = reception_client.get(f'/api/v1/consents/documents/?patient={patient.id}')
        assert [doc['id'] for doc in listing.data['results']] == [str(response.data['id'])]

        history = reception_client.get(f'/api/v1/consents/documents/{original.id}/history/')
        assert [doc['status'] for doc in history.data] == ['pending', 'superseded']

    def test_reissue_race_returns_conflict(self, reception_client, patient):
        request_signature(patient, 'botox')

        with patch('apps.documents.services._locked_current', return_value=None):
            response = reception_client.post(
                '/api/v1/consents/documents/reissue/',
                {'patient': str(patient.id), 'document_type': 'botox'},
                format='json'
            )

        assert response.status_code == 409
        assert response.data['error']['code'] == 'duplicate_request'

    @patch('minio.Minio.presigned_get_object')
    def test_portal_patient_signs_own_document(self, mock_presign, patient_client, patient, other_patient):
        mock_presign.return_value = 'http://minio:9000/patient-media/signatures/x.png?X-Amz-Signature=1'
        own = request_signature(patient, 'botox')
        foreign = request_signature(other_patient, 'botox')

        listing = patient_client.get('/api/v1/consents/documents/')
        assert [doc['id'] for doc in listing.data['results']] == [str(own.id)]

        response = patient_client.post(
            f'/api/v1/consents/documents/{own.id}/sign/', {'signature_path': SIGNATURE_PATH}, format='json'
        )
        assert response.status_code == 200
        assert response.data['status'] == 'signed'
        assert response.data['signature_url'].startswith('http://minio:9000/')

        response = patient_client.post(
            f'/api/v1/consents/documents/{foreign.id}/sign/', {'signature_path': SIGNATURE_PATH}, format='json'
        )
        assert response.status_code == 404

    def test_portal_patient_cannot_request_documents(self, patient_client, patient):
        response = patient_client.post(
            '/api/v1/consents/documents/', {'patient': str(patient.id), 'document_type': 'botox'}, format='json'
        )
        assert response.status_code == 403

    def test_accounting_has_no_access(self, accounting_client):
        assert accounting_client.get('/api/v1/consents/documents/').status_code == 403
