"""
Tests for logging sanitization, health endpoints and the current-user endpoint.

Business Rules:
- Clinical text and personal data are never written to logs
- /healthz answers without touching dependencies
- Every response carries an X-Request-ID
"""
import pytest
from django.test import Client

from apps.core.observability.logging import sanitize_dict


class TestSanitizeDict:

    def test_redacts_sensitive_keys_at_any_depth(self):
        data = {
            'patient_id': 'abc',
            'Clinical_Notes': '20U glabella',
            'nested': {'email': 'john@test.com', 'count': 2},
            'items': [{'payload': {'diabetes': True}}, 'plain'],
        }

        assert sanitize_dict(data) == {
            'patient_id': 'abc',
            'Clinical_Notes': '[REDACTED]',
            'nested': {'email': '[REDACTED]', 'count': 2},
            'items': [{'payload': '[REDACTED]'}, 'plain'],
        }

    def test_original_untouched(self):
        data = {'phone': '+33600000000'}
        sanitize_dict(data)
        assert data == {'phone': '+33600000000'}

    def test_non_dict_passthrough(self):
        assert sanitize_dict('text') == 'text'


@pytest.mark.django_db
class TestHealthEndpoints:

    def test_healthz(self):
        response = Client().get('/healthz')

        assert response.status_code == 200
        assert response.json()['status'] == 'ok'

    def test_request_id_propagated(self):
        response = Client().get('/healthz', HTTP_X_REQUEST_ID='req-123')
        assert response['X-Request-ID'] == 'req-123'

    def test_request_id_generated(self):
        response = Client().get('/healthz')
        assert response['X-Request-ID']


@pytest.mark.django_db
class TestCurrentUser:

    def test_portal_user_gets_patient_id(self, patient_client, patient):
        response = patient_client.get('/api/auth/me/')

        assert response.status_code == 200
        assert response.data['roles'] == ['patient']
        assert response.data['patient_id'] == str(patient.id)

    def test_staff_user_has_no_patient(self, admin_client):
        response = admin_client.get('/api/auth/me/')

        assert response.data['roles'] == ['admin']
        assert response.data['patient_id'] is None
