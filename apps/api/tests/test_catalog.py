"""
Tests for the service catalog endpoints.

Endpoints tested:
- /api/v1/catalog/services/

Business Rules:
- Admin manages the catalog; other staff read it; patients have no access
- Service names are unique regardless of case
- Archived services are hidden unless requested
"""
import pytest


@pytest.mark.django_db
class TestServiceCatalogApi:

    def test_admin_creates_service(self, admin_client):
        response = admin_client.post('/api/v1/catalog/services/', {
            'name': ' Lip Filler ',
            'category': 'injectables',
            'price': '1500.00',
            'validity_months': 9,
        }, format='json')

        assert response.status_code == 201
        assert response.data['name'] == 'Lip Filler'
        assert response.data['expires'] is True

    def test_name_unique_ignoring_case(self, admin_client, botox_service):
        response = admin_client.post('/api/v1/catalog/services/', {'name': 'BOTOX'}, format='json')

        assert response.status_code == 400
        assert 'name' in response.data

    def test_archived_hidden_by_default(self, reception_client, botox_service, cleansing_service):
        botox_service.is_active = False
        botox_service.save()

        active = reception_client.get('/api/v1/catalog/services/')
        everything = reception_client.get('/api/v1/catalog/services/?include_inactive=true')

        assert [s['name'] for s in active.data['results']] == ['Deep Cleansing']
        assert everything.data['count'] == 2

    def test_practitioner_read_only(self, practitioner_client, botox_service):
        assert practitioner_client.get('/api/v1/catalog/services/').status_code == 200
        response = practitioner_client.patch(
            f'/api/v1/catalog/services/{botox_service.id}/', {'validity_months': 6}, format='json'
        )
        assert response.status_code == 403

    def test_patient_denied(self, patient_client):
        assert patient_client.get('/api/v1/catalog/services/').status_code == 403
