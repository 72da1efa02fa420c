"""
Tests for the external calendar integration.

Endpoints tested:
- GET /api/v1/integrations/agenda/
- /api/v1/clinical/appointments/

Business Rules:
- Google Calendar is used when an access token is configured, the local
  mirror otherwise
- Events carry the patient id so the agenda can be filtered per patient
- Deleting an event already gone on the remote side succeeds
- Transport errors and rejections surface as calendar_unavailable
- NO real HTTP in tests - the requests session is a MagicMock
"""
from datetime import datetime, timedelta, timezone as dt_timezone
from unittest.mock import MagicMock

import pytest
import requests
from django.utils import timezone

from apps.clinical.models import Appointment
from apps.integrations.calendar import (
    CalendarUnavailable,
    GoogleCalendarStore,
    LocalCalendarStore,
    get_calendar_store,
)

STARTS_AT = datetime(2024, 3, 10, 14, 0, tzinfo=dt_timezone.utc)
ENDS_AT = STARTS_AT + timedelta(hours=1)


def http_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = payload if payload is not None else {}
    response.text = ''
    return response


def google_store(*responses):
    session = MagicMock()
    session.request.side_effect = list(responses)
    store = GoogleCalendarStore(
        'token-123',
        calendar_id='clinic@group.calendar.google.com',
        base_url='https://www.googleapis.com/calendar/v3/',
        timeout=5,
        session=session,
    )
    return store, session


# ============================================================================
# Store selection
# ============================================================================

class TestGetCalendarStore:

    def test_local_store_without_token(self, settings):
        settings.GOOGLE_CALENDAR_ACCESS_TOKEN = ''
        assert isinstance(get_calendar_store(), LocalCalendarStore)

    def test_google_store_with_token(self, settings):
        settings.GOOGLE_CALENDAR_ACCESS_TOKEN = 'token-123'
        store = get_calendar_store()
        assert isinstance(store, GoogleCalendarStore)
        assert store.headers['Authorization'] == 'Bearer token-123'


# ============================================================================
# Google Calendar
# ============================================================================

@pytest.mark.django_db
class TestGoogleCalendarStore:

    def test_create_mirrors_event_locally(self, patient):
        store, session = google_store(http_response(200, {'id': 'evt_1'}))

        appointment = store.create_event(patient, STARTS_AT, ENDS_AT, procedure='Botox')

        assert appointment.external_event_id == 'evt_1'
        assert Appointment.objects.filter(patient=patient).count() == 1

        method, url = session.request.call_args.args
        body = session.request.call_args.kwargs['json']
        assert method == 'POST'
        assert url == 'https://www.googleapis.com/calendar/v3/calendars/clinic@group.calendar.google.com/events'
        assert body['summary'] == 'John Doe - Botox'
        assert body['extendedProperties']['private']['patient_id'] == str(patient.id)
        assert session.request.call_args.kwargs['timeout'] == 5

    def test_rejected_create_saves_nothing(self, patient):
        store, _ = google_store(http_response(403, {'error': {'message': 'Forbidden'}}))

        with pytest.raises(CalendarUnavailable) as exc_info:
            store.create_event(patient, STARTS_AT, ENDS_AT)

        assert exc_info.value.details == {'status_code': 403}
        assert 'Forbidden' in exc_info.value.message_text
        assert not Appointment.objects.exists()

    def test_transport_error_is_unavailable(self, patient):
        store, session = google_store()
        session.request.side_effect = requests.ConnectionError('connection refused')

        with pytest.raises(CalendarUnavailable) as exc_info:
            store.list_events(STARTS_AT, ENDS_AT)

        assert exc_info.value.code == 'calendar_unavailable'

    def test_delete_accepts_already_removed_event(self, patient):
        appointment = Appointment.objects.create(
            patient=patient, external_event_id='evt_gone', starts_at=STARTS_AT, ends_at=ENDS_AT
        )
        store, session = google_store(http_response(404))

        store.delete_event(appointment)

        assert not Appointment.objects.exists()
        assert session.request.call_args.args[0] == 'DELETE'

    def test_delete_failure_keeps_local_row(self, patient):
        appointment = Appointment.objects.create(
            patient=patient, external_event_id='evt_1', starts_at=STARTS_AT, ends_at=ENDS_AT
        )
        store, _ = google_store(http_response(500))

        with pytest.raises(CalendarUnavailable):
            store.delete_event(appointment)

        assert Appointment.objects.filter(pk=appointment.pk).exists()

    def test_update_patches_remote_then_local(self, patient):
        appointment = Appointment.objects.create(
            patient=patient, external_event_id='evt_1', starts_at=STARTS_AT, ends_at=ENDS_AT
        )
        store, session = google_store(http_response(200, {'id': 'evt_1'}))
        new_start = STARTS_AT + timedelta(days=1)

        store.update_event(appointment, new_start, new_start + timedelta(hours=1))

        appointment.refresh_from_db()
        assert appointment.starts_at == new_start
        assert session.request.call_args.args[0] == 'PATCH'
        assert session.request.call_args.args[1].endswith('/events/evt_1')

    def test_list_parses_events(self, patient):
        store, session = google_store(http_response(200, {'items': [
            {
                'id': 'evt_1',
                'summary': 'John Doe - Botox',
                'start': {'dateTime': '2024-03-10T14:00:00+00:00'},
                'end': {'dateTime': '2024-03-10T15:00:00+00:00'},
                'extendedProperties': {'private': {'patient_id': str(patient.id)}},
            },
            {
                'id': 'evt_2',
                'summary': 'Clinic closed',
                'start': {'date': '2024-03-11'},
                'end': {'date': '2024-03-12'},
            },
        ]}))

        events = store.list_events(STARTS_AT, STARTS_AT + timedelta(days=2), patient=patient)

        assert [event.external_id for event in events] == ['evt_1', 'evt_2']
        assert events[0].starts_at == STARTS_AT
        assert events[0].patient_id == str(patient.id)
        assert events[1].patient_id is None
        assert timezone.is_aware(events[1].starts_at)
        params = session.request.call_args.kwargs['params']
        assert params['privateExtendedProperty'] == f'patient_id={patient.id}'
        assert params['singleEvents'] == 'true'


# ============================================================================
# API
# ============================================================================

@pytest.mark.django_db
class TestAgendaApi:

    def test_agenda_lists_local_appointments(self, reception_client, patient):
        Appointment.objects.create(patient=patient, starts_at=STARTS_AT, ends_at=ENDS_AT, procedure='Botox')

        response = reception_client.get(
            '/api/v1/integrations/agenda/',
            {'start': '2024-03-10T00:00:00Z', 'end': '2024-03-11T00:00:00Z'}
        )

        assert response.status_code == 200
        assert [event['summary'] for event in response.data] == ['John Doe - Botox']
        assert response.data[0]['patient_id'] == str(patient.id)

    def test_inverted_range_rejected(self, reception_client):
        response = reception_client.get(
            '/api/v1/integrations/agenda/',
            {'start': '2024-03-11T00:00:00Z', 'end': '2024-03-10T00:00:00Z'}
        )
        assert response.status_code == 400
        assert response.data['error']['code'] == 'invalid_range'

    def test_accounting_denied(self, accounting_client):
        assert accounting_client.get('/api/v1/integrations/agenda/').status_code == 403


@pytest.mark.django_db
class TestAppointmentApi:

    def test_book_move_and_cancel(self, reception_client, patient):
        response = reception_client.post('/api/v1/clinical/appointments/', {
            'patient': str(patient.id),
            'starts_at': '2024-03-10T14:00:00Z',
            'ends_at': '2024-03-10T15:00:00Z',
            'procedure': 'Botox',
        }, format='json')
        assert response.status_code == 201
        appointment_id = response.data['id']

        response = reception_client.patch(f'/api/v1/clinical/appointments/{appointment_id}/', {
            'starts_at': '2024-03-10T16:00:00Z',
            'ends_at': '2024-03-10T17:00:00Z',
        }, format='json')
        assert response.status_code == 200
        assert Appointment.objects.get(pk=appointment_id).starts_at.hour == 16

        response = reception_client.delete(f'/api/v1/clinical/appointments/{appointment_id}/')
        assert response.status_code == 204
        assert not Appointment.objects.exists()

    def test_end_before_start_rejected(self, reception_client, patient):
        response = reception_client.post('/api/v1/clinical/appointments/', {
            'patient': str(patient.id),
            'starts_at': '2024-03-10T14:00:00Z',
            'ends_at': '2024-03-10T13:00:00Z',
        }, format='json')
        assert response.status_code == 400
        assert 'ends_at' in response.data

    def test_portal_patient_reads_only_own(self, patient_client, patient, other_patient):
        Appointment.objects.create(patient=patient, starts_at=STARTS_AT, ends_at=ENDS_AT)
        Appointment.objects.create(patient=other_patient, starts_at=STARTS_AT, ends_at=ENDS_AT)

        response = patient_client.get('/api/v1/clinical/appointments/')

        assert response.status_code == 200
        assert response.data['count'] == 1
        assert response.data['results'][0]['patient'] == patient.id

    def test_portal_patient_cannot_book(self, patient_client, patient):
        response = patient_client.post('/api/v1/clinical/appointments/', {
            'patient': str(patient.id),
            'starts_at': '2024-03-10T14:00:00Z',
            'ends_at': '2024-03-10T15:00:00Z',
        }, format='json')
        assert response.status_code == 403
