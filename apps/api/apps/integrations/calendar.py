"""
External calendar integration.

The agenda lives in Google Calendar; ``Appointment`` rows mirror it locally
so the rest of the system can join appointments to patients. When no
Google access token is configured the local mirror is the agenda.

Both stores implement ``CalendarEventStore``:
- create_event(patient, starts_at, ends_at, procedure, description) -> Appointment
- update_event(appointment, starts_at, ends_at) -> Appointment
- delete_event(appointment) -> None
- list_events(start, end, patient=None) -> [CalendarEvent]
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import requests
from dateutil import parser as date_parser
from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone
from rest_framework import status

from apps.clinical.models import Appointment
from apps.core.errors import DomainError
from apps.core.observability import metrics, log_consistency_checkpoint

logger = logging.getLogger(__name__)

PATIENT_PROPERTY = 'patient_id'


class CalendarUnavailable(DomainError):
    """External calendar refused or did not answer."""
    code = 'calendar_unavailable'
    http_status = status.HTTP_502_BAD_GATEWAY


@dataclass(frozen=True)
class CalendarEvent:
    external_id: Optional[str]
    starts_at: datetime
    ends_at: datetime
    summary: str = ''
    description: str = ''
    patient_id: Optional[str] = None


def event_summary(patient, procedure: str) -> str:
    return f"{patient.full_name} - {procedure}" if procedure else patient.full_name


class CalendarEventStore:
    """Interface shared by the calendar backends."""

    def create_event(self, patient, starts_at, ends_at, procedure='', description='') -> Appointment:
        raise NotImplementedError

    def update_event(self, appointment: Appointment, starts_at, ends_at) -> Appointment:
        raise NotImplementedError

    def delete_event(self, appointment: Appointment) -> None:
        raise NotImplementedError

    def list_events(self, start, end, patient=None) -> List[CalendarEvent]:
        raise NotImplementedError


class LocalCalendarStore(CalendarEventStore):
    """Agenda backed only by ``Appointment`` rows."""

    def create_event(self, patient, starts_at, ends_at, procedure='', description='') -> Appointment:
        return Appointment.objects.create(
            patient=patient,
            starts_at=starts_at,
            ends_at=ends_at,
            procedure=procedure,
            description=description,
        )

    def update_event(self, appointment, starts_at, ends_at):
        appointment.starts_at = starts_at
        appointment.ends_at = ends_at
        appointment.save(update_fields=['starts_at', 'ends_at', 'updated_at'])
        return appointment

    def delete_event(self, appointment):
        appointment.delete()

    def list_events(self, start, end, patient=None):
        queryset = Appointment.objects.select_related('patient').filter(
            starts_at__lt=end,
            ends_at__gt=start,
        ).order_by('starts_at')
        if patient is not None:
            queryset = queryset.filter(patient=patient)

        return [
            CalendarEvent(
                external_id=appointment.external_event_id,
                starts_at=appointment.starts_at,
                ends_at=appointment.ends_at,
                summary=event_summary(appointment.patient, appointment.procedure),
                description=appointment.description,
                patient_id=str(appointment.patient_id),
            )
            for appointment in queryset
        ]


class GoogleCalendarStore(CalendarEventStore):
    """
    Google Calendar REST API (v3) over ``requests``.

    Events carry the patient id in ``extendedProperties.private`` so the
    agenda can be filtered per patient without parsing free text.
    """

    def __init__(self, access_token, calendar_id=None, base_url=None, timeout=None, session=None):
        self.access_token = access_token
        self.calendar_id = calendar_id or settings.GOOGLE_CALENDAR_ID
        self.base_url = (base_url or settings.GOOGLE_CALENDAR_API_URL).rstrip('/')
        self.timeout = timeout or settings.GOOGLE_CALENDAR_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    @property
    def events_url(self):
        return f"{self.base_url}/calendars/{self.calendar_id}/events"

    @property
    def headers(self):
        return {
            'Authorization': f'Bearer {self.access_token}',
            'Content-Type': 'application/json',
        }

    def _request(self, operation, method, url, ok_statuses=(), **kwargs):
        try:
            response = self.session.request(method, url, headers=self.headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            metrics.calendar_requests_total.labels(operation=operation, result='unreachable').inc()
            logger.error(
                'Calendar request failed',
                extra={'event': 'calendar_request_failed', 'operation': operation, 'error': str(exc)}
            )
            raise CalendarUnavailable(f'Calendar is unreachable: {exc}')

        if response.ok or response.status_code in ok_statuses:
            metrics.calendar_requests_total.labels(operation=operation, result='success').inc()
            return response

        metrics.calendar_requests_total.labels(operation=operation, result=str(response.status_code)).inc()
        try:
            message = response.json().get('error', {}).get('message', '')
        except ValueError:
            message = response.text[:200]
        logger.error(
            'Calendar rejected request',
            extra={
                'event': 'calendar_request_rejected',
                'operation': operation,
                'status_code': response.status_code,
            }
        )
        raise CalendarUnavailable(
            f'Calendar rejected {operation} ({response.status_code}): {message}',
            details={'status_code': response.status_code},
        )

    def create_event(self, patient, starts_at, ends_at, procedure='', description=''):
        body = {
            'summary': event_summary(patient, procedure),
            'description': description,
            'start': {'dateTime': starts_at.isoformat()},
            'end': {'dateTime': ends_at.isoformat()},
            'extendedProperties': {'private': {PATIENT_PROPERTY: str(patient.pk)}},
        }
        response = self._request('create', 'POST', self.events_url, json=body)
        external_id = response.json()['id']

        # The remote event exists now; a failed local save leaves it orphaned
        try:
            with transaction.atomic():
                appointment = Appointment.objects.create(
                    patient=patient,
                    external_event_id=external_id,
                    starts_at=starts_at,
                    ends_at=ends_at,
                    procedure=procedure,
                    description=description,
                )
        except DatabaseError:
            log_consistency_checkpoint(
                'calendar_event_mirror',
                entity_ids={'patient_id': str(patient.pk), 'external_event_id': external_id},
                checks_passed={'remote_created': True, 'local_saved': False},
            )
            raise
        return appointment

    def update_event(self, appointment, starts_at, ends_at):
        if appointment.external_event_id:
            body = {
                'start': {'dateTime': starts_at.isoformat()},
                'end': {'dateTime': ends_at.isoformat()},
            }
            self._request('update', 'PATCH', f"{self.events_url}/{appointment.external_event_id}", json=body)
        return LocalCalendarStore().update_event(appointment, starts_at, ends_at)

    def delete_event(self, appointment):
        if appointment.external_event_id:
            # Already gone on the remote side counts as deleted
            self._request(
                'delete', 'DELETE', f"{self.events_url}/{appointment.external_event_id}",
                ok_statuses=(status.HTTP_404_NOT_FOUND, status.HTTP_410_GONE),
            )
        appointment.delete()

    def list_events(self, start, end, patient=None):
        params = {
            'timeMin': start.isoformat(),
            'timeMax': end.isoformat(),
            'singleEvents': 'true',
            'orderBy': 'startTime',
        }
        if patient is not None:
            params['privateExtendedProperty'] = f'{PATIENT_PROPERTY}={patient.pk}'

        response = self._request('list', 'GET', self.events_url, params=params)
        return [self._parse_event(item) for item in response.json().get('items', [])]

    @staticmethod
    def _parse_instant(value):
        # All-day events only carry a date
        moment = date_parser.isoparse(value.get('dateTime') or value['date'])
        if timezone.is_naive(moment):
            moment = timezone.make_aware(moment)
        return moment

    def _parse_event(self, item):
        private = item.get('extendedProperties', {}).get('private', {})
        return CalendarEvent(
            external_id=item.get('id'),
            starts_at=self._parse_instant(item['start']),
            ends_at=self._parse_instant(item['end']),
            summary=item.get('summary', ''),
            description=item.get('description', ''),
            patient_id=private.get(PATIENT_PROPERTY),
        )


def get_calendar_store() -> CalendarEventStore:
    """Google Calendar when an access token is configured, local mirror otherwise."""
    token = settings.GOOGLE_CALENDAR_ACCESS_TOKEN
    if token:
        return GoogleCalendarStore(token)
    return LocalCalendarStore()
