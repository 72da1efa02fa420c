"""
Patient timeline aggregator.

Builds the read model behind the patient record screen. Nothing is cached:
a new timeline is assembled on every request so derived values
(expiration, safety tags) always reflect the current rows.

Role filtering happens here, not in the serializer:
- clinical roles (admin, practitioner) see everything
- reception and accounting do not see clinical notes
- a portal patient sees only patient-facing summaries, no postings
  and no costs
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional

from django.conf import settings
from django.utils import timezone

from apps.authz.models import RoleChoices
from apps.authz.permissions import CLINICAL_ROLES
from apps.catalog.services import list_services_with_expiration
from apps.clinical.expiration import (
    ExpiringEvent,
    build_validity_catalog,
    classify_expiration,
    compute_expiration,
    expiring_events,
)
from apps.clinical.permissions import is_portal_patient
from apps.clinical.safety_tags import collect_allergies, patient_safety_tags
from apps.core.errors import DomainError
from apps.documents.services import current_documents
from apps.finance.services import financial_summary
from apps.integrations.calendar import get_calendar_store

logger = logging.getLogger(__name__)

APPOINTMENT_LOOKAHEAD_DAYS = 90


@dataclass(frozen=True)
class TimelineVisibility:
    clinical_notes: bool
    financials: bool
    costs: bool

    @classmethod
    def for_roles(cls, roles) -> 'TimelineVisibility':
        roles = set(roles or ())
        if roles & CLINICAL_ROLES:
            return cls(clinical_notes=True, financials=True, costs=True)
        if is_portal_patient(roles) or not roles:
            return cls(clinical_notes=False, financials=False, costs=False)
        return cls(
            clinical_notes=False,
            financials=bool(roles & {RoleChoices.RECEPTION, RoleChoices.ACCOUNTING}),
            costs=RoleChoices.ACCOUNTING in roles,
        )


@dataclass
class TimelineEvent:
    event: object
    expiration_date: Optional[date]
    expiration_status: Optional[str]


@dataclass
class PatientTimeline:
    patient: object
    visibility: TimelineVisibility
    events: List[TimelineEvent]
    expiring: List[ExpiringEvent]
    documents: list
    photos: list
    safety_tags: List[str]
    allergies: str
    postings: Optional[list] = None
    financial_summary: Optional[Dict] = None
    appointments: list = field(default_factory=list)
    calendar_available: bool = True
    generated_at: object = None


def _upcoming_appointments(patient, calendar, now):
    try:
        events = calendar.list_events(now, now + timedelta(days=APPOINTMENT_LOOKAHEAD_DAYS), patient=patient)
    except DomainError as exc:
        logger.warning(
            'Calendar unavailable while building timeline',
            extra={'event': 'timeline_calendar_unavailable', 'patient_id': str(patient.pk), 'error': exc.message_text}
        )
        return [], False
    return events, True


def build_patient_timeline(patient, viewer_roles, today: Optional[date] = None, calendar=None,
                           window_days: Optional[int] = None) -> PatientTimeline:
    """
    Assemble the timeline read model for ``patient``.

    Args:
        patient: Patient instance
        viewer_roles: Role names of the requesting user
        today: Reference date for expiration classification (local date by default)
        calendar: CalendarEventStore (configured store by default)
        window_days: Expiration lookahead (EXPIRATION_LOOKAHEAD_DAYS by default)

    Returns:
        PatientTimeline; media fields hold stable paths, resolved only when
        the timeline is serialized
    """
    today = today or timezone.localdate()
    window_days = settings.EXPIRATION_LOOKAHEAD_DAYS if window_days is None else window_days
    visibility = TimelineVisibility.for_roles(viewer_roles)

    catalog = build_validity_catalog(list_services_with_expiration())
    events = list(patient.clinical_events.order_by('-performed_on', '-created_at'))

    timeline_events = []
    for event in events:
        expiration = compute_expiration(event, catalog)
        timeline_events.append(TimelineEvent(
            event=event,
            expiration_date=expiration,
            expiration_status=classify_expiration(expiration, today, window_days),
        ))

    records = list(patient.anamnesis_records.all())

    postings = summary = None
    if visibility.financials:
        postings = list(patient.financial_postings.order_by('-posted_on', '-created_at'))
        summary = financial_summary(postings)

    appointments, calendar_available = _upcoming_appointments(
        patient, calendar or get_calendar_store(), timezone.now()
    )

    return PatientTimeline(
        patient=patient,
        visibility=visibility,
        events=timeline_events,
        expiring=expiring_events(events, catalog, today, window_days),
        documents=current_documents(patient),
        photos=list(patient.photos.order_by('-taken_on', '-created_at')),
        safety_tags=patient_safety_tags(patient, records),
        allergies=collect_allergies(patient, records),
        postings=postings,
        financial_summary=summary,
        appointments=appointments,
        calendar_available=calendar_available,
        generated_at=timezone.now(),
    )
