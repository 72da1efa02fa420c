"""
Tests for procedure expiration.

Business Rules:
- An explicit expiration date always wins
- Otherwise expiration = performed_on + validity_months of the catalog
  service whose name matches the event title (case/whitespace-insensitive)
- Month arithmetic clamps to the end of shorter months (Jan 31 + 1 = Feb 29 in 2024)
- validity_months = 0 or no matching service: never expires
- Classification: expired before today, upcoming within the lookahead window
"""
from datetime import date
from types import SimpleNamespace

import pytest

from apps.catalog.services import list_services_with_expiration
from apps.clinical.expiration import (
    EXPIRED,
    UPCOMING,
    add_months,
    build_validity_catalog,
    classify_expiration,
    compute_expiration,
    expiring_events,
)

CATALOG = {'botox': 4, 'hyaluronic filler': 12, 'lip filler': 1}


def make_event(title='Botox', performed_on=date(2024, 1, 31), expiration_date=None):
    return SimpleNamespace(title=title, performed_on=performed_on, expiration_date=expiration_date)


class TestMonthArithmetic:

    def test_end_of_month_clamps_in_leap_year(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_end_of_month_clamps_in_common_year(self):
        assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)

    def test_day_kept_when_it_exists(self):
        assert add_months(date(2024, 1, 31), 2) == date(2024, 3, 31)
        assert add_months(date(2024, 3, 15), 4) == date(2024, 7, 15)

    def test_crosses_year_boundary(self):
        assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)


class TestComputeExpiration:

    def test_catalog_validity_applies(self):
        assert compute_expiration(make_event(), CATALOG) == date(2024, 5, 31)

    def test_one_month_from_january_31(self):
        event = make_event(title='Lip filler', performed_on=date(2024, 1, 31))
        assert compute_expiration(event, CATALOG) == date(2024, 2, 29)

    def test_explicit_expiration_wins(self):
        event = make_event(expiration_date=date(2024, 3, 1))
        assert compute_expiration(event, CATALOG) == date(2024, 3, 1)

    def test_explicit_expiration_wins_without_catalog_match(self):
        event = make_event(title='Unknown', expiration_date=date(2025, 1, 1))
        assert compute_expiration(event, {}) == date(2025, 1, 1)

    def test_title_match_ignores_case_and_whitespace(self):
        event = make_event(title='  HYALURONIC Filler ', performed_on=date(2024, 2, 29))
        assert compute_expiration(event, CATALOG) == date(2025, 2, 28)

    def test_unknown_service_never_expires(self):
        assert compute_expiration(make_event(title='Consultation'), CATALOG) is None

    def test_zero_validity_never_expires(self):
        catalog = build_validity_catalog([{'name': 'Peeling', 'validity_months': 0}])
        assert compute_expiration(make_event(title='Peeling'), catalog) is None


class TestClassification:

    def test_past_is_expired(self):
        assert classify_expiration(date(2024, 5, 30), date(2024, 5, 31)) == EXPIRED

    def test_today_is_upcoming(self):
        assert classify_expiration(date(2024, 5, 31), date(2024, 5, 31)) == UPCOMING

    def test_window_end_is_inclusive(self):
        assert classify_expiration(date(2024, 6, 30), date(2024, 5, 31), window_days=30) == UPCOMING
        assert classify_expiration(date(2024, 7, 1), date(2024, 5, 31), window_days=30) is None

    def test_no_expiration_has_no_class(self):
        assert classify_expiration(None, date(2024, 5, 31)) is None

    def test_expiring_events_sorted_by_date(self):
        events = [
            make_event(title='Hyaluronic filler', performed_on=date(2023, 6, 10)),
            make_event(title='Botox', performed_on=date(2024, 1, 31)),
            make_event(title='Consultation', performed_on=date(2024, 1, 31)),
            make_event(title='Lip filler', performed_on=date(2024, 5, 10)),
        ]

        surfaced = expiring_events(events, CATALOG, today=date(2024, 6, 1), window_days=30)

        assert [item.event.title for item in surfaced] == ['Botox', 'Hyaluronic filler', 'Lip filler']
        assert [item.classification for item in surfaced] == [EXPIRED, UPCOMING, UPCOMING]


class TestValidityCatalog:

    def test_skips_non_expiring_and_keeps_first_name(self):
        catalog = build_validity_catalog([
            {'name': 'Botox', 'validity_months': 4},
            {'name': 'botox ', 'validity_months': 6},
            {'name': 'Cleansing', 'validity_months': 0},
            {'name': '', 'validity_months': 3},
        ])
        assert catalog == {'botox': 4}

    @pytest.mark.django_db
    def test_catalog_source_includes_inactive_services(self, botox_service, cleansing_service):
        botox_service.is_active = False
        botox_service.save()

        entries = list_services_with_expiration()

        assert entries == [{'name': 'Botox', 'validity_months': 4}]


@pytest.mark.django_db
class TestEffectiveExpirationApi:

    def test_event_exposes_derived_expiration(self, practitioner_client, clinical_event, botox_service):
        response = practitioner_client.get(f'/api/v1/clinical/events/{clinical_event.id}/')

        assert response.status_code == 200
        assert response.data['expiration_date'] is None
        assert response.data['effective_expiration_date'] == date(2024, 5, 31)

    def test_derived_expiration_is_never_persisted(self, practitioner_client, clinical_event, botox_service):
        practitioner_client.get(f'/api/v1/clinical/events/{clinical_event.id}/')
        clinical_event.refresh_from_db()
        assert clinical_event.expiration_date is None
