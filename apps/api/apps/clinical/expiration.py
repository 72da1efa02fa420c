"""
Procedure expiration engine.

An event's effective expiration is its explicit ``expiration_date`` when
one was entered; otherwise ``performed_on + validity_months`` of the
catalog service whose name matches the event title. Month arithmetic
follows the civil calendar: the day of month is kept when it exists and
clamped to the last day of the target month otherwise (2024-01-31 + 1
month = 2024-02-29).
"""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Mapping, Optional

from dateutil.relativedelta import relativedelta

EXPIRED = 'expired'
UPCOMING = 'upcoming'

DEFAULT_WINDOW_DAYS = 30


def normalize_service_name(name: Optional[str]) -> str:
    return (name or '').strip().casefold()


def build_validity_catalog(entries: Iterable[Mapping]) -> Dict[str, int]:
    """
    Map normalized service name to validity months.

    ``entries`` is the ``[{'name', 'validity_months'}]`` list returned by
    ``catalog.services.list_services_with_expiration``. Entries without a
    positive validity are skipped. The first entry wins on name clashes.
    """
    catalog = {}
    for entry in entries:
        months = entry.get('validity_months') or 0
        key = normalize_service_name(entry.get('name'))
        if months > 0 and key and key not in catalog:
            catalog[key] = int(months)
    return catalog


def add_months(start: date, months: int) -> date:
    return start + relativedelta(months=months)


def compute_expiration(event, catalog: Mapping[str, int]) -> Optional[date]:
    """
    Effective expiration date of ``event`` or None (never expires).

    ``event`` needs ``expiration_date``, ``title`` and ``performed_on``.
    """
    if event.expiration_date:
        return event.expiration_date

    if not event.performed_on:
        return None

    months = catalog.get(normalize_service_name(event.title))
    if not months or months <= 0:
        return None

    return add_months(event.performed_on, months)


def classify_expiration(expiration: Optional[date], today: date,
                        window_days: int = DEFAULT_WINDOW_DAYS) -> Optional[str]:
    """
    ``'expired'`` before today, ``'upcoming'`` within the lookahead window
    (both ends inclusive), None otherwise.
    """
    if expiration is None:
        return None
    if expiration < today:
        return EXPIRED
    if expiration <= today + timedelta(days=window_days):
        return UPCOMING
    return None


@dataclass(frozen=True)
class ExpiringEvent:
    event: object
    expiration_date: date
    classification: str


def expiring_events(events: Iterable, catalog: Mapping[str, int], today: date,
                    window_days: int = DEFAULT_WINDOW_DAYS) -> List[ExpiringEvent]:
    """Events that are expired or expiring soon, earliest expiration first."""
    surfaced = []
    for event in events:
        expiration = compute_expiration(event, catalog)
        classification = classify_expiration(expiration, today, window_days)
        if classification is not None:
            surfaced.append(ExpiringEvent(event, expiration, classification))
    return sorted(surfaced, key=lambda item: item.expiration_date)
