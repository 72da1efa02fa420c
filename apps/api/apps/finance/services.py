"""
Finance services - posting creation and summaries.

Recurring expenses are expanded into one posting per calendar month.
Month k is always computed from the original start date
(``start + relativedelta(months=k)``), never from the previous
occurrence, so a 31st start keeps landing on the 31st whenever the
month has one.
"""
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.db import transaction

from apps.core.errors import DomainError
from apps.core.observability import metrics
from apps.core.observability.events import log_postings_created

from .models import (
    DEFAULT_CATEGORY,
    FinancialPosting,
    PaymentMethodChoices,
    PostingDirectionChoices,
    PostingStatusChoices,
)

MAX_OCCURRENCES = 120


@dataclass
class PostingTemplate:
    """Values entered once and copied to every generated posting."""
    description: str
    amount: Decimal
    direction: str
    cost: Decimal = Decimal('0.00')
    category: str = DEFAULT_CATEGORY
    payment_method: str = PaymentMethodChoices.CASH
    is_paid: bool = True
    patient: Optional[object] = None


def resolve_status(direction: str, is_paid: bool, recurring: bool) -> str:
    """
    Status of a new posting.

    Income: received when paid, open otherwise.
    Expense: unpaid for every occurrence of a recurring series; a single
    expense honors ``is_paid``.
    """
    if direction == PostingDirectionChoices.INCOME:
        return PostingStatusChoices.RECEIVED if is_paid else PostingStatusChoices.OPEN
    if recurring:
        return PostingStatusChoices.UNPAID
    return PostingStatusChoices.PAID if is_paid else PostingStatusChoices.UNPAID


def occurrence_dates(start_date: date, occurrences: int) -> List[date]:
    return [start_date + relativedelta(months=k) for k in range(occurrences)]


def expand(template: PostingTemplate, start_date: date, occurrences: int,
           recurring: Optional[bool] = None) -> List[FinancialPosting]:
    """
    Expand ``template`` into ``occurrences`` monthly postings (unsaved).

    Args:
        template: PostingTemplate
        start_date: Date of the first occurrence
        occurrences: Number of postings to produce (>= 1)
        recurring: Whether the postings form a recurring series; defaults
            to ``occurrences > 1``

    Returns:
        List of unsaved FinancialPosting. With more than one occurrence every
        description ends with `` (k/n)`` and all postings share a new
        recurrence group.

    Raises:
        DomainError: occurrences outside 1..MAX_OCCURRENCES
    """
    if occurrences < 1 or occurrences > MAX_OCCURRENCES:
        raise DomainError(
            f"Occurrences must be between 1 and {MAX_OCCURRENCES} (got {occurrences})",
            code='invalid_occurrences',
        )

    if recurring is None:
        recurring = occurrences > 1

    status = resolve_status(template.direction, template.is_paid, recurring)
    group = uuid.uuid4() if occurrences > 1 else None

    postings = []
    for k, posted_on in enumerate(occurrence_dates(start_date, occurrences), start=1):
        suffix = f" ({k}/{occurrences})" if occurrences > 1 else ''
        postings.append(FinancialPosting(
            description=f"{template.description}{suffix}",
            patient=template.patient,
            amount=template.amount,
            cost=template.cost or Decimal('0.00'),
            posted_on=posted_on,
            direction=template.direction,
            category=template.category or DEFAULT_CATEGORY,
            payment_method=template.payment_method or PaymentMethodChoices.CASH,
            status=status,
            recurrence_group=group,
        ))
    return postings


@transaction.atomic
def record_financial_entry(template: PostingTemplate, start_date: date,
                           recurring: bool = False, occurrences: Optional[int] = None,
                           created_by=None) -> List[FinancialPosting]:
    """
    Persist a posting, or a monthly series of expense postings.

    Args:
        template: PostingTemplate
        start_date: Date of the (first) posting
        recurring: Expand into a monthly series (expenses only)
        occurrences: Series length; FINANCE_DEFAULT_RECURRENCE_MONTHS when omitted
        created_by: User recording the entry

    Returns:
        Saved postings in date order

    Raises:
        DomainError: recurrence requested for income, or invalid occurrences
    """
    if recurring and template.direction != PostingDirectionChoices.EXPENSE:
        raise DomainError(
            'Only expenses can be recorded as recurring',
            code='recurrence_not_allowed',
        )

    if recurring:
        count = occurrences if occurrences is not None else settings.FINANCE_DEFAULT_RECURRENCE_MONTHS
    else:
        count = 1

    postings = expand(template, start_date, count, recurring=recurring)
    for posting in postings:
        posting.created_by = created_by
    FinancialPosting.objects.bulk_create(postings)

    metrics.finance_postings_created_total.labels(
        direction=template.direction,
        recurring=str(recurring).lower(),
    ).inc(len(postings))
    log_postings_created(postings, recurring)

    return postings


def posting_margin(posting: FinancialPosting) -> Decimal:
    """Amount minus cost for income; zero for expenses."""
    if posting.direction != PostingDirectionChoices.INCOME:
        return Decimal('0.00')
    return posting.amount - (posting.cost or Decimal('0.00'))


def financial_summary(postings: Iterable[FinancialPosting]) -> Dict[str, Decimal]:
    """
    Totals over ``postings``.

    Returns:
        {'income', 'expense', 'balance', 'margin', 'receivable', 'payable'}
        where receivable/payable are the open income and unpaid expense totals.
    """
    income = expense = margin = receivable = payable = Decimal('0.00')
    for posting in postings:
        if posting.direction == PostingDirectionChoices.INCOME:
            income += posting.amount
            margin += posting_margin(posting)
            if posting.status == PostingStatusChoices.OPEN:
                receivable += posting.amount
        else:
            expense += posting.amount
            if posting.status == PostingStatusChoices.UNPAID:
                payable += posting.amount

    return {
        'income': income,
        'expense': expense,
        'balance': income - expense,
        'margin': margin,
        'receivable': receivable,
        'payable': payable,
    }
