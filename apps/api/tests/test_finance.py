"""
Tests for financial postings.

Endpoints tested:
- POST /api/v1/finance/postings/
- GET  /api/v1/finance/postings/ and /summary/

Business Rules:
- Recurring expenses expand into one posting per month from the start date
- Month k is start + k months, clamped to the month end (31st -> 29th Feb -> 31st Mar)
- Every posting of a series ends with " (k/n)" and shares a recurrence group
- Each occurrence of a recurring series starts unpaid
- Income can not be recurring
- Status: income received/open, expense paid/unpaid
"""
from datetime import date
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from apps.core.errors import DomainError
from apps.finance.models import FinancialPosting
from apps.finance.services import (
    MAX_OCCURRENCES,
    PostingTemplate,
    expand,
    financial_summary,
    posting_margin,
    record_financial_entry,
    resolve_status,
)


def rent(**overrides):
    values = dict(description='Rent', amount=Decimal('3000.00'), direction='expense', category='Rent')
    values.update(overrides)
    return PostingTemplate(**values)


def botox_sale(**overrides):
    values = dict(
        description='Botox session', amount=Decimal('1200.00'), cost=Decimal('450.00'),
        direction='income', category='Procedures', payment_method='pix',
    )
    values.update(overrides)
    return PostingTemplate(**values)


# ============================================================================
# Expansion
# ============================================================================

class TestExpand:

    def test_month_end_start_clamps_each_month(self):
        postings = expand(rent(), date(2024, 1, 31), 3)

        assert [p.posted_on for p in postings] == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]

    def test_descriptions_are_numbered(self):
        postings = expand(rent(), date(2024, 1, 31), 3)
        assert [p.description for p in postings] == ['Rent (1/3)', 'Rent (2/3)', 'Rent (3/3)']

    def test_series_shares_one_group(self):
        postings = expand(rent(), date(2024, 1, 31), 3)
        groups = {p.recurrence_group for p in postings}
        assert len(groups) == 1
        assert None not in groups

    def test_recurring_occurrences_start_unpaid(self):
        postings = expand(rent(is_paid=True), date(2024, 1, 31), 3)
        assert {p.status for p in postings} == {'unpaid'}

    def test_single_posting_has_no_suffix_or_group(self):
        [posting] = expand(rent(), date(2024, 1, 31), 1)
        assert posting.description == 'Rent'
        assert posting.recurrence_group is None
        assert posting.status == 'paid'

    def test_year_wraps(self):
        postings = expand(rent(), date(2024, 11, 30), 4)
        assert [p.posted_on for p in postings][-1] == date(2025, 2, 28)

    @pytest.mark.parametrize('occurrences', [0, MAX_OCCURRENCES + 1])
    def test_occurrence_bounds(self, occurrences):
        with pytest.raises(DomainError) as exc_info:
            expand(rent(), date(2024, 1, 1), occurrences)
        assert exc_info.value.code == 'invalid_occurrences'


class TestStatusAndMargin:

    @pytest.mark.parametrize('direction, is_paid, recurring, expected', [
        ('income', True, False, 'received'),
        ('income', False, False, 'open'),
        ('expense', True, False, 'paid'),
        ('expense', False, False, 'unpaid'),
        ('expense', True, True, 'unpaid'),
    ])
    def test_resolve_status(self, direction, is_paid, recurring, expected):
        assert resolve_status(direction, is_paid, recurring) == expected

    def test_margin_is_amount_minus_cost_for_income(self):
        [sale] = expand(botox_sale(), date(2024, 3, 1), 1)
        assert posting_margin(sale) == Decimal('750.00')

    def test_expense_has_no_margin(self):
        [expense] = expand(rent(cost=Decimal('10.00')), date(2024, 3, 1), 1)
        assert posting_margin(expense) == Decimal('0.00')

    def test_summary(self):
        postings = (
            expand(botox_sale(), date(2024, 3, 1), 1)
            + expand(botox_sale(is_paid=False, cost=Decimal('0')), date(2024, 3, 2), 1)
            + expand(rent(), date(2024, 3, 5), 2)
        )

        totals = financial_summary(postings)

        assert totals == {
            'income': Decimal('2400.00'),
            'expense': Decimal('6000.00'),
            'balance': Decimal('-3600.00'),
            'margin': Decimal('1950.00'),
            'receivable': Decimal('1200.00'),
            'payable': Decimal('6000.00'),
        }


# ============================================================================
# Persistence
# ============================================================================

@pytest.mark.django_db
class TestRecordFinancialEntry:

    def test_recurring_expense_saved(self, admin_user):
        postings = record_financial_entry(rent(), date(2024, 1, 31), recurring=True, occurrences=3, created_by=admin_user)

        assert FinancialPosting.objects.count() == 3
        saved = list(FinancialPosting.objects.order_by('posted_on'))
        assert [p.description for p in saved] == ['Rent (1/3)', 'Rent (2/3)', 'Rent (3/3)']
        assert {p.created_by for p in saved} == {admin_user}
        assert len(postings) == 3

    def test_default_series_length(self, settings):
        settings.FINANCE_DEFAULT_RECURRENCE_MONTHS = 6
        postings = record_financial_entry(rent(), date(2024, 1, 15), recurring=True)
        assert len(postings) == 6
        assert postings[-1].description == 'Rent (6/6)'

    def test_recurring_income_rejected(self):
        with pytest.raises(DomainError) as exc_info:
            record_financial_entry(botox_sale(), date(2024, 1, 31), recurring=True, occurrences=3)

        assert exc_info.value.code == 'recurrence_not_allowed'
        assert not FinancialPosting.objects.exists()

    def test_single_income_linked_to_patient(self, patient):
        [posting] = record_financial_entry(botox_sale(patient=patient, is_paid=False), date(2024, 2, 1))

        posting.refresh_from_db()
        assert posting.patient == patient
        assert posting.status == 'open'

    def test_database_rejects_status_of_other_direction(self):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                FinancialPosting.objects.create(
                    description='Botox session',
                    amount=Decimal('1200.00'),
                    posted_on=date(2024, 2, 1),
                    direction='income',
                    status='paid',
                )

        assert not FinancialPosting.objects.exists()


# ============================================================================
# API
# ============================================================================

@pytest.mark.django_db
class TestFinanceApi:

    def test_create_recurring_expense_returns_series(self, accounting_client):
        response = accounting_client.post('/api/v1/finance/postings/', {
            'description': 'Rent',
            'amount': '3000.00',
            'posted_on': '2024-01-31',
            'direction': 'expense',
            'recurring': True,
            'occurrences': 3,
        }, format='json')

        assert response.status_code == 201
        assert [p['posted_on'] for p in response.data] == ['2024-01-31', '2024-02-29', '2024-03-31']
        assert [p['status'] for p in response.data] == ['unpaid'] * 3
        assert response.data[0]['description'] == 'Rent (1/3)'

    def test_recurring_income_is_bad_request(self, accounting_client):
        response = accounting_client.post('/api/v1/finance/postings/', {
            'description': 'Package',
            'amount': '900.00',
            'posted_on': '2024-01-31',
            'direction': 'income',
            'recurring': True,
        }, format='json')

        assert response.status_code == 400
        assert 'recurring' in response.data
        assert not FinancialPosting.objects.exists()

    def test_reception_takes_payment(self, reception_client, patient):
        response = reception_client.post('/api/v1/finance/postings/', {
            'description': 'Botox session',
            'amount': '1200.00',
            'cost': '450.00',
            'posted_on': '2024-03-01',
            'direction': 'income',
            'payment_method': 'credit_card',
            'patient': str(patient.id),
        }, format='json')

        assert response.status_code == 201
        [posting] = response.data
        assert posting['status'] == 'received'
        assert posting['margin'] == '750.00'
        assert posting['patient_name'] == 'John Doe'

    def test_status_must_match_direction(self, accounting_client):
        [posting] = record_financial_entry(rent(), date(2024, 3, 1))

        response = accounting_client.patch(
            f'/api/v1/finance/postings/{posting.id}/', {'status': 'received'}, format='json'
        )

        assert response.status_code == 400
        assert 'status' in response.data

    def test_summary_honours_filters(self, accounting_client):
        record_financial_entry(botox_sale(), date(2024, 3, 1))
        record_financial_entry(rent(), date(2024, 1, 31), recurring=True, occurrences=3)

        response = accounting_client.get('/api/v1/finance/postings/summary/?date_from=2024-03-01')

        assert response.status_code == 200
        assert response.data['income'] == '1200.00'
        assert response.data['expense'] == '3000.00'
        assert response.data['payable'] == '3000.00'

    def test_filter_by_recurrence_group(self, accounting_client):
        postings = record_financial_entry(rent(), date(2024, 1, 31), recurring=True, occurrences=3)
        record_financial_entry(botox_sale(), date(2024, 3, 1))

        response = accounting_client.get(
            f'/api/v1/finance/postings/?recurrence_group={postings[0].recurrence_group}'
        )

        assert response.data['count'] == 3


@pytest.mark.django_db
class TestFinancePermissions:

    def test_practitioner_denied(self, practitioner_client):
        assert practitioner_client.get('/api/v1/finance/postings/').status_code == 403

    def test_marketing_denied(self, marketing_client):
        assert marketing_client.get('/api/v1/finance/postings/summary/').status_code == 403

    def test_reception_cannot_delete(self, reception_client):
        [posting] = record_financial_entry(rent(), date(2024, 3, 1))
        response = reception_client.delete(f'/api/v1/finance/postings/{posting.id}/')
        assert response.status_code == 403
