"""Finance models - income and expense postings."""
from django.db import models
from django.utils.translation import gettext_lazy as _
from django.conf import settings
from decimal import Decimal
import uuid


class PostingDirectionChoices(models.TextChoices):
    INCOME = 'income', _('Income')
    EXPENSE = 'expense', _('Expense')


class PostingStatusChoices(models.TextChoices):
    """
    Settlement status.

    Income postings use received/open, expense postings use paid/unpaid.
    """
    RECEIVED = 'received', _('Received')
    OPEN = 'open', _('Open')
    PAID = 'paid', _('Paid')
    UNPAID = 'unpaid', _('Unpaid')


INCOME_STATUSES = (PostingStatusChoices.RECEIVED, PostingStatusChoices.OPEN)
EXPENSE_STATUSES = (PostingStatusChoices.PAID, PostingStatusChoices.UNPAID)


class PaymentMethodChoices(models.TextChoices):
    CASH = 'cash', _('Cash')
    PIX = 'pix', _('Pix')
    CREDIT_CARD = 'credit_card', _('Credit Card')
    DEBIT_CARD = 'debit_card', _('Debit Card')
    BANK_TRANSFER = 'bank_transfer', _('Bank Transfer')


DEFAULT_CATEGORY = 'Other'


class FinancialPosting(models.Model):
    """
    One income or expense line.

    Postings created together as a monthly series share ``recurrence_group``
    and carry a ``(k/n)`` suffix in the description.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    description = models.CharField(_('Description'), max_length=255)
    patient = models.ForeignKey(
        'clinical.Patient',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='financial_postings',
        verbose_name=_('Patient')
    )
    amount = models.DecimalField(_('Amount'), max_digits=12, decimal_places=2)
    cost = models.DecimalField(
        _('Cost'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text=_('Direct cost of an income posting, used for margin')
    )
    posted_on = models.DateField(_('Posted On'))
    direction = models.CharField(
        _('Direction'),
        max_length=10,
        choices=PostingDirectionChoices.choices
    )
    category = models.CharField(_('Category'), max_length=100, default=DEFAULT_CATEGORY)
    payment_method = models.CharField(
        _('Payment Method'),
        max_length=20,
        choices=PaymentMethodChoices.choices,
        default=PaymentMethodChoices.CASH
    )
    status = models.CharField(
        _('Status'),
        max_length=10,
        choices=PostingStatusChoices.choices
    )
    recurrence_group = models.UUIDField(_('Recurrence Group'), blank=True, null=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='financial_postings'
    )
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'financial_posting'
        ordering = ['-posted_on', '-created_at']
        verbose_name = _('Financial Posting')
        verbose_name_plural = _('Financial Postings')
        indexes = [
            models.Index(fields=['posted_on'], name='idx_posting_date'),
            models.Index(fields=['direction', 'status'], name='idx_posting_dir_status'),
            models.Index(fields=['patient'], name='idx_posting_patient'),
            models.Index(fields=['recurrence_group'], name='idx_posting_recurrence'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name='posting_amount_non_negative'
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(direction='income', status__in=['received', 'open'])
                    | models.Q(direction='expense', status__in=['paid', 'unpaid'])
                ),
                name='posting_status_matches_direction'
            ),
        ]

    def __str__(self):
        sign = '+' if self.direction == PostingDirectionChoices.INCOME else '-'
        return f"{self.posted_on} {sign}{self.amount} {self.description}"

    @property
    def is_settled(self):
        return self.status in (PostingStatusChoices.RECEIVED, PostingStatusChoices.PAID)
