"""Finance serializers."""
from decimal import Decimal

from django.conf import settings
from rest_framework import serializers

from apps.clinical.models import Patient

from .models import (
    DEFAULT_CATEGORY,
    EXPENSE_STATUSES,
    INCOME_STATUSES,
    FinancialPosting,
    PaymentMethodChoices,
    PostingDirectionChoices,
)
from .services import MAX_OCCURRENCES, posting_margin


class FinancialPostingSerializer(serializers.ModelSerializer):
    """Read/update serializer for a single posting."""

    patient_name = serializers.CharField(source='patient.full_name', read_only=True, default=None)
    margin = serializers.SerializerMethodField()

    class Meta:
        model = FinancialPosting
        fields = [
            'id', 'description', 'patient', 'patient_name', 'amount', 'cost', 'margin',
            'posted_on', 'direction', 'category', 'payment_method', 'status',
            'recurrence_group', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'direction', 'recurrence_group', 'created_at', 'updated_at']

    def get_margin(self, obj):
        return str(posting_margin(obj))

    def validate(self, attrs):
        direction = self.instance.direction if self.instance else attrs.get('direction')
        status = attrs.get('status')
        if status:
            allowed = INCOME_STATUSES if direction == PostingDirectionChoices.INCOME else EXPENSE_STATUSES
            if status not in allowed:
                raise serializers.ValidationError({
                    'status': f'Status "{status}" is not valid for {direction} postings'
                })
        return attrs


class FinancialEntryCreateSerializer(serializers.Serializer):
    """
    Create shape: one posting, or a recurring expense series.

    ``is_paid`` maps to received/open (income) or paid/unpaid (expense);
    every occurrence of a recurring series starts unpaid.
    """
    description = serializers.CharField(max_length=200)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'))
    cost = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False, default=Decimal('0.00')
    )
    posted_on = serializers.DateField()
    direction = serializers.ChoiceField(choices=PostingDirectionChoices.choices)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True, default=DEFAULT_CATEGORY)
    payment_method = serializers.ChoiceField(
        choices=PaymentMethodChoices.choices, required=False, default=PaymentMethodChoices.CASH
    )
    is_paid = serializers.BooleanField(required=False, default=True)
    patient = serializers.PrimaryKeyRelatedField(
        queryset=Patient.objects.filter(is_deleted=False), required=False, allow_null=True
    )
    recurring = serializers.BooleanField(required=False, default=False)
    occurrences = serializers.IntegerField(
        required=False, min_value=1, max_value=MAX_OCCURRENCES
    )

    def validate(self, attrs):
        if attrs.get('recurring') and attrs['direction'] != PostingDirectionChoices.EXPENSE:
            raise serializers.ValidationError({
                'recurring': 'Only expenses can be recorded as recurring'
            })
        if attrs.get('recurring') and 'occurrences' not in attrs:
            attrs['occurrences'] = settings.FINANCE_DEFAULT_RECURRENCE_MONTHS
        return attrs
