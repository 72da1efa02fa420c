"""Finance admin."""
from django.contrib import admin
from .models import FinancialPosting


@admin.register(FinancialPosting)
class FinancialPostingAdmin(admin.ModelAdmin):
    list_display = [
        'posted_on', 'description', 'direction', 'amount', 'status',
        'payment_method', 'patient', 'recurrence_group'
    ]
    list_filter = ['direction', 'status', 'payment_method', 'category']
    search_fields = ['description', 'patient__first_name', 'patient__last_name']
    raw_id_fields = ['patient']
    readonly_fields = ['recurrence_group', 'created_by', 'created_at', 'updated_at']
    date_hierarchy = 'posted_on'
    ordering = ['-posted_on']
