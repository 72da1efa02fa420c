from django.contrib import admin
from .models import ConsentDocument


@admin.register(ConsentDocument)
class ConsentDocumentAdmin(admin.ModelAdmin):
    list_display = [
        'title',
        'patient',
        'document_type',
        'status',
        'signing_method',
        'issued_at',
        'signed_at',
        'superseded_at',
    ]
    list_filter = ['document_type', 'status', 'signing_method', 'issued_at']
    search_fields = ['title', 'patient__first_name', 'patient__last_name']
    readonly_fields = [
        'id',
        'issued_at',
        'signed_at',
        'signature_path',
        'supersedes',
        'superseded_at',
        'updated_at',
    ]
