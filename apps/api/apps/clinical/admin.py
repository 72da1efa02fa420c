from django.contrib import admin
from .models import (
    AnamnesisRecord, Appointment, ClinicalAuditLog, ClinicalEvent, Patient, PatientPhoto
)


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ['first_name', 'last_name', 'email', 'phone', 'status', 'is_deleted', 'created_at']
    list_filter = ['sex', 'status', 'is_deleted']
    search_fields = ['first_name', 'last_name', 'email', 'phone']
    readonly_fields = ['id', 'created_at', 'updated_at', 'deleted_at']

    fieldsets = (
        ('Basic Info', {
            'fields': ('id', 'first_name', 'last_name', 'birth_date', 'sex', 'status')
        }),
        ('Contact', {
            'fields': ('email', 'phone')
        }),
        ('Address', {
            'fields': ('address_line1', 'city', 'state', 'postal_code')
        }),
        ('Safety', {
            'fields': ('declared_allergies', 'alert_tags')
        }),
        ('Media', {
            'fields': ('avatar_path',)
        }),
        ('Account', {
            'fields': ('user', 'created_by_user')
        }),
        ('Status', {
            'fields': ('is_deleted', 'deleted_at', 'created_at', 'updated_at')
        }),
    )


@admin.register(ClinicalEvent)
class ClinicalEventAdmin(admin.ModelAdmin):
    list_display = ['title', 'patient', 'event_type', 'performed_on', 'expiration_date', 'status']
    list_filter = ['event_type', 'status', 'performed_on']
    search_fields = ['title', 'patient__first_name', 'patient__last_name', 'professional_name']
    readonly_fields = ['id', 'created_at', 'updated_at']
    date_hierarchy = 'performed_on'


@admin.register(PatientPhoto)
class PatientPhotoAdmin(admin.ModelAdmin):
    list_display = ['title', 'patient', 'taken_on', 'created_at']
    search_fields = ['title', 'patient__first_name', 'patient__last_name']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(AnamnesisRecord)
class AnamnesisRecordAdmin(admin.ModelAdmin):
    list_display = ['patient', 'kind', 'updated_at']
    list_filter = ['kind']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ['patient', 'procedure', 'starts_at', 'ends_at', 'external_event_id']
    search_fields = ['procedure', 'external_event_id', 'patient__first_name', 'patient__last_name']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(ClinicalAuditLog)
class ClinicalAuditLogAdmin(admin.ModelAdmin):
    """Read-only view of the clinical audit trail"""
    list_display = ['created_at', 'action', 'entity_type', 'entity_id', 'actor_user', 'patient']
    list_filter = ['action', 'entity_type']
    readonly_fields = [field.name for field in ClinicalAuditLog._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
