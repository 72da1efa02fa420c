"""
Clinical models: patient, clinical_event, patient_photo, anamnesis_record,
appointment, clinical_audit_log.

Media references (avatar, before/after photos) are stored as stable,
bucket-relative paths. Access URLs are never persisted; they are produced
on read by ``apps.clinical.media``.
"""
import uuid
from django.db import models
from django.conf import settings


# ============================================================================
# Enums
# ============================================================================

class SexChoices(models.TextChoices):
    """Patient sex/gender"""
    FEMALE = 'female', 'Female'
    MALE = 'male', 'Male'
    OTHER = 'other', 'Other'
    UNKNOWN = 'unknown', 'Unknown'


class PatientStatusChoices(models.TextChoices):
    """Relationship status of the patient with the clinic"""
    NEW = 'new', 'New'
    RECURRING = 'recurring', 'Recurring'
    VIP = 'vip', 'VIP'


class ClinicalEventTypeChoices(models.TextChoices):
    """Kinds of entries in the clinical timeline"""
    PROCEDURE = 'procedure', 'Procedure'
    CONSULTATION = 'consultation', 'Consultation'
    DOCUMENT = 'document', 'Document'


class ClinicalEventStatusChoices(models.TextChoices):
    COMPLETED = 'completed', 'Completed'
    SCHEDULED = 'scheduled', 'Scheduled'
    CANCELLED = 'cancelled', 'Cancelled'


class AnamnesisKindChoices(models.TextChoices):
    """Questionnaire families"""
    FACIAL = 'facial', 'Facial'
    BODY = 'body', 'Body'


class AuditActionChoices(models.TextChoices):
    """Clinical audit log action types"""
    CREATE = 'create', 'Create'
    UPDATE = 'update', 'Update'
    DELETE = 'delete', 'Delete'


class AuditEntityTypeChoices(models.TextChoices):
    """Clinical entity types for audit logging"""
    PATIENT = 'Patient', 'Patient'
    CLINICAL_EVENT = 'ClinicalEvent', 'Clinical Event'
    PATIENT_PHOTO = 'PatientPhoto', 'Patient Photo'
    ANAMNESIS_RECORD = 'AnamnesisRecord', 'Anamnesis Record'
    CONSENT_DOCUMENT = 'ConsentDocument', 'Consent Document'


# ============================================================================
# Models
# ============================================================================

class Patient(models.Model):
    """
    Patient records with demographics, contact info and safety data.

    - avatar_path: stable path of the avatar image (never an access URL)
    - declared_allergies: free text typed at intake
    - alert_tags: manual safety tags set by staff
    - user: optional portal account (role ``patient``)
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Name fields
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100, blank=True, default='')

    # Demographics
    birth_date = models.DateField(blank=True, null=True)
    sex = models.CharField(
        max_length=20,
        choices=SexChoices.choices,
        blank=True,
        null=True
    )

    # Contact
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=50, blank=True, null=True)

    # Address
    address_line1 = models.CharField(max_length=255, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    state = models.CharField(max_length=100, blank=True, null=True)
    postal_code = models.CharField(max_length=20, blank=True, null=True)

    status = models.CharField(
        max_length=20,
        choices=PatientStatusChoices.choices,
        default=PatientStatusChoices.NEW
    )

    # Safety
    declared_allergies = models.TextField(blank=True, default='')
    alert_tags = models.JSONField(default=list, blank=True)

    # Media (stable path only)
    avatar_path = models.CharField(max_length=512, blank=True, null=True)

    # Portal account
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='patient_profile'
    )

    # Soft delete
    is_deleted = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(blank=True, null=True)

    # Audit
    created_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='created_patients'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patient'
        verbose_name = 'Patient'
        verbose_name_plural = 'Patients'
        indexes = [
            models.Index(fields=['last_name', 'first_name'], name='idx_patient_name'),
            models.Index(fields=['email'], name='idx_patient_email'),
            models.Index(fields=['is_deleted'], name='idx_patient_deleted'),
        ]

    def __str__(self):
        return self.full_name

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()


class ClinicalEvent(models.Model):
    """
    One entry in a patient's procedure history.

    ``expiration_date`` holds only an explicit, user-entered expiration.
    When it is empty the effective expiration is derived on read from the
    service catalog and is never written back here.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(
        'Patient',
        on_delete=models.CASCADE,
        related_name='clinical_events'
    )
    performed_on = models.DateField()
    title = models.CharField(max_length=255)
    event_type = models.CharField(
        max_length=20,
        choices=ClinicalEventTypeChoices.choices,
        default=ClinicalEventTypeChoices.PROCEDURE
    )
    clinical_notes = models.TextField(blank=True, default='')  # professional-facing
    patient_summary = models.TextField(blank=True, default='')  # patient-facing
    professional_name = models.CharField(max_length=255, blank=True, default='')
    status = models.CharField(
        max_length=20,
        choices=ClinicalEventStatusChoices.choices,
        default=ClinicalEventStatusChoices.COMPLETED
    )
    tags = models.JSONField(default=list, blank=True)
    expiration_date = models.DateField(blank=True, null=True)

    created_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='created_clinical_events'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'clinical_event'
        verbose_name = 'Clinical Event'
        verbose_name_plural = 'Clinical Events'
        ordering = ['-performed_on', '-created_at']
        indexes = [
            models.Index(fields=['patient', 'performed_on'], name='idx_event_patient_date'),
            models.Index(fields=['event_type'], name='idx_event_type'),
        ]

    def __str__(self):
        return f"{self.title} ({self.performed_on})"


class PatientPhoto(models.Model):
    """Before/after photo pair. Both sides are optional stable paths."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(
        'Patient',
        on_delete=models.CASCADE,
        related_name='photos'
    )
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    taken_on = models.DateField()
    before_path = models.CharField(max_length=512, blank=True, null=True)
    after_path = models.CharField(max_length=512, blank=True, null=True)

    created_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='created_patient_photos'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patient_photo'
        verbose_name = 'Patient Photo'
        verbose_name_plural = 'Patient Photos'
        ordering = ['-taken_on', '-created_at']
        indexes = [
            models.Index(fields=['patient', 'taken_on'], name='idx_photo_patient_date'),
        ]

    def __str__(self):
        return f"{self.title} ({self.patient})"


class AnamnesisRecord(models.Model):
    """
    Questionnaire document for one patient, one per kind.

    ``payload`` is the structured questionnaire as submitted; safety tags
    are derived from it on read.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(
        'Patient',
        on_delete=models.CASCADE,
        related_name='anamnesis_records'
    )
    kind = models.CharField(max_length=20, choices=AnamnesisKindChoices.choices)
    payload = models.JSONField(default=dict)

    updated_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='updated_anamnesis_records'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'anamnesis_record'
        verbose_name = 'Anamnesis Record'
        verbose_name_plural = 'Anamnesis Records'
        constraints = [
            models.UniqueConstraint(
                fields=['patient', 'kind'],
                name='uniq_anamnesis_patient_kind'
            ),
        ]

    def __str__(self):
        return f"{self.get_kind_display()} anamnesis - {self.patient}"


class Appointment(models.Model):
    """
    Local mirror of an agenda entry.

    ``external_event_id`` links the row to the event in the external
    calendar when the agenda is synchronized.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(
        'Patient',
        on_delete=models.CASCADE,
        related_name='appointments'
    )
    external_event_id = models.CharField(max_length=255, unique=True, blank=True, null=True)
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    procedure = models.CharField(max_length=255, blank=True, default='')
    description = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'appointment'
        verbose_name = 'Appointment'
        verbose_name_plural = 'Appointments'
        ordering = ['starts_at']
        indexes = [
            models.Index(fields=['patient', 'starts_at'], name='idx_appointment_patient_start'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(ends_at__gt=models.F('starts_at')),
                name='appointment_ends_after_start'
            ),
        ]

    def __str__(self):
        return f"{self.procedure or 'Appointment'} - {self.starts_at:%Y-%m-%d %H:%M}"


class ClinicalAuditLog(models.Model):
    """
    Lightweight audit trail for clinical entity changes.

    Tracks who changed what and when for patients, clinical events,
    photos, questionnaires and consent documents.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)

    actor_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='clinical_audit_logs',
        help_text='User who performed the action (null for system actions)'
    )
    action = models.CharField(max_length=10, choices=AuditActionChoices.choices)
    entity_type = models.CharField(max_length=50, choices=AuditEntityTypeChoices.choices)
    entity_id = models.UUIDField()
    patient = models.ForeignKey(
        'Patient',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='audit_logs'
    )
    metadata = models.JSONField(default=dict)

    class Meta:
        db_table = 'clinical_audit_log'
        verbose_name = 'Clinical Audit Log'
        verbose_name_plural = 'Clinical Audit Logs'
        indexes = [
            models.Index(fields=['created_at'], name='idx_audit_created_at'),
            models.Index(fields=['entity_type', 'entity_id'], name='idx_audit_entity'),
            models.Index(fields=['patient'], name='idx_audit_patient'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        actor = self.actor_user.email if self.actor_user else 'system'
        return f"{self.action} on {self.entity_type}[{str(self.entity_id)[:8]}] by {actor}"


# ============================================================================
# Audit Helper Functions
# ============================================================================

def log_clinical_audit(actor, instance, action, changed_fields=None, patient=None, request=None):
    """
    Create a clinical audit log entry.

    Args:
        actor: User instance or None for system actions
        instance: The clinical entity instance being audited
        action: 'create'|'update'|'delete'
        changed_fields: List of field names that changed (values are never stored)
        patient: Patient instance (inferred from instance when omitted)
        request: Django request object (to capture IP/user-agent)

    Returns:
        ClinicalAuditLog instance
    """
    if patient is None:
        patient = instance if isinstance(instance, Patient) else getattr(instance, 'patient', None)

    metadata = {}
    if changed_fields:
        metadata['changed_fields'] = sorted(changed_fields)
    if request is not None:
        metadata['request'] = {
            'ip': request.META.get('REMOTE_ADDR'),
            'user_agent': request.META.get('HTTP_USER_AGENT', '')[:200],
        }

    return ClinicalAuditLog.objects.create(
        actor_user=actor if actor is not None and actor.is_authenticated else None,
        action=action,
        entity_type=instance.__class__.__name__,
        entity_id=instance.pk,
        patient=patient,
        metadata=metadata
    )
