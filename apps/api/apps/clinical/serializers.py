"""
Clinical serializers.

Media handling:
- ``*_path`` fields are the stored stable paths. On write they go through
  ``select_stable_path``: omitted, null or blank keeps the current path, an
  access URL sent back by the client is reduced to its stable path.
- ``*_url`` fields are read-only access URLs, resolved on every
  serialization and never written back.
"""
from datetime import date

from django.conf import settings
from rest_framework import serializers

from apps.authz.permissions import CLINICAL_ROLES, get_user_roles
from apps.clinical.expiration import compute_expiration
from apps.clinical.media import resolve_media_url, select_stable_path
from apps.clinical.models import (
    AnamnesisKindChoices,
    AnamnesisRecord,
    Appointment,
    AuditActionChoices,
    ClinicalEvent,
    Patient,
    PatientPhoto,
    log_clinical_audit,
)
from apps.clinical.normalization import normalize_patient_payload
from apps.stock.serializers import ConsumptionEntrySerializer, ConsumptionLineSerializer


# ============================================================================
# Media fields
# ============================================================================

class MediaAccessURLField(serializers.Field):
    """
    Read-only access URL for a stable path attribute.

    Usage: ``avatar_url = MediaAccessURLField(source='avatar_path')``
    """

    def __init__(self, **kwargs):
        kwargs['read_only'] = True
        super().__init__(**kwargs)

    def to_representation(self, value):
        return resolve_media_url(value)


class StablePathMixin:
    """
    Applies ``select_stable_path`` to ``media_path_fields`` before saving.

    Must precede ``ModelSerializer`` in the bases.
    """
    media_path_fields = ()

    def _select_paths(self, instance, validated_data):
        for field_name in self.media_path_fields:
            if field_name in validated_data:
                current = getattr(instance, field_name) if instance is not None else None
                validated_data[field_name] = select_stable_path(current, validated_data[field_name])

    def create(self, validated_data):
        self._select_paths(None, validated_data)
        return super().create(validated_data)

    def update(self, instance, validated_data):
        self._select_paths(instance, validated_data)
        return super().update(instance, validated_data)


def _request_roles(serializer):
    request = serializer.context.get('request')
    if request is None:
        return set()
    return get_user_roles(request.user)


def _request_user(serializer):
    request = serializer.context.get('request')
    return request.user if request else None


# ============================================================================
# Patient
# ============================================================================

class PatientListSerializer(serializers.ModelSerializer):
    """Serializer for Patient list view (limited fields)"""
    avatar_url = MediaAccessURLField(source='avatar_path')

    class Meta:
        model = Patient
        fields = [
            'id',
            'first_name',
            'last_name',
            'full_name',
            'email',
            'phone',
            'status',
            'avatar_url',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class PatientDetailSerializer(StablePathMixin, serializers.ModelSerializer):
    """
    Serializer for Patient detail/create/update (all fields).

    Legacy payload shapes (``name``, ``zipCode``, ``avatar_url`` ...) are
    normalized before validation.
    """
    media_path_fields = ('avatar_path',)

    avatar_path = serializers.CharField(max_length=512, required=False, allow_null=True, allow_blank=True)
    avatar_url = MediaAccessURLField(source='avatar_path')

    class Meta:
        model = Patient
        fields = [
            'id',
            'first_name',
            'last_name',
            'full_name',
            'birth_date',
            'sex',
            'email',
            'phone',
            'address_line1',
            'city',
            'state',
            'postal_code',
            'status',
            'declared_allergies',
            'alert_tags',
            'avatar_path',
            'avatar_url',
            'user',
            'is_deleted',
            'deleted_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = [
            'id',
            'full_name',
            'is_deleted',
            'deleted_at',
            'created_at',
            'updated_at',
        ]

    def to_internal_value(self, data):
        if hasattr(data, 'items'):
            data = normalize_patient_payload(data)
        return super().to_internal_value(data)

    def validate_birth_date(self, value):
        """Validate birth date is not in the future"""
        if value and value > date.today():
            raise serializers.ValidationError("Birth date cannot be in the future")
        return value

    def validate_alert_tags(self, value):
        if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
            raise serializers.ValidationError("Alert tags must be a list of strings")
        return [tag.strip() for tag in value if tag.strip()]

    def validate_email(self, value):
        """Validate email uniqueness (excluding current instance on update)"""
        if value:
            qs = Patient.objects.filter(email__iexact=value, is_deleted=False)
            if self.instance:
                qs = qs.exclude(pk=self.instance.pk)
            if qs.exists():
                raise serializers.ValidationError("A patient with this email already exists")
        return value

    def create(self, validated_data):
        """Create patient with audit fields"""
        user = _request_user(self)
        validated_data['created_by_user'] = user
        instance = super().create(validated_data)
        log_clinical_audit(user, instance, AuditActionChoices.CREATE, request=self.context.get('request'))
        return instance

    def update(self, instance, validated_data):
        """Update patient and log changed field names"""
        self._select_paths(instance, validated_data)
        changed_fields = [
            field for field, value in validated_data.items()
            if getattr(instance, field) != value
        ]
        instance = serializers.ModelSerializer.update(self, instance, validated_data)
        if changed_fields:
            log_clinical_audit(
                _request_user(self), instance, AuditActionChoices.UPDATE,
                changed_fields=changed_fields, request=self.context.get('request'),
            )
        return instance


# ============================================================================
# Clinical events
# ============================================================================

class ClinicalEventSerializer(serializers.ModelSerializer):
    """
    Read serializer for clinical events.

    ``expiration_date`` is the explicit value only;
    ``effective_expiration_date`` falls back to the service catalog
    (``context['validity_catalog']``). Clinical notes are hidden from
    non-clinical roles.
    """
    effective_expiration_date = serializers.SerializerMethodField()
    consumption_entries = ConsumptionEntrySerializer(many=True, read_only=True)

    class Meta:
        model = ClinicalEvent
        fields = [
            'id',
            'patient',
            'performed_on',
            'title',
            'event_type',
            'clinical_notes',
            'patient_summary',
            'professional_name',
            'status',
            'tags',
            'expiration_date',
            'effective_expiration_date',
            'consumption_entries',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_effective_expiration_date(self, obj):
        catalog = self.context.get('validity_catalog')
        if catalog is None:
            return obj.expiration_date
        return compute_expiration(obj, catalog)

    def to_representation(self, instance):
        """
        BUSINESS RULE: clinical notes only for Admin/Practitioner.
        """
        representation = super().to_representation(instance)
        if not (_request_roles(self) & CLINICAL_ROLES):
            representation.pop('clinical_notes', None)
            representation.pop('consumption_entries', None)
        return representation


class ClinicalEventWriteSerializer(serializers.ModelSerializer):
    """
    Create/update payload.

    ``consumption`` lists supplies used during the event; it is accepted on
    create only.
    """
    patient = serializers.PrimaryKeyRelatedField(queryset=Patient.objects.filter(is_deleted=False))
    consumption = ConsumptionLineSerializer(many=True, required=False, write_only=True)

    class Meta:
        model = ClinicalEvent
        fields = [
            'patient',
            'performed_on',
            'title',
            'event_type',
            'clinical_notes',
            'patient_summary',
            'professional_name',
            'status',
            'tags',
            'expiration_date',
            'consumption',
        ]

    def validate_title(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Title is required")
        return value

    def validate_tags(self, value):
        if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
            raise serializers.ValidationError("Tags must be a list of strings")
        return value

    def validate(self, attrs):
        if self.instance is not None and 'consumption' in attrs:
            raise serializers.ValidationError({
                'consumption': 'Consumption can only be recorded when the event is created'
            })
        if self.instance is not None and attrs.get('patient', self.instance.patient) != self.instance.patient:
            raise serializers.ValidationError({'patient': 'An event cannot move to another patient'})
        expiration = attrs.get('expiration_date')
        performed_on = attrs.get('performed_on') or (self.instance.performed_on if self.instance else None)
        if expiration and performed_on and expiration < performed_on:
            raise serializers.ValidationError({
                'expiration_date': 'Expiration cannot precede the procedure date'
            })
        return attrs


# ============================================================================
# Photos
# ============================================================================

class PatientPhotoSerializer(StablePathMixin, serializers.ModelSerializer):
    """Before/after pair. Paths are kept unless a new stable path is supplied."""
    media_path_fields = ('before_path', 'after_path')

    before_path = serializers.CharField(max_length=512, required=False, allow_null=True, allow_blank=True)
    after_path = serializers.CharField(max_length=512, required=False, allow_null=True, allow_blank=True)
    before_url = MediaAccessURLField(source='before_path')
    after_url = MediaAccessURLField(source='after_path')

    class Meta:
        model = PatientPhoto
        fields = [
            'id',
            'patient',
            'title',
            'description',
            'taken_on',
            'before_path',
            'after_path',
            'before_url',
            'after_url',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'patient', 'created_at', 'updated_at']

    def update(self, instance, validated_data):
        self._select_paths(instance, validated_data)
        changed_fields = [
            field for field, value in validated_data.items()
            if getattr(instance, field) != value
        ]
        instance = serializers.ModelSerializer.update(self, instance, validated_data)
        if changed_fields:
            log_clinical_audit(
                _request_user(self), instance, AuditActionChoices.UPDATE,
                changed_fields=changed_fields, request=self.context.get('request'),
            )
        return instance


class PatientPhotoUploadSerializer(serializers.Serializer):
    """Multipart upload of a before/after pair."""
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    taken_on = serializers.DateField()
    before = serializers.FileField(required=False)
    after = serializers.FileField(required=False)

    def validate(self, attrs):
        if not attrs.get('before') and not attrs.get('after'):
            raise serializers.ValidationError('Upload at least one of before/after')
        for side in ('before', 'after'):
            upload = attrs.get(side)
            if upload and upload.size > settings.MEDIA_MAX_UPLOAD_BYTES:
                raise serializers.ValidationError({side: 'File too large'})
        return attrs


class ImageUploadSerializer(serializers.Serializer):
    """Single image upload (avatar, signature, one photo side)."""
    file = serializers.FileField()

    def validate_file(self, value):
        if value.size > settings.MEDIA_MAX_UPLOAD_BYTES:
            raise serializers.ValidationError('File too large')
        return value


# ============================================================================
# Questionnaires
# ============================================================================

class AnamnesisRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = AnamnesisRecord
        fields = ['id', 'patient', 'kind', 'payload', 'updated_at', 'created_at']
        read_only_fields = ['id', 'patient', 'kind', 'updated_at', 'created_at']


class AnamnesisUpsertSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=AnamnesisKindChoices.choices)
    payload = serializers.JSONField()

    def validate_payload(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError('Payload must be an object')
        return value


# ============================================================================
# Appointments
# ============================================================================

class AppointmentSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source='patient.full_name', read_only=True)

    class Meta:
        model = Appointment
        fields = [
            'id',
            'patient',
            'patient_name',
            'external_event_id',
            'starts_at',
            'ends_at',
            'procedure',
            'description',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'external_event_id', 'created_at', 'updated_at']

    def validate(self, attrs):
        starts_at = attrs.get('starts_at') or (self.instance.starts_at if self.instance else None)
        ends_at = attrs.get('ends_at') or (self.instance.ends_at if self.instance else None)
        if starts_at and ends_at and ends_at <= starts_at:
            raise serializers.ValidationError({'ends_at': 'End must be after start'})
        return attrs


# ============================================================================
# Timeline
# ============================================================================

class TimelineCalendarEventSerializer(serializers.Serializer):
    external_id = serializers.CharField(allow_null=True)
    starts_at = serializers.DateTimeField()
    ends_at = serializers.DateTimeField()
    summary = serializers.CharField(allow_blank=True)
    description = serializers.CharField(allow_blank=True)


class TimelineDocumentSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    document_type = serializers.CharField()
    title = serializers.CharField()
    status = serializers.CharField(source='effective_status')
    issued_at = serializers.DateTimeField()
    signed_at = serializers.DateTimeField(allow_null=True)
    signing_method = serializers.CharField(allow_null=True)
    signature_url = MediaAccessURLField(source='signature_path')


def _event_data(item, visibility):
    event = item.event
    data = {
        'id': str(event.id),
        'performed_on': event.performed_on,
        'title': event.title,
        'event_type': event.event_type,
        'patient_summary': event.patient_summary,
        'professional_name': event.professional_name,
        'status': event.status,
        'tags': event.tags,
        'expiration_date': item.expiration_date,
        'expiration_status': item.expiration_status,
    }
    if visibility.clinical_notes:
        data['clinical_notes'] = event.clinical_notes
    return data


def _posting_data(posting, visibility):
    data = {
        'id': str(posting.id),
        'description': posting.description,
        'amount': str(posting.amount),
        'posted_on': posting.posted_on,
        'direction': posting.direction,
        'category': posting.category,
        'payment_method': posting.payment_method,
        'status': posting.status,
    }
    if visibility.costs:
        data['cost'] = str(posting.cost)
    return data


class PatientTimelineSerializer(serializers.Serializer):
    """
    Renders a ``PatientTimeline``. Access URLs are resolved here, once per
    serialization, and never stored on the timeline.
    """

    def to_representation(self, timeline):
        visibility = timeline.visibility
        patient_data = PatientDetailSerializer(timeline.patient, context=self.context).data

        data = {
            'patient': patient_data,
            'safety_tags': timeline.safety_tags,
            'allergies': timeline.allergies,
            'events': [_event_data(item, visibility) for item in timeline.events],
            'expiring': [
                {
                    'event_id': str(item.event.id),
                    'title': item.event.title,
                    'expiration_date': item.expiration_date,
                    'classification': item.classification,
                }
                for item in timeline.expiring
            ],
            'documents': TimelineDocumentSerializer(timeline.documents, many=True).data,
            'photos': PatientPhotoSerializer(timeline.photos, many=True, context=self.context).data,
            'appointments': TimelineCalendarEventSerializer(timeline.appointments, many=True).data,
            'calendar_available': timeline.calendar_available,
            'generated_at': timeline.generated_at,
        }

        if visibility.financials:
            summary = dict(timeline.financial_summary)
            if not visibility.costs:
                summary.pop('margin', None)
            data['postings'] = [_posting_data(posting, visibility) for posting in timeline.postings]
            data['financial_summary'] = {key: str(value) for key, value in summary.items()}

        return data
