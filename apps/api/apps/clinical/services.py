"""
Clinical services.

Write-side use cases that touch more than one table:
- recording a clinical event together with the supplies it consumed
- questionnaire upserts
- patient media uploads (avatar, before/after photos)

Single-table writes (patient demographics, event edits from the form)
go through the serializers.
"""
import logging
from typing import Dict, Iterable, List, Optional

from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.clinical.image_utils import InvalidImageError, to_jpeg_bytes
from apps.clinical.media import store_media
from apps.clinical.models import (
    AnamnesisRecord,
    AuditActionChoices,
    ClinicalEvent,
    Patient,
    PatientPhoto,
    log_clinical_audit,
)
from apps.clinical.utils_storage import delete_object
from apps.core.errors import AssetResolutionFailed, DomainError
from apps.core.observability import log_consistency_checkpoint, log_domain_event
from apps.stock.services import ConsumptionLine, authorize_all, commit, link_entries_to_event

logger = logging.getLogger(__name__)

AVATAR_PREFIX = 'avatars'
PHOTO_PREFIX = 'photos'

CLINICAL_EVENT_FIELDS = (
    'performed_on', 'title', 'event_type', 'clinical_notes', 'patient_summary',
    'professional_name', 'status', 'tags', 'expiration_date',
)


def _jpeg(data: bytes) -> bytes:
    try:
        return to_jpeg_bytes(data)
    except InvalidImageError as exc:
        raise DomainError(str(exc), code='invalid_image')


def _jpeg_filename(filename: str) -> str:
    stem = (filename or 'image').rsplit('.', 1)[0]
    return f"{stem}.jpg"


# ============================================================================
# Clinical events
# ============================================================================

def record_clinical_event(
    patient: Patient,
    data: Dict,
    consumption: Optional[Iterable[ConsumptionLine]] = None,
    user=None,
    request=None,
) -> ClinicalEvent:
    """
    Record a clinical event and the supplies consumed during it.

    Order of operations:
    1. Authorize every consumption line against the current stock
    2. Commit the stock debits
    3. Save the event and link the consumption entries to it

    Everything runs in one transaction: a failure after the debits rolls
    them back. A consistency checkpoint is logged on success and on failure.

    Args:
        patient: Patient the event belongs to
        data: Event fields (see CLINICAL_EVENT_FIELDS)
        consumption: ConsumptionLine objects, may be empty
        user: User recording the event
        request: Django request (audit metadata)

    Returns:
        Saved ClinicalEvent

    Raises:
        InsufficientStock: a line was rejected at authorization or commit
    """
    lines: List[ConsumptionLine] = list(consumption or [])
    entity_ids = {'patient_id': str(patient.pk)}
    progress = {'authorized': False, 'debits_committed': False, 'event_saved': False}

    try:
        with transaction.atomic():
            authorize_all(lines)
            progress['authorized'] = True

            entries = commit(lines, created_by=user)
            progress['debits_committed'] = True

            event = ClinicalEvent.objects.create(
                patient=patient,
                created_by_user=user,
                **{key: value for key, value in data.items() if key in CLINICAL_EVENT_FIELDS}
            )
            progress['event_saved'] = True

            linked = link_entries_to_event(entries, event)

            log_clinical_audit(user, event, AuditActionChoices.CREATE, patient=patient, request=request)
    except (DomainError, DatabaseError) as exc:
        log_consistency_checkpoint(
            'clinical_event_consumption',
            entity_ids=entity_ids,
            checks_passed=dict(progress, rolled_back=True, completed=False),
            error_type=type(exc).__name__,
            lines=len(lines),
        )
        raise

    log_consistency_checkpoint(
        'clinical_event_consumption',
        entity_ids=dict(entity_ids, clinical_event_id=str(event.pk)),
        checks_passed=dict(progress, entries_linked=linked == len(entries)),
        lines=len(lines),
    )
    log_domain_event(
        'clinical_event_recorded',
        entity_type='ClinicalEvent',
        entity_id=str(event.pk),
        entity_ids=entity_ids,
        event_type=event.event_type,
        consumption_lines=len(lines),
    )
    return event


@transaction.atomic
def update_clinical_event(event: ClinicalEvent, data: Dict, user=None, request=None) -> ClinicalEvent:
    """
    Apply form edits to an event. Consumption is not edited here.

    An empty ``expiration_date`` clears the explicit expiration so the
    catalog-derived one applies again.
    """
    changed_fields = []
    for field in CLINICAL_EVENT_FIELDS:
        if field in data and getattr(event, field) != data[field]:
            setattr(event, field, data[field])
            changed_fields.append(field)

    if changed_fields:
        event.save(update_fields=changed_fields + ['updated_at'])
        log_clinical_audit(
            user, event, AuditActionChoices.UPDATE,
            changed_fields=changed_fields, request=request,
        )
    return event


@transaction.atomic
def delete_clinical_event(event: ClinicalEvent, user=None, request=None) -> None:
    """
    Delete an event.

    Consumption entries stay in the ledger (unlinked) and the consumed
    stock is not returned; restocking is a separate manual action.
    """
    kept_entries = event.consumption_entries.count()
    event_id = str(event.pk)
    patient = event.patient

    log_clinical_audit(user, event, AuditActionChoices.DELETE, patient=patient, request=request)
    event.delete()

    log_domain_event(
        'clinical_event_deleted',
        entity_type='ClinicalEvent',
        entity_id=event_id,
        entity_ids={'patient_id': str(patient.pk)},
        consumption_entries_kept=kept_entries,
    )


# ============================================================================
# Questionnaires
# ============================================================================

@transaction.atomic
def upsert_anamnesis(patient: Patient, kind: str, payload: Dict, user=None, request=None) -> AnamnesisRecord:
    """Create or replace the questionnaire of ``kind`` for ``patient``."""
    record, created = AnamnesisRecord.objects.select_for_update().get_or_create(
        patient=patient,
        kind=kind,
        defaults={'payload': payload, 'updated_by_user': user},
    )
    if not created:
        record.payload = payload
        record.updated_by_user = user
        record.save(update_fields=['payload', 'updated_by_user', 'updated_at'])

    log_clinical_audit(
        user, record,
        AuditActionChoices.CREATE if created else AuditActionChoices.UPDATE,
        changed_fields=None if created else ['payload'],
        request=request,
    )
    return record


# ============================================================================
# Patient media
# ============================================================================

def _remove_objects(paths: Iterable[Optional[str]], bucket: str) -> None:
    for path in paths:
        if not path:
            continue
        try:
            delete_object(bucket, path)
        except AssetResolutionFailed as exc:
            logger.warning(
                'Could not delete media object, leaving it orphaned',
                extra={'event': 'media_delete_failed', 'object_key': path, 'error': exc.message_text}
            )


def set_patient_avatar(patient: Patient, data: bytes, filename: str, user=None, request=None) -> Patient:
    """
    Upload a new avatar and point the patient at it.

    The previous object is kept in the bucket; only the stable path changes.
    """
    stable_path = store_media(AVATAR_PREFIX, _jpeg_filename(filename), _jpeg(data), 'image/jpeg')

    patient.avatar_path = stable_path
    patient.save(update_fields=['avatar_path', 'updated_at'])
    log_clinical_audit(user, patient, AuditActionChoices.UPDATE, changed_fields=['avatar_path'], request=request)
    return patient


def clear_patient_avatar(patient: Patient, user=None, request=None) -> Patient:
    """Explicitly remove the avatar reference."""
    if patient.avatar_path:
        patient.avatar_path = None
        patient.save(update_fields=['avatar_path', 'updated_at'])
        log_clinical_audit(user, patient, AuditActionChoices.UPDATE, changed_fields=['avatar_path'], request=request)
    return patient


def add_patient_photo(
    patient: Patient,
    title: str,
    taken_on,
    description: str = '',
    before: Optional[tuple] = None,
    after: Optional[tuple] = None,
    user=None,
    request=None,
) -> PatientPhoto:
    """
    Store a before/after pair.

    Args:
        before, after: ``(bytes, filename)`` tuples; either side may be omitted

    Raises:
        DomainError: neither side supplied, or an upload is not an image
        AssetResolutionFailed: asset store rejected an upload
    """
    if not before and not after:
        raise DomainError('At least one of the before/after images is required.', code='image_required')

    paths = {}
    for side, upload in (('before_path', before), ('after_path', after)):
        if upload:
            data, filename = upload
            paths[side] = store_media(PHOTO_PREFIX, _jpeg_filename(filename), _jpeg(data), 'image/jpeg')

    photo = PatientPhoto.objects.create(
        patient=patient,
        title=title,
        description=description,
        taken_on=taken_on,
        created_by_user=user,
        **paths
    )
    log_clinical_audit(user, photo, AuditActionChoices.CREATE, request=request)
    return photo


def replace_photo_image(photo: PatientPhoto, side: str, data: bytes, filename: str,
                        user=None, request=None) -> PatientPhoto:
    """Upload a new image for one side (``before`` or ``after``) of a photo pair."""
    if side not in ('before', 'after'):
        raise DomainError(f"Unknown photo side '{side}'", code='invalid_side')

    field = f'{side}_path'
    setattr(photo, field, store_media(PHOTO_PREFIX, _jpeg_filename(filename), _jpeg(data), 'image/jpeg'))
    photo.save(update_fields=[field, 'updated_at'])
    log_clinical_audit(user, photo, AuditActionChoices.UPDATE, changed_fields=[field], request=request)
    return photo


def delete_patient_photo(photo: PatientPhoto, bucket: str, user=None, request=None) -> None:
    """Delete the photo pair and its objects."""
    paths = [photo.before_path, photo.after_path]
    with transaction.atomic():
        log_clinical_audit(user, photo, AuditActionChoices.DELETE, request=request)
        photo.delete()
    _remove_objects(paths, bucket)


@transaction.atomic
def soft_delete_patient(patient: Patient, user=None, request=None) -> Patient:
    patient.is_deleted = True
    patient.deleted_at = timezone.now()
    patient.save(update_fields=['is_deleted', 'deleted_at', 'updated_at'])
    log_clinical_audit(
        user, patient, AuditActionChoices.DELETE,
        changed_fields=['is_deleted', 'deleted_at'], request=request,
    )
    return patient
