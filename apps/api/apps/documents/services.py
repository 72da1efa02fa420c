"""
Consent document services.

State machine:

    request_signature / reissue -> pending
    pending --sign / mark_signed_via_print--> signed

``superseded`` is derived: reissue stamps ``superseded_at`` on the current
instance and links the new one through ``supersedes``. Every check runs
against the database inside the transaction that writes, never against
an instance the caller loaded earlier.
"""
import logging
from typing import List, Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.clinical.image_utils import InvalidImageError, to_png_bytes
from apps.clinical.media import select_stable_path, store_media
from apps.clinical.models import (
    AuditActionChoices,
    ClinicalEvent,
    ClinicalEventTypeChoices,
    log_clinical_audit,
)
from apps.core.errors import DomainError, DuplicateRequest, InvalidTransition
from apps.core.observability import metrics, log_consistency_checkpoint
from apps.core.observability.events import log_document_transition

from .models import (
    ConsentDocument,
    ConsentDocumentStatusChoices,
    ConsentDocumentTypeChoices,
    SigningMethodChoices,
)

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = 'signatures'
SIGNED_EVENT_PROFESSIONAL = 'System'
SIGNED_EVENT_TAGS = ['document']


def default_title(document_type: str) -> str:
    return f"Consent form - {ConsentDocumentTypeChoices(document_type).label}"


def current_document(patient, document_type) -> Optional[ConsentDocument]:
    """Most recent non-superseded instance of ``document_type`` for ``patient``."""
    return (
        ConsentDocument.objects.for_type(patient, document_type)
        .current()
        .order_by('-issued_at')
        .first()
    )


def current_documents(patient) -> List[ConsentDocument]:
    """One current instance per document type, ordered by type."""
    latest = {}
    for document in ConsentDocument.objects.filter(patient=patient).current().order_by('-issued_at'):
        latest.setdefault(document.document_type, document)
    return [latest[key] for key in sorted(latest)]


def document_history(patient, document_type) -> List[ConsentDocument]:
    """Every instance ever issued for the type, newest first."""
    return list(
        ConsentDocument.objects.for_type(patient, document_type).order_by('-issued_at')
    )


def _locked_current(patient, document_type) -> Optional[ConsentDocument]:
    return (
        ConsentDocument.objects.select_for_update()
        .for_type(patient, document_type)
        .current()
        .order_by('-issued_at')
        .first()
    )


def _record_outcome(operation, result):
    metrics.consent_documents_transition_total.labels(operation=operation, result=result).inc()


@transaction.atomic
def request_signature(patient, document_type, title=None, user=None) -> ConsentDocument:
    """
    Send a consent document of ``document_type`` to ``patient`` for signature.

    Args:
        patient: Patient instance
        document_type: ConsentDocumentTypeChoices value
        title: Display title (derived from the type when omitted)
        user: Staff member issuing the request

    Returns:
        New pending ConsentDocument

    Raises:
        DuplicateRequest: a current pending instance exists (code
            ``duplicate_request``), or the current instance is already
            signed (code ``already_signed``; reissue instead)
    """
    existing = _locked_current(patient, document_type)
    if existing is not None:
        _record_outcome('request', 'duplicate')
        log_document_transition(existing, 'request', result='duplicate', status=existing.status)
        if existing.status == ConsentDocumentStatusChoices.SIGNED:
            raise DuplicateRequest(
                'This document is already signed. Reissue it to collect a new signature.',
                code='already_signed',
                details={'document_id': str(existing.id)},
            )
        raise DuplicateRequest(
            'A document of this type was already sent and is awaiting signature.',
            details={'document_id': str(existing.id)},
        )

    try:
        # Savepoint so a lost race leaves the outer transaction usable
        with transaction.atomic():
            document = ConsentDocument.objects.create(
                patient=patient,
                document_type=document_type,
                title=title or default_title(document_type),
                issued_by_user=user,
            )
    except IntegrityError:
        _record_outcome('request', 'duplicate')
        logger.warning(
            'Concurrent consent request rejected by unique constraint',
            extra={'event': 'consent_document_request_race', 'patient_id': str(patient.pk)}
        )
        raise DuplicateRequest('A document of this type was already sent and is awaiting signature.')

    _record_outcome('request', 'success')
    log_document_transition(document, 'request', document_type=document_type)
    log_clinical_audit(user, document, AuditActionChoices.CREATE, patient=patient)
    return document


def _complete_signature(document, signing_method, signature_path, user, operation):
    locked = ConsentDocument.objects.select_for_update().select_related('patient').get(pk=document.pk)

    if locked.is_superseded:
        _record_outcome(operation, 'rejected')
        log_document_transition(locked, operation, result='rejected', reason='superseded')
        raise InvalidTransition(
            'This document was replaced by a newer version and can no longer be signed.',
            code='document_superseded',
        )
    if locked.status != ConsentDocumentStatusChoices.PENDING:
        _record_outcome(operation, 'rejected')
        log_document_transition(locked, operation, result='rejected', reason='already_signed')
        raise InvalidTransition('This document is already signed.')

    now = timezone.now()
    locked.status = ConsentDocumentStatusChoices.SIGNED
    locked.signed_at = now
    locked.signing_method = signing_method
    locked.signature_path = signature_path
    locked.save(update_fields=['status', 'signed_at', 'signing_method', 'signature_path', 'updated_at'])

    event = ClinicalEvent.objects.create(
        patient=locked.patient,
        performed_on=timezone.localdate(now),
        title=f"Document signed: {locked.title}",
        event_type=ClinicalEventTypeChoices.DOCUMENT,
        patient_summary=f"Consent form \"{locked.title}\" signed ({locked.get_signing_method_display()}).",
        professional_name=SIGNED_EVENT_PROFESSIONAL,
        tags=list(SIGNED_EVENT_TAGS),
        created_by_user=user,
    )

    log_consistency_checkpoint(
        'consent_document_signed',
        entity_ids={'document_id': str(locked.id), 'clinical_event_id': str(event.id)},
        checks_passed={
            'status_signed': locked.status == ConsentDocumentStatusChoices.SIGNED,
            'timeline_event_created': event.pk is not None,
        },
    )
    _record_outcome(operation, 'success')
    log_document_transition(locked, operation, signing_method=signing_method)
    log_clinical_audit(
        user, locked, AuditActionChoices.UPDATE,
        changed_fields=['status', 'signed_at', 'signing_method', 'signature_path'],
        patient=locked.patient,
    )
    return locked


@transaction.atomic
def sign(document: ConsentDocument, signature_path: str, user=None) -> ConsentDocument:
    """
    Sign a pending document with a digital-pad signature.

    Args:
        document: ConsentDocument (state is re-read under lock)
        signature_path: Stable path of the stored signature image
        user: User completing the flow

    Returns:
        The signed document

    Raises:
        DomainError: no usable signature path (code ``signature_required``)
        InvalidTransition: document already signed or superseded
    """
    stable_path = select_stable_path(None, signature_path)
    if not stable_path:
        raise DomainError('A signature image is required.', code='signature_required')
    return _complete_signature(document, SigningMethodChoices.DIGITAL_PAD, stable_path, user, 'sign')


@transaction.atomic
def mark_signed_via_print(document: ConsentDocument, user=None) -> ConsentDocument:
    """Record that the printed form came back signed on paper. No asset involved."""
    return _complete_signature(document, SigningMethodChoices.PRINT, None, user, 'sign_print')


@transaction.atomic
def reissue(patient, document_type, title=None, user=None) -> ConsentDocument:
    """
    Issue a fresh pending instance regardless of the current one's status.

    The previous current instance (if any) is marked superseded and kept
    for history; the new one links to it through ``supersedes``.

    Raises:
        DuplicateRequest: a concurrent request inserted the pending instance first
    """
    previous = _locked_current(patient, document_type)
    if previous is not None:
        previous.superseded_at = timezone.now()
        previous.save(update_fields=['superseded_at', 'updated_at'])

    try:
        with transaction.atomic():
            document = ConsentDocument.objects.create(
                patient=patient,
                document_type=document_type,
                title=title or (previous.title if previous else default_title(document_type)),
                supersedes=previous,
                issued_by_user=user,
            )
    except IntegrityError:
        _record_outcome('reissue', 'duplicate')
        logger.warning(
            'Concurrent consent reissue rejected by unique constraint',
            extra={'event': 'consent_document_reissue_race', 'patient_id': str(patient.pk)}
        )
        raise DuplicateRequest('A document of this type was already sent and is awaiting signature.')

    _record_outcome('reissue', 'success')
    log_document_transition(
        document, 'reissue',
        document_type=document_type,
        superseded_document_id=str(previous.id) if previous else None,
    )
    log_clinical_audit(user, document, AuditActionChoices.CREATE, patient=patient)
    return document


def upload_signature(document: ConsentDocument, image_bytes: bytes) -> str:
    """
    Store a drawn signature as PNG and return its stable path.

    Raises:
        DomainError: bytes are not an image (code ``invalid_image``)
        AssetResolutionFailed: asset store rejected the upload
    """
    try:
        png = to_png_bytes(image_bytes)
    except InvalidImageError as exc:
        raise DomainError(str(exc), code='invalid_image')

    filename = f"{document.id}_{timezone.now():%Y%m%d%H%M%S}.png"
    return store_media(SIGNATURE_PREFIX, filename, png, 'image/png')
