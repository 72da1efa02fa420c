"""
Documents models: consent_document

A consent document moves pending -> signed. Reissuing creates a new
pending instance and stamps ``superseded_at`` on the previous one; the
superseded state is never stored in ``status``.
"""
import uuid
from django.db import models
from django.conf import settings


class ConsentDocumentTypeChoices(models.TextChoices):
    """Consent form templates offered by the clinic"""
    BOTOX = 'botox', 'Botulinum Toxin'
    BIOSTIMULATOR = 'biostimulator', 'Collagen Biostimulator'
    PDO_THREADS = 'pdo_threads', 'PDO Threads'
    HYALURONIDASE = 'hyaluronidase', 'Hyaluronidase'
    HYDROLIPO = 'hydrolipo', 'Hydrolipoclasia'
    INTRADERMOTHERAPY = 'intradermotherapy', 'Intradermotherapy'
    LIFTING = 'lifting', 'Lifting'
    MICRONEEDLING = 'microneedling', 'Microneedling'
    PEELING = 'peeling', 'Chemical Peeling'
    FILLER = 'filler', 'Dermal Filler'


class ConsentDocumentStatusChoices(models.TextChoices):
    PENDING = 'pending', 'Pending'
    SIGNED = 'signed', 'Signed'


class SigningMethodChoices(models.TextChoices):
    DIGITAL_PAD = 'digital_pad', 'Digital signature pad'
    PRINT = 'print', 'Printed and signed on paper'


SUPERSEDED = 'superseded'


class ConsentDocumentQuerySet(models.QuerySet):
    def current(self):
        """Instances not replaced by a reissue."""
        return self.filter(superseded_at__isnull=True)

    def for_type(self, patient, document_type):
        return self.filter(patient=patient, document_type=document_type)


class ConsentDocument(models.Model):
    """
    Consent form issued to a patient.

    - signature_path: stable path of the signature image (digital pad only)
    - supersedes: instance this one replaced (set by reissue)
    - superseded_at: set when a newer instance of the same type is issued
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(
        'clinical.Patient',
        on_delete=models.CASCADE,
        related_name='consent_documents'
    )
    document_type = models.CharField(max_length=30, choices=ConsentDocumentTypeChoices.choices)
    title = models.CharField(max_length=255)
    status = models.CharField(
        max_length=20,
        choices=ConsentDocumentStatusChoices.choices,
        default=ConsentDocumentStatusChoices.PENDING
    )
    issued_at = models.DateTimeField(auto_now_add=True)
    signed_at = models.DateTimeField(blank=True, null=True)
    signing_method = models.CharField(
        max_length=20,
        choices=SigningMethodChoices.choices,
        blank=True,
        null=True
    )
    signature_path = models.CharField(max_length=512, blank=True, null=True)

    supersedes = models.OneToOneField(
        'self',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='superseded_by'
    )
    superseded_at = models.DateTimeField(blank=True, null=True)

    issued_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='issued_consent_documents'
    )
    updated_at = models.DateTimeField(auto_now=True)

    objects = ConsentDocumentQuerySet.as_manager()

    class Meta:
        db_table = 'consent_document'
        verbose_name = 'Consent Document'
        verbose_name_plural = 'Consent Documents'
        ordering = ['-issued_at']
        indexes = [
            models.Index(fields=['patient', 'document_type'], name='idx_consent_patient_type'),
            models.Index(fields=['status'], name='idx_consent_status'),
        ]
        constraints = [
            # At most one open request per (patient, type)
            models.UniqueConstraint(
                fields=['patient', 'document_type'],
                condition=models.Q(status='pending', superseded_at__isnull=True),
                name='uniq_consent_pending_per_type'
            ),
            models.CheckConstraint(
                condition=models.Q(status='pending') | models.Q(signed_at__isnull=False),
                name='consent_signed_has_timestamp'
            ),
        ]

    def __str__(self):
        return f"{self.title} - {self.patient} ({self.effective_status})"

    @property
    def is_superseded(self):
        return self.superseded_at is not None

    @property
    def effective_status(self):
        return SUPERSEDED if self.is_superseded else self.status
