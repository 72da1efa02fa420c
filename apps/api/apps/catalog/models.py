"""
Catalog models - services offered by the clinic.
"""
import uuid
from django.db import models
from django.utils.translation import gettext_lazy as _


class ServiceCategoryChoices(models.TextChoices):
    FACIAL = 'facial', _('Facial')
    BODY = 'body', _('Body')
    INJECTABLES = 'injectables', _('Injectables')
    LASER = 'laser', _('Laser')
    OTHER = 'other', _('Other')


class Service(models.Model):
    """
    Service catalog entry.

    ``validity_months`` is how long the effect of the procedure is considered
    current; 0 means the procedure never expires.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(_('Name'), max_length=255, unique=True)
    category = models.CharField(
        _('Category'),
        max_length=20,
        choices=ServiceCategoryChoices.choices,
        default=ServiceCategoryChoices.OTHER
    )
    description = models.TextField(_('Description'), blank=True)

    price = models.DecimalField(_('Price'), max_digits=10, decimal_places=2, default=0)
    duration_minutes = models.PositiveIntegerField(_('Duration (minutes)'), default=60)
    validity_months = models.PositiveIntegerField(_('Validity (months)'), default=0)

    is_active = models.BooleanField(_('Active'), default=True)

    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'catalog_service'
        ordering = ['name']
        indexes = [
            models.Index(fields=['category'], name='idx_service_category'),
            models.Index(fields=['is_active'], name='idx_service_active'),
        ]
        verbose_name = _('Service')
        verbose_name_plural = _('Services')

    def __str__(self):
        return self.name

    @property
    def expires(self):
        return self.validity_months > 0
