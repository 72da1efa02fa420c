"""
Inventory models.

- InventoryItem: consumable supply with a running stock quantity
- ConsumptionEntry: quantity of an item used during a clinical event
- RestockEntry: manual replenishment, kept for audit
"""
from django.db import models
from django.utils.translation import gettext_lazy as _
from django.conf import settings
from decimal import Decimal
import uuid


class InventoryUnitChoices(models.TextChoices):
    UNIT = 'unit', _('Unit')
    ML = 'ml', _('Milliliter')
    G = 'g', _('Gram')
    VIAL = 'vial', _('Vial')
    SYRINGE = 'syringe', _('Syringe')
    BOX = 'box', _('Box')


class InventoryItem(models.Model):
    """
    Consumable supply (toxin vials, syringes, needles, gauze...).

    ``stock_quantity`` is only ever changed through ``apps.stock.services``;
    a database check keeps it non-negative.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(_('Name'), max_length=255)
    category = models.CharField(_('Category'), max_length=100, blank=True, default='')
    unit = models.CharField(
        _('Unit'),
        max_length=20,
        choices=InventoryUnitChoices.choices,
        default=InventoryUnitChoices.UNIT
    )
    stock_quantity = models.DecimalField(
        _('Stock Quantity'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0')
    )
    min_stock = models.DecimalField(
        _('Minimum Stock'),
        max_digits=12,
        decimal_places=2,
        default=Decimal('0'),
        help_text=_('Item is reported as low stock at or below this quantity')
    )
    unit_cost = models.DecimalField(
        _('Unit Cost'),
        max_digits=10,
        decimal_places=2,
        default=Decimal('0')
    )
    last_restocked_at = models.DateTimeField(_('Last Restocked At'), blank=True, null=True)
    is_active = models.BooleanField(_('Active'), default=True)

    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)
    updated_at = models.DateTimeField(_('Updated At'), auto_now=True)

    class Meta:
        db_table = 'inventory_item'
        ordering = ['name']
        verbose_name = _('Inventory Item')
        verbose_name_plural = _('Inventory Items')
        indexes = [
            models.Index(fields=['category'], name='idx_inventory_category'),
            models.Index(fields=['is_active'], name='idx_inventory_active'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(stock_quantity__gte=0),
                name='inventory_stock_non_negative'
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.stock_quantity} {self.unit})"

    @property
    def is_low_stock(self):
        return self.stock_quantity <= self.min_stock

    @property
    def stock_value(self):
        return self.stock_quantity * self.unit_cost


class ConsumptionEntry(models.Model):
    """
    Stock debit attached to a clinical event.

    Entries outlive the event: deleting the event only unlinks them and the
    consumed stock is not returned.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    clinical_event = models.ForeignKey(
        'clinical.ClinicalEvent',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='consumption_entries'
    )
    item = models.ForeignKey(
        InventoryItem,
        on_delete=models.PROTECT,
        related_name='consumption_entries'
    )
    quantity = models.DecimalField(_('Quantity'), max_digits=12, decimal_places=2)
    unit = models.CharField(_('Unit'), max_length=20, choices=InventoryUnitChoices.choices)
    unit_cost = models.DecimalField(
        _('Unit Cost'),
        max_digits=10,
        decimal_places=2,
        default=Decimal('0'),
        help_text=_('Item unit cost captured at consumption time')
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='consumption_entries'
    )
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)

    class Meta:
        db_table = 'inventory_consumption'
        ordering = ['created_at']
        verbose_name = _('Consumption Entry')
        verbose_name_plural = _('Consumption Entries')
        indexes = [
            models.Index(fields=['item', 'created_at'], name='idx_consumption_item_date'),
            models.Index(fields=['clinical_event'], name='idx_consumption_event'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name='consumption_quantity_positive'
            ),
        ]

    def __str__(self):
        return f"-{self.quantity} {self.unit} {self.item.name}"

    @property
    def total_cost(self):
        return self.quantity * self.unit_cost


class RestockEntry(models.Model):
    """Manual replenishment of an item."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    item = models.ForeignKey(
        InventoryItem,
        on_delete=models.CASCADE,
        related_name='restock_entries'
    )
    quantity = models.DecimalField(_('Quantity'), max_digits=12, decimal_places=2)
    note = models.TextField(_('Note'), blank=True, default='')

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='restock_entries'
    )
    created_at = models.DateTimeField(_('Created At'), auto_now_add=True)

    class Meta:
        db_table = 'inventory_restock'
        ordering = ['-created_at']
        verbose_name = _('Restock Entry')
        verbose_name_plural = _('Restock Entries')
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name='restock_quantity_positive'
            ),
        ]

    def __str__(self):
        return f"+{self.quantity} {self.item.name}"
