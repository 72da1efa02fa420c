"""
Stock services - consumption ledger and replenishment.

Consumption happens in two steps:
1. ``authorize`` checks every requested line against the item snapshot the
   user saw when filling the form.
2. ``commit`` applies the debits. Each debit is a conditional UPDATE that
   only succeeds while enough stock remains, so concurrent consumption can
   never push an item below zero.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from apps.core.errors import DomainError, InsufficientStock, RecordNotFound
from apps.core.observability import metrics, log_domain_event
from apps.core.observability.events import log_inventory_debit

from .models import ConsumptionEntry, InventoryItem, RestockEntry


# Rejection reasons returned by authorize()
REASON_NON_POSITIVE = 'non_positive_quantity'
REASON_EXCEEDS_STOCK = 'exceeds_stock'
REASON_INACTIVE = 'inactive_item'


@dataclass(frozen=True)
class Authorization:
    """Outcome of a consumption pre-check."""
    accepted: bool
    reason: Optional[str] = None

    def __bool__(self):
        return self.accepted


@dataclass(frozen=True)
class ConsumptionLine:
    """One requested debit: ``quantity`` units of ``item``."""
    item: InventoryItem
    quantity: Decimal


def authorize(item: InventoryItem, quantity) -> Authorization:
    """
    Pre-check a consumption line against ``item``'s current snapshot.

    Rejects non-positive quantities, inactive items and quantities above
    ``item.stock_quantity``. The snapshot is not locked; ``commit`` does the
    authoritative check.
    """
    quantity = Decimal(str(quantity))

    if quantity <= 0:
        reason = REASON_NON_POSITIVE
    elif not item.is_active:
        reason = REASON_INACTIVE
    elif quantity > item.stock_quantity:
        reason = REASON_EXCEEDS_STOCK
    else:
        return Authorization(accepted=True)

    metrics.inventory_authorization_rejected_total.labels(reason=reason).inc()
    log_domain_event(
        'inventory_authorization_rejected',
        entity_type='InventoryItem',
        entity_id=str(item.id),
        result='rejected',
        reason=reason,
        quantity=str(quantity),
        available=str(item.stock_quantity),
    )
    return Authorization(accepted=False, reason=reason)


def authorize_all(lines: Iterable[ConsumptionLine]) -> None:
    """
    Authorize every line, accumulating quantities per item.

    Raises:
        InsufficientStock: on the first rejected line, with the item and
            reason in ``details``
    """
    requested: Dict = {}
    for line in lines:
        requested[line.item.pk] = requested.get(line.item.pk, Decimal('0')) + Decimal(str(line.quantity))
        if Decimal(str(line.quantity)) <= 0:
            result = Authorization(accepted=False, reason=REASON_NON_POSITIVE)
        else:
            result = authorize(line.item, requested[line.item.pk])
        if not result:
            raise InsufficientStock(
                f"Cannot consume {requested[line.item.pk]} {line.item.unit} of "
                f"{line.item.name}: only {line.item.stock_quantity} available",
                details={'item_id': str(line.item.pk), 'reason': result.reason},
            )


@metrics.track_duration(metrics.inventory_commit_duration_seconds)
@transaction.atomic
def commit(lines: Iterable[ConsumptionLine], created_by=None) -> List[ConsumptionEntry]:
    """
    Apply debits in line order.

    Lines that reference the same item apply cumulatively. Entries are
    created without a clinical event; the caller links them once the
    event exists.

    Args:
        lines: ConsumptionLine objects
        created_by: User recording the consumption

    Returns:
        Created ConsumptionEntry rows, in line order

    Raises:
        InsufficientStock: when a debit would make stock negative; nothing
            from this commit is kept
    """
    entries = []
    for line in lines:
        quantity = Decimal(str(line.quantity))
        if quantity <= 0:
            raise InsufficientStock(
                f"Consumption quantity must be positive (got {quantity})",
                details={'item_id': str(line.item.pk), 'reason': REASON_NON_POSITIVE},
            )

        updated = InventoryItem.objects.filter(
            pk=line.item.pk,
            stock_quantity__gte=quantity,
        ).update(
            stock_quantity=F('stock_quantity') - quantity,
            updated_at=timezone.now(),
        )
        if updated == 0:
            metrics.inventory_consumption_total.labels(result='insufficient').inc()
            available = (
                InventoryItem.objects.filter(pk=line.item.pk)
                .values_list('stock_quantity', flat=True)
                .first()
            )
            if available is None:
                raise RecordNotFound(f"Inventory item {line.item.pk} not found")
            raise InsufficientStock(
                f"Insufficient stock for {line.item.name}: "
                f"available {available}, requested {quantity}",
                details={'item_id': str(line.item.pk), 'reason': REASON_EXCEEDS_STOCK},
            )

        line.item.refresh_from_db(fields=['stock_quantity', 'updated_at'])
        entries.append(ConsumptionEntry.objects.create(
            item=line.item,
            quantity=quantity,
            unit=line.item.unit,
            unit_cost=line.item.unit_cost,
            created_by=created_by,
        ))
        metrics.inventory_consumption_total.labels(result='success').inc()
        log_inventory_debit(line.item, str(quantity), str(line.item.stock_quantity))

    return entries


def link_entries_to_event(entries: List[ConsumptionEntry], clinical_event) -> int:
    """Attach committed entries to the clinical event they were used in."""
    if not entries:
        return 0
    return ConsumptionEntry.objects.filter(
        pk__in=[entry.pk for entry in entries]
    ).update(clinical_event=clinical_event)


@transaction.atomic
def restock(item: InventoryItem, quantity, note: str = '', user=None) -> RestockEntry:
    """
    Add ``quantity`` to an item's stock and record the replenishment.

    This is the only way stock goes back up; deleting a clinical event does
    not return what it consumed.
    """
    quantity = Decimal(str(quantity))
    if quantity <= 0:
        raise DomainError(
            f"Restock quantity must be positive (got {quantity})",
            code='invalid_quantity',
        )

    now = timezone.now()
    InventoryItem.objects.filter(pk=item.pk).update(
        stock_quantity=F('stock_quantity') + quantity,
        last_restocked_at=now,
        updated_at=now,
    )
    item.refresh_from_db(fields=['stock_quantity', 'last_restocked_at', 'updated_at'])

    entry = RestockEntry.objects.create(item=item, quantity=quantity, note=note, created_by=user)

    log_domain_event(
        'inventory_restocked',
        entity_type='InventoryItem',
        entity_id=str(item.id),
        result='success',
        quantity=str(quantity),
        stock_after=str(item.stock_quantity),
    )
    return entry


def low_stock_items():
    """Active items at or below their minimum stock."""
    return InventoryItem.objects.filter(
        is_active=True,
        stock_quantity__lte=F('min_stock'),
    ).order_by('name')


def inventory_valuation() -> Dict:
    """
    Stock value summary for active items.

    Returns:
        {'total_items', 'total_value', 'low_stock_count'}
    """
    items = InventoryItem.objects.filter(is_active=True)
    total_value = items.aggregate(
        total=Sum(F('stock_quantity') * F('unit_cost'))
    )['total'] or Decimal('0')
    return {
        'total_items': items.count(),
        'total_value': Decimal(total_value).quantize(Decimal('0.01')),
        'low_stock_count': low_stock_items().count(),
    }
