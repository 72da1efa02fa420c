"""
Domain events logging helpers.

Provides structured event logging for business operations.
"""
from typing import Dict, Optional
from .logging import get_sanitized_logger, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields
):
    """
    Log a domain event with structured data.

    Args:
        event_name: Name of the event (e.g., 'consent_document_signed', 'inventory_debited')
        entity_type: Type of entity (e.g., 'ConsentDocument', 'InventoryItem')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, etc.)
        **extra_fields: Additional fields to log (will be sanitized)

    Example:
        log_domain_event(
            'consent_document_signed',
            entity_type='ConsentDocument',
            entity_id=str(document.id),
            entity_ids={'patient_id': str(document.patient_id)},
            result='success',
            signing_method='digital_pad'
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }

    if entity_type:
        event_data['entity_type'] = entity_type

    if entity_id:
        event_data['entity_id'] = entity_id

    if entity_ids:
        event_data.update(entity_ids)

    event_data.update(sanitize_dict(extra_fields))

    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'blocked', 'duplicate', 'rejected']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_consistency_checkpoint(
    checkpoint_name: str,
    entity_ids: Dict[str, str],
    checks_passed: Dict[str, bool],
    **extra_fields
):
    """
    Log a consistency checkpoint event.

    Used to verify data integrity at critical points, and to leave a trail
    for manual reconciliation when a multi-step write stops half way.

    Args:
        checkpoint_name: Name of checkpoint (e.g., 'clinical_event_consumption')
        entity_ids: Dictionary of entity IDs involved
        checks_passed: Dictionary of check results {check_name: passed}
        **extra_fields: Additional context
    """
    all_passed = all(checks_passed.values())

    event_data = {
        'event': 'consistency_checkpoint',
        'checkpoint': checkpoint_name,
        'status': 'passed' if all_passed else 'failed',
        'checks': checks_passed,
    }
    event_data.update(entity_ids)
    event_data.update(sanitize_dict(extra_fields))

    if all_passed:
        logger.info(f'Checkpoint passed: {checkpoint_name}', extra=event_data)
    else:
        logger.error(f'Checkpoint FAILED: {checkpoint_name}', extra=event_data)


def log_document_transition(document, operation, result='success', **extra):
    """Log a consent document state machine operation."""
    log_domain_event(
        f'consent_document_{operation}',
        entity_type='ConsentDocument',
        entity_id=str(document.id) if document is not None else None,
        entity_ids={'patient_id': str(document.patient_id)} if document is not None else None,
        result=result,
        **extra
    )


def log_inventory_debit(item, quantity, remaining, clinical_event_id=None):
    """Log a committed inventory debit."""
    entity_ids = {'item_id': str(item.id)}
    if clinical_event_id:
        entity_ids['clinical_event_id'] = str(clinical_event_id)
    log_domain_event(
        'inventory_debited',
        entity_type='InventoryItem',
        entity_id=str(item.id),
        entity_ids=entity_ids,
        result='success',
        quantity=quantity,
        remaining_stock=remaining,
    )


def log_postings_created(postings, recurring):
    """Log creation of one or more financial postings."""
    first = postings[0]
    log_domain_event(
        'financial_postings_created',
        entity_type='FinancialPosting',
        entity_id=str(first.id),
        entity_ids={'recurrence_group': str(first.recurrence_group)} if first.recurrence_group else None,
        result='success',
        direction=first.direction,
        recurring=recurring,
        occurrences=len(postings),
    )
