"""
Observability module.

Provides structured logging, metrics, and health checks
with PHI/PII protection.
"""
from .metrics import metrics
from .events import log_domain_event, log_consistency_checkpoint
from .logging import get_sanitized_logger

__all__ = ['metrics', 'log_domain_event', 'log_consistency_checkpoint', 'get_sanitized_logger']
