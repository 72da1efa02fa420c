"""
Prometheus metrics registry.
"""
import time
from functools import wraps

from prometheus_client import Counter, Histogram


class MetricsRegistry:
    """
    Central metrics registry.

    Provides typed access to all application metrics.
    """

    def __init__(self):
        self._setup_metrics()

    def _create_counter(self, name, description, labels=None):
        return Counter(name, description, labels or [])

    def _create_histogram(self, name, description, labels=None, buckets=None):
        if buckets:
            return Histogram(name, description, labels or [], buckets=buckets)
        return Histogram(name, description, labels or [])

    def _setup_metrics(self):
        # ===================================================================
        # HTTP Metrics
        # ===================================================================
        self.http_requests_total = self._create_counter(
            'http_requests_total',
            'Total HTTP requests',
            ['path', 'method', 'status']
        )

        self.http_request_duration_seconds = self._create_histogram(
            'http_request_duration_seconds',
            'HTTP request duration in seconds',
            ['path', 'method'],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
        )

        self.exceptions_total = self._create_counter(
            'exceptions_total',
            'Total exceptions',
            ['exception_type', 'location']
        )

        # ===================================================================
        # Media Metrics
        # ===================================================================
        self.media_access_urls_total = self._create_counter(
            'media_access_urls_total',
            'Access URL resolutions',
            ['result']  # issued, empty, passthrough, failed
        )

        self.media_uploads_total = self._create_counter(
            'media_uploads_total',
            'Objects written to the asset store',
            ['prefix', 'result']
        )

        # ===================================================================
        # Consent Document Metrics
        # ===================================================================
        self.consent_documents_transition_total = self._create_counter(
            'consent_documents_transition_total',
            'Consent document operations',
            ['operation', 'result']  # request|sign|sign_print|reissue
        )

        # ===================================================================
        # Inventory Metrics
        # ===================================================================
        self.inventory_consumption_total = self._create_counter(
            'inventory_consumption_total',
            'Inventory debits committed for clinical events',
            ['result']
        )

        self.inventory_authorization_rejected_total = self._create_counter(
            'inventory_authorization_rejected_total',
            'Consumption entries rejected at authorization',
            ['reason']
        )

        self.inventory_commit_duration_seconds = self._create_histogram(
            'inventory_commit_duration_seconds',
            'Duration of a consumption commit',
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5]
        )

        # ===================================================================
        # Finance Metrics
        # ===================================================================
        self.finance_postings_created_total = self._create_counter(
            'finance_postings_created_total',
            'Financial postings created',
            ['direction', 'recurring']
        )

        # ===================================================================
        # Integrations
        # ===================================================================
        self.calendar_requests_total = self._create_counter(
            'calendar_requests_total',
            'Calls to the external calendar',
            ['operation', 'result']
        )

    def track_duration(self, histogram_metric):
        """
        Decorator to track function duration.

        Usage:
            @metrics.track_duration(metrics.inventory_commit_duration_seconds)
            def commit(entries):
                ...
        """
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return func(*args, **kwargs)
                finally:
                    histogram_metric.observe(time.time() - start_time)
            return wrapper
        return decorator


# Global metrics instance
metrics = MetricsRegistry()
