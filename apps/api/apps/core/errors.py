"""
Domain error kinds shared by every app.

Each error carries a stable machine-readable ``code`` and the HTTP status
the API layer answers with. Services raise them; views turn them into the
``{'error': {'code', 'message'}}`` body through ``error_response``.
"""
from django.core.exceptions import ValidationError
from rest_framework import status
from rest_framework.response import Response


class DomainError(ValidationError):
    """Base class for errors that must reach the user with an actionable message."""
    code = 'domain_error'
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, code=None, details=None):
        super().__init__(message, code=code or self.code)
        self.code = code or self.code
        self.details = details or {}

    @property
    def message_text(self):
        return self.messages[0] if self.messages else ''


class RecordNotFound(DomainError):
    """Referenced record or asset is absent."""
    code = 'not_found'
    http_status = status.HTTP_404_NOT_FOUND


class DuplicateRequest(DomainError):
    """An equivalent request already exists (e.g. consent already sent)."""
    code = 'duplicate_request'
    http_status = status.HTTP_409_CONFLICT


class InvalidTransition(DomainError):
    """State machine refused the requested transition."""
    code = 'invalid_transition'
    http_status = status.HTTP_409_CONFLICT


class InsufficientStock(DomainError):
    """Consumption exceeds the available quantity."""
    code = 'insufficient_stock'
    http_status = status.HTTP_400_BAD_REQUEST


class AssetResolutionFailed(DomainError):
    """Asset store could not produce an access URL. Never leaves the resolver."""
    code = 'asset_resolution_failed'
    http_status = status.HTTP_502_BAD_GATEWAY


def error_response(exc: DomainError) -> Response:
    """Render a domain error with the standard error envelope."""
    body = {
        'error': {
            'code': exc.code,
            'message': exc.message_text,
        }
    }
    if exc.details:
        body['error']['details'] = exc.details
    return Response(body, status=exc.http_status)
