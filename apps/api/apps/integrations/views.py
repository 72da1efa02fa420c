"""Integration views - external agenda."""
from datetime import timedelta

from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework import serializers, status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.models import RoleChoices
from apps.authz.permissions import RoleBasedPermission
from apps.core.errors import error_response

from .calendar import CalendarUnavailable, get_calendar_store

DEFAULT_AGENDA_DAYS = 7


class AgendaPermission(RoleBasedPermission):
    """Admin, Practitioner and Reception manage the agenda."""
    read_roles = frozenset({RoleChoices.ADMIN, RoleChoices.PRACTITIONER, RoleChoices.RECEPTION})


class CalendarEventSerializer(serializers.Serializer):
    external_id = serializers.CharField(allow_null=True)
    starts_at = serializers.DateTimeField()
    ends_at = serializers.DateTimeField()
    summary = serializers.CharField(allow_blank=True)
    description = serializers.CharField(allow_blank=True)
    patient_id = serializers.CharField(allow_null=True)


def _parse_bound(value, default):
    if not value:
        return default
    parsed = parse_datetime(value)
    if parsed is None:
        raise serializers.ValidationError({'detail': f'Invalid datetime: {value}'})
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


class AgendaView(APIView):
    """
    GET /api/v1/integrations/agenda/?start=<iso>&end=<iso>

    Events from the configured calendar (Google Calendar or the local
    mirror). Defaults to the next 7 days.
    """
    permission_classes = [AgendaPermission]

    def get(self, request):
        start = _parse_bound(request.query_params.get('start'), timezone.now())
        end = _parse_bound(request.query_params.get('end'), start + timedelta(days=DEFAULT_AGENDA_DAYS))
        if end <= start:
            return Response(
                {'error': {'code': 'invalid_range', 'message': 'end must be after start'}},
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            events = get_calendar_store().list_events(start, end)
        except CalendarUnavailable as exc:
            return error_response(exc)

        return Response(CalendarEventSerializer(events, many=True).data)
