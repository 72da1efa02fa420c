"""
Clinical viewsets: patients, clinical events, photos, appointments.

Endpoints (under /api/v1/clinical/):
- patients/                      CRUD (DELETE = soft delete)
- patients/{id}/timeline/        aggregated patient record
- patients/{id}/avatar/          POST upload, DELETE remove
- patients/{id}/anamnesis/       GET list, POST upsert
- events/                        CRUD, create accepts consumption lines
- photos/                        list/retrieve/update/delete, POST multipart upload
- photos/{id}/images/{side}/     POST replace one side
- appointments/                  CRUD mirrored to the external calendar
"""
import logging

from django.conf import settings
from django.db.models import Q
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

from apps.authz.models import RoleChoices
from apps.authz.permissions import RoleBasedPermission, get_user_roles
from apps.catalog.services import list_services_with_expiration
from apps.clinical.expiration import build_validity_catalog
from apps.clinical.models import (
    Appointment,
    ClinicalEvent,
    Patient,
    PatientPhoto,
)
from apps.clinical.permissions import (
    AppointmentPermission,
    IsClinicalStaff,
    PatientAvatarPermission,
    PatientPermission,
    is_portal_patient,
)
from apps.clinical.serializers import (
    AnamnesisRecordSerializer,
    AnamnesisUpsertSerializer,
    AppointmentSerializer,
    ClinicalEventSerializer,
    ClinicalEventWriteSerializer,
    ImageUploadSerializer,
    PatientDetailSerializer,
    PatientListSerializer,
    PatientPhotoSerializer,
    PatientPhotoUploadSerializer,
    PatientTimelineSerializer,
)
from apps.clinical.services import (
    add_patient_photo,
    clear_patient_avatar,
    delete_clinical_event,
    delete_patient_photo,
    record_clinical_event,
    replace_photo_image,
    set_patient_avatar,
    soft_delete_patient,
    update_clinical_event,
    upsert_anamnesis,
)
from apps.clinical.timeline import build_patient_timeline
from apps.core.errors import DomainError, error_response
from apps.integrations.calendar import get_calendar_store
from apps.stock.services import ConsumptionLine

logger = logging.getLogger(__name__)


class ClinicalEventPermission(RoleBasedPermission):
    """
    - Admin, Practitioner: Full access
    - Reception, Accounting: Read (clinical notes hidden by the serializer)
    """
    read_roles = frozenset({
        RoleChoices.ADMIN,
        RoleChoices.PRACTITIONER,
        RoleChoices.RECEPTION,
        RoleChoices.ACCOUNTING,
    })
    write_roles = frozenset({RoleChoices.ADMIN, RoleChoices.PRACTITIONER})
    delete_roles = frozenset({RoleChoices.ADMIN, RoleChoices.PRACTITIONER})


class PatientViewSet(viewsets.ModelViewSet):
    """
    ViewSet for Patient endpoints.

    Query parameters (list):
    - ?q=<text> - Search name, email, phone
    - ?status=new|recurring|vip
    - ?include_deleted=true - Admin only
    """
    permission_classes = [PatientPermission]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get_queryset(self):
        """
        - Soft-deleted patients are excluded unless an Admin asks for them
        - Portal patients only ever see their own record
        """
        queryset = Patient.objects.all()
        user_roles = get_user_roles(self.request.user)

        if is_portal_patient(user_roles):
            return queryset.filter(user=self.request.user, is_deleted=False)

        include_deleted = self.request.query_params.get('include_deleted', 'false').lower() == 'true'
        if not (include_deleted and RoleChoices.ADMIN in user_roles):
            queryset = queryset.filter(is_deleted=False)

        q = self.request.query_params.get('q')
        if q:
            queryset = queryset.filter(
                Q(first_name__icontains=q) |
                Q(last_name__icontains=q) |
                Q(email__icontains=q) |
                Q(phone__icontains=q)
            )

        patient_status = self.request.query_params.get('status')
        if patient_status:
            queryset = queryset.filter(status=patient_status.lower())

        return queryset.order_by('first_name', 'last_name')

    def get_serializer_class(self):
        """Use list serializer for list view, detail serializer otherwise"""
        if self.action == 'list':
            return PatientListSerializer
        return PatientDetailSerializer

    def perform_destroy(self, instance):
        soft_delete_patient(instance, user=self.request.user, request=self.request)

    @action(detail=True, methods=['get'], url_path='timeline')
    def timeline(self, request, pk=None):
        """
        GET /api/v1/clinical/patients/{id}/timeline/

        Built fresh on every call; what is included depends on the caller's roles.
        """
        patient = self.get_object()
        timeline = build_patient_timeline(patient, get_user_roles(request.user))
        return Response(PatientTimelineSerializer(timeline, context={'request': request}).data)

    @action(detail=True, methods=['post', 'delete'], url_path='avatar', permission_classes=[PatientAvatarPermission])
    def avatar(self, request, pk=None):
        """
        POST multipart ``file`` - upload a new avatar
        DELETE - remove the avatar reference
        """
        patient = self.get_object()

        if request.method == 'DELETE':
            clear_patient_avatar(patient, user=request.user, request=request)
            return Response(PatientDetailSerializer(patient, context={'request': request}).data)

        upload = ImageUploadSerializer(data=request.data)
        upload.is_valid(raise_exception=True)
        file = upload.validated_data['file']
        try:
            set_patient_avatar(patient, file.read(), file.name, user=request.user, request=request)
        except DomainError as exc:
            return error_response(exc)
        return Response(PatientDetailSerializer(patient, context={'request': request}).data)

    @action(detail=True, methods=['get', 'post'], url_path='anamnesis', permission_classes=[IsClinicalStaff])
    def anamnesis(self, request, pk=None):
        """
        GET - questionnaires on file
        POST {kind, payload} - create or replace the questionnaire of that kind
        """
        patient = self.get_object()

        if request.method == 'GET':
            records = patient.anamnesis_records.order_by('kind')
            return Response(AnamnesisRecordSerializer(records, many=True).data)

        serializer = AnamnesisUpsertSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        record = upsert_anamnesis(
            patient,
            serializer.validated_data['kind'],
            serializer.validated_data['payload'],
            user=request.user,
            request=request,
        )
        return Response(AnamnesisRecordSerializer(record).data)


class ClinicalEventViewSet(viewsets.ModelViewSet):
    """
    Clinical events.

    Query parameters (list):
    - ?patient=<uuid>
    - ?event_type=procedure|consultation|document
    """
    permission_classes = [ClinicalEventPermission]

    def get_queryset(self):
        queryset = ClinicalEvent.objects.select_related('patient').prefetch_related(
            'consumption_entries__item'
        ).filter(patient__is_deleted=False)

        patient_id = self.request.query_params.get('patient')
        if patient_id:
            queryset = queryset.filter(patient_id=patient_id)

        event_type = self.request.query_params.get('event_type')
        if event_type:
            queryset = queryset.filter(event_type=event_type)

        return queryset.order_by('-performed_on', '-created_at')

    def get_serializer_class(self):
        if self.action in ['create', 'update', 'partial_update']:
            return ClinicalEventWriteSerializer
        return ClinicalEventSerializer

    def get_serializer_context(self):
        context = super().get_serializer_context()
        if self.action in ['list', 'retrieve']:
            context['validity_catalog'] = build_validity_catalog(list_services_with_expiration())
        return context

    def _render(self, event, status_code=status.HTTP_200_OK):
        context = self.get_serializer_context()
        context['validity_catalog'] = build_validity_catalog(list_services_with_expiration())
        return Response(ClinicalEventSerializer(event, context=context).data, status=status_code)

    def create(self, request, *args, **kwargs):
        """Record an event and the supplies it consumed in one step."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        patient = data.pop('patient')
        lines = [
            ConsumptionLine(item=line['item'], quantity=line['quantity'])
            for line in data.pop('consumption', [])
        ]

        try:
            event = record_clinical_event(patient, data, lines, user=request.user, request=request)
        except DomainError as exc:
            return error_response(exc)

        return self._render(event, status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        event = self.get_object()
        serializer = self.get_serializer(event, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data.pop('patient', None)

        event = update_clinical_event(event, data, user=request.user, request=request)
        return self._render(event)

    def perform_destroy(self, instance):
        delete_clinical_event(instance, user=self.request.user, request=self.request)


class PatientPhotoViewSet(viewsets.ModelViewSet):
    """
    Before/after photos.

    POST (multipart): patient, title, taken_on, description, before, after
    """
    permission_classes = [IsClinicalStaff]
    serializer_class = PatientPhotoSerializer
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get_queryset(self):
        queryset = PatientPhoto.objects.select_related('patient').filter(patient__is_deleted=False)
        patient_id = self.request.query_params.get('patient')
        if patient_id:
            queryset = queryset.filter(patient_id=patient_id)
        return queryset.order_by('-taken_on', '-created_at')

    def create(self, request, *args, **kwargs):
        patient = Patient.objects.filter(pk=request.data.get('patient'), is_deleted=False).first()
        if patient is None:
            return Response(
                {'error': {'code': 'not_found', 'message': 'Patient not found'}},
                status=status.HTTP_404_NOT_FOUND
            )

        upload = PatientPhotoUploadSerializer(data=request.data)
        upload.is_valid(raise_exception=True)
        data = upload.validated_data

        sides = {}
        for side in ('before', 'after'):
            file = data.get(side)
            if file:
                sides[side] = (file.read(), file.name)

        try:
            photo = add_patient_photo(
                patient,
                title=data['title'],
                taken_on=data['taken_on'],
                description=data['description'],
                user=request.user,
                request=request,
                **sides
            )
        except DomainError as exc:
            return error_response(exc)

        return Response(self.get_serializer(photo).data, status=status.HTTP_201_CREATED)

    def perform_destroy(self, instance):
        delete_patient_photo(
            instance, settings.MINIO_CLINICAL_BUCKET, user=self.request.user, request=self.request
        )

    @action(detail=True, methods=['post'], url_path=r'images/(?P<side>before|after)')
    def images(self, request, pk=None, side=None):
        """Replace the before or after image of a pair."""
        photo = self.get_object()
        upload = ImageUploadSerializer(data=request.data)
        upload.is_valid(raise_exception=True)
        file = upload.validated_data['file']
        try:
            replace_photo_image(photo, side, file.read(), file.name, user=request.user, request=request)
        except DomainError as exc:
            return error_response(exc)
        return Response(self.get_serializer(photo).data)


class AppointmentViewSet(viewsets.ModelViewSet):
    """
    Appointments. Writes go to the configured calendar store, which keeps
    the external calendar and the local rows in step.

    Query parameters (list):
    - ?patient=<uuid>
    - ?start=<iso>, ?end=<iso>
    """
    permission_classes = [AppointmentPermission]
    serializer_class = AppointmentSerializer

    def get_queryset(self):
        queryset = Appointment.objects.select_related('patient')

        if is_portal_patient(get_user_roles(self.request.user)):
            queryset = queryset.filter(patient__user=self.request.user)

        patient_id = self.request.query_params.get('patient')
        if patient_id:
            queryset = queryset.filter(patient_id=patient_id)

        start = self.request.query_params.get('start')
        if start:
            queryset = queryset.filter(ends_at__gte=start)

        end = self.request.query_params.get('end')
        if end:
            queryset = queryset.filter(starts_at__lte=end)

        return queryset.order_by('starts_at')

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            appointment = get_calendar_store().create_event(
                data['patient'],
                data['starts_at'],
                data['ends_at'],
                procedure=data.get('procedure', ''),
                description=data.get('description', ''),
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(self.get_serializer(appointment).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        """Only the time slot can be moved; other fields are set at booking."""
        partial = kwargs.pop('partial', False)
        appointment = self.get_object()
        serializer = self.get_serializer(appointment, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            appointment = get_calendar_store().update_event(
                appointment,
                data.get('starts_at', appointment.starts_at),
                data.get('ends_at', appointment.ends_at),
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(self.get_serializer(appointment).data)

    def destroy(self, request, *args, **kwargs):
        appointment = self.get_object()
        try:
            get_calendar_store().delete_event(appointment)
        except DomainError as exc:
            return error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)
