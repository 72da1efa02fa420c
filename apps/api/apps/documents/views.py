"""
Consent document endpoints.

- GET  documents/                      current documents (?patient, ?document_type, ?history=true)
- POST documents/                      request a signature
- POST documents/reissue/              issue a fresh pending instance
- POST documents/{id}/sign/            digital-pad signature
- POST documents/{id}/sign-print/      printed form signed on paper
- GET  documents/{id}/history/         every instance of the same type
"""
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

from apps.authz.permissions import get_user_roles
from apps.clinical.permissions import is_portal_patient
from apps.core.errors import DomainError, error_response

from .models import ConsentDocument
from .permissions import ConsentDocumentPermission
from .serializers import (
    ConsentDocumentRequestSerializer,
    ConsentDocumentSerializer,
    ConsentDocumentSignSerializer,
)
from .services import (
    document_history,
    mark_signed_via_print,
    reissue,
    request_signature,
    sign,
    upload_signature,
)


class ConsentDocumentViewSet(mixins.ListModelMixin,
                             mixins.RetrieveModelMixin,
                             viewsets.GenericViewSet):
    """
    Consent documents. Instances are never edited or deleted through the
    API; every change is a state transition.
    """
    serializer_class = ConsentDocumentSerializer
    permission_classes = [ConsentDocumentPermission]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get_queryset(self):
        queryset = ConsentDocument.objects.select_related('patient').filter(patient__is_deleted=False)

        if is_portal_patient(get_user_roles(self.request.user)):
            queryset = queryset.filter(patient__user=self.request.user)

        if self.action == 'list':
            patient_id = self.request.query_params.get('patient')
            if patient_id:
                queryset = queryset.filter(patient_id=patient_id)

            document_type = self.request.query_params.get('document_type')
            if document_type:
                queryset = queryset.filter(document_type=document_type)

            include_history = self.request.query_params.get('history', 'false').lower() == 'true'
            if not include_history:
                queryset = queryset.current()

        return queryset.order_by('-issued_at')

    def create(self, request, *args, **kwargs):
        """Send a consent document to a patient for signature."""
        serializer = ConsentDocumentRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            document = request_signature(
                data['patient'],
                data['document_type'],
                title=data.get('title') or None,
                user=request.user,
            )
        except DomainError as exc:
            return error_response(exc)

        return Response(self.get_serializer(document).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'], url_path='reissue')
    def reissue(self, request):
        """Replace the current instance of a type with a new pending one."""
        serializer = ConsentDocumentRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            document = reissue(
                data['patient'],
                data['document_type'],
                title=data.get('title') or None,
                user=request.user,
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(self.get_serializer(document).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='sign')
    def sign(self, request, pk=None):
        """
        POST multipart ``file`` (drawn signature) or JSON ``signature_path``.
        """
        document = self.get_object()
        serializer = ConsentDocumentSignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            file = serializer.validated_data.get('file')
            if file:
                signature_path = upload_signature(document, file.read())
            else:
                signature_path = serializer.validated_data['signature_path']
            document = sign(document, signature_path, user=request.user)
        except DomainError as exc:
            return error_response(exc)

        return Response(self.get_serializer(document).data)

    @action(detail=True, methods=['post'], url_path='sign-print')
    def sign_print(self, request, pk=None):
        document = self.get_object()
        try:
            document = mark_signed_via_print(document, user=request.user)
        except DomainError as exc:
            return error_response(exc)
        return Response(self.get_serializer(document).data)

    @action(detail=True, methods=['get'], url_path='history')
    def history(self, request, pk=None):
        document = self.get_object()
        documents = document_history(document.patient, document.document_type)
        return Response(self.get_serializer(documents, many=True).data)
