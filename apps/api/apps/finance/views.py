"""Finance views."""
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.core.errors import DomainError, error_response

from .models import FinancialPosting
from .permissions import FinancialPostingPermission
from .serializers import FinancialEntryCreateSerializer, FinancialPostingSerializer
from .services import PostingTemplate, financial_summary, record_financial_entry


class FinancialPostingViewSet(viewsets.ModelViewSet):
    """
    Income and expense postings.

    Query parameters:
    - ?direction=income|expense
    - ?status=received|open|paid|unpaid
    - ?patient=<uuid>
    - ?date_from=YYYY-MM-DD, ?date_to=YYYY-MM-DD
    - ?recurrence_group=<uuid>
    """
    permission_classes = [FinancialPostingPermission]
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['description', 'category']
    ordering_fields = ['posted_on', 'amount', 'created_at']
    ordering = ['-posted_on', '-created_at']

    def get_queryset(self):
        queryset = FinancialPosting.objects.select_related('patient')
        params = self.request.query_params

        for param in ('direction', 'status', 'recurrence_group'):
            value = params.get(param)
            if value:
                queryset = queryset.filter(**{param: value})

        patient_id = params.get('patient')
        if patient_id:
            queryset = queryset.filter(patient_id=patient_id)

        date_from = params.get('date_from')
        if date_from:
            queryset = queryset.filter(posted_on__gte=date_from)

        date_to = params.get('date_to')
        if date_to:
            queryset = queryset.filter(posted_on__lte=date_to)

        return queryset

    def get_serializer_class(self):
        if self.action == 'create':
            return FinancialEntryCreateSerializer
        return FinancialPostingSerializer

    def create(self, request, *args, **kwargs):
        """
        Record a posting. With ``recurring=true`` an expense is expanded
        into one posting per month; the response lists all of them.
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        template = PostingTemplate(
            description=data['description'],
            amount=data['amount'],
            direction=data['direction'],
            cost=data['cost'],
            category=data['category'],
            payment_method=data['payment_method'],
            is_paid=data['is_paid'],
            patient=data.get('patient'),
        )

        try:
            postings = record_financial_entry(
                template,
                data['posted_on'],
                recurring=data['recurring'],
                occurrences=data.get('occurrences'),
                created_by=request.user,
            )
        except DomainError as exc:
            return error_response(exc)

        return Response(
            FinancialPostingSerializer(postings, many=True).data,
            status=status.HTTP_201_CREATED
        )

    @action(detail=False, methods=['get'], url_path='summary')
    def summary(self, request):
        """Income, expense, balance and margin over the filtered postings."""
        totals = financial_summary(self.filter_queryset(self.get_queryset()))
        return Response({key: str(value) for key, value in totals.items()})
