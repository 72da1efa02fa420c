"""Catalog views."""
from rest_framework import filters, viewsets

from .models import Service
from .permissions import ServicePermission
from .serializers import ServiceSerializer


class ServiceViewSet(viewsets.ModelViewSet):
    """
    Service catalog CRUD.

    Query parameters:
    - ?include_inactive=true - Include services no longer offered
    - ?category=facial|body|injectables|laser|other
    """
    serializer_class = ServiceSerializer
    permission_classes = [ServicePermission]
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['name', 'description']
    ordering_fields = ['name', 'price', 'validity_months']
    ordering = ['name']

    def get_queryset(self):
        queryset = Service.objects.all()

        include_inactive = self.request.query_params.get('include_inactive', 'false').lower() == 'true'
        if not include_inactive:
            queryset = queryset.filter(is_active=True)

        category = self.request.query_params.get('category')
        if category:
            queryset = queryset.filter(category=category)

        return queryset
