"""Inventory views."""
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.core.errors import DomainError, error_response

from .models import ConsumptionEntry, InventoryItem
from .permissions import InventoryPermission
from .serializers import (
    ConsumptionEntrySerializer,
    InventoryItemSerializer,
    RestockEntrySerializer,
    RestockSerializer,
)
from .services import inventory_valuation, low_stock_items, restock as restock_item


class InventoryItemViewSet(viewsets.ModelViewSet):
    """
    Inventory items.

    Query parameters:
    - ?include_inactive=true - Include archived items
    - ?category=<name>
    """
    serializer_class = InventoryItemSerializer
    permission_classes = [InventoryPermission]
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['name', 'category']
    ordering_fields = ['name', 'stock_quantity', 'updated_at']
    ordering = ['name']

    def get_queryset(self):
        queryset = InventoryItem.objects.all()

        include_inactive = self.request.query_params.get('include_inactive', 'false').lower() == 'true'
        if not include_inactive:
            queryset = queryset.filter(is_active=True)

        category = self.request.query_params.get('category')
        if category:
            queryset = queryset.filter(category__iexact=category)

        return queryset

    def destroy(self, request, *args, **kwargs):
        # Consumption history references items; archive instead of deleting
        item = self.get_object()
        item.is_active = False
        item.save(update_fields=['is_active', 'updated_at'])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'], url_path='restock')
    def restock(self, request, pk=None):
        """Add stock to an item and record who did it."""
        item = self.get_object()
        serializer = RestockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            entry = restock_item(
                item,
                serializer.validated_data['quantity'],
                note=serializer.validated_data['note'],
                user=request.user,
            )
        except DomainError as exc:
            return error_response(exc)

        return Response(
            {
                'restock': RestockEntrySerializer(entry).data,
                'item': InventoryItemSerializer(item).data,
            },
            status=status.HTTP_201_CREATED
        )

    @action(detail=False, methods=['get'], url_path='low-stock')
    def low_stock(self, request):
        serializer = self.get_serializer(low_stock_items(), many=True)
        return Response(serializer.data)

    @action(detail=False, methods=['get'], url_path='valuation')
    def valuation(self, request):
        return Response(inventory_valuation())


class ConsumptionEntryViewSet(mixins.ListModelMixin,
                              mixins.RetrieveModelMixin,
                              viewsets.GenericViewSet):
    """
    Read-only consumption ledger.

    Query parameters:
    - ?item=<uuid>
    - ?clinical_event=<uuid>
    """
    serializer_class = ConsumptionEntrySerializer
    permission_classes = [InventoryPermission]

    def get_queryset(self):
        queryset = ConsumptionEntry.objects.select_related('item').order_by('-created_at')

        item_id = self.request.query_params.get('item')
        if item_id:
            queryset = queryset.filter(item_id=item_id)

        event_id = self.request.query_params.get('clinical_event')
        if event_id:
            queryset = queryset.filter(clinical_event_id=event_id)

        return queryset
