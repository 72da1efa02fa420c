"""Inventory serializers."""
from decimal import Decimal

from rest_framework import serializers

from .models import ConsumptionEntry, InventoryItem, RestockEntry


class InventoryItemSerializer(serializers.ModelSerializer):
    """
    Inventory item.

    ``stock_quantity`` can be set on create only; afterwards stock moves
    through consumption and restock.
    """

    is_low_stock = serializers.BooleanField(read_only=True)
    stock_value = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = InventoryItem
        fields = [
            'id', 'name', 'category', 'unit', 'stock_quantity', 'min_stock',
            'unit_cost', 'last_restocked_at', 'is_active',
            'is_low_stock', 'stock_value',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'last_restocked_at', 'created_at', 'updated_at']

    def validate_stock_quantity(self, value):
        if self.instance is not None and value != self.instance.stock_quantity:
            raise serializers.ValidationError(
                'Stock quantity changes only through consumption or restock'
            )
        if value < 0:
            raise serializers.ValidationError('Stock quantity cannot be negative')
        return value

    def validate_min_stock(self, value):
        if value < 0:
            raise serializers.ValidationError('Minimum stock cannot be negative')
        return value


class ConsumptionEntrySerializer(serializers.ModelSerializer):
    item_name = serializers.CharField(source='item.name', read_only=True)
    total_cost = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = ConsumptionEntry
        fields = [
            'id', 'clinical_event', 'item', 'item_name', 'quantity', 'unit',
            'unit_cost', 'total_cost', 'created_at',
        ]
        read_only_fields = fields


class ConsumptionLineSerializer(serializers.Serializer):
    """Write shape of one consumption line inside a clinical event payload."""
    item = serializers.PrimaryKeyRelatedField(queryset=InventoryItem.objects.all())
    quantity = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))


class RestockSerializer(serializers.Serializer):
    quantity = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    note = serializers.CharField(required=False, allow_blank=True, default='')


class RestockEntrySerializer(serializers.ModelSerializer):
    created_by_email = serializers.EmailField(source='created_by.email', read_only=True, default=None)

    class Meta:
        model = RestockEntry
        fields = ['id', 'item', 'quantity', 'note', 'created_by_email', 'created_at']
        read_only_fields = fields
