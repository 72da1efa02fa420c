"""Inventory admin."""
from django.contrib import admin
from .models import InventoryItem, ConsumptionEntry, RestockEntry


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = [
        'name', 'category', 'unit', 'stock_quantity', 'min_stock',
        'unit_cost', 'is_low_stock', 'is_active'
    ]
    list_filter = ['category', 'unit', 'is_active']
    search_fields = ['name', 'category']
    # Stock moves only through consumption and restock
    readonly_fields = ['stock_quantity', 'last_restocked_at', 'created_at', 'updated_at']
    ordering = ['name']

    def is_low_stock(self, obj):
        return obj.is_low_stock
    is_low_stock.boolean = True


@admin.register(ConsumptionEntry)
class ConsumptionEntryAdmin(admin.ModelAdmin):
    list_display = ['item', 'quantity', 'unit', 'clinical_event', 'created_by', 'created_at']
    list_filter = ['created_at']
    search_fields = ['item__name']
    readonly_fields = [
        'clinical_event', 'item', 'quantity', 'unit', 'unit_cost',
        'created_by', 'created_at'
    ]
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False


@admin.register(RestockEntry)
class RestockEntryAdmin(admin.ModelAdmin):
    list_display = ['item', 'quantity', 'created_by', 'created_at']
    search_fields = ['item__name', 'note']
    readonly_fields = ['item', 'quantity', 'note', 'created_by', 'created_at']
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False
