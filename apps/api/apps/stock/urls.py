"""Inventory URLs."""
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from .views import InventoryItemViewSet, ConsumptionEntryViewSet

router = DefaultRouter()
router.register(r'items', InventoryItemViewSet, basename='inventory-item')
router.register(r'consumption', ConsumptionEntryViewSet, basename='inventory-consumption')

urlpatterns = [
    path('', include(router.urls)),
]
