"""
Consent document URLs.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import ConsentDocumentViewSet

router = DefaultRouter()
router.register(r'documents', ConsentDocumentViewSet, basename='consent-document')

urlpatterns = [
    path('', include(router.urls)),
]
