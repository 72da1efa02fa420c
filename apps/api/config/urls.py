"""
URL configuration for the clinic records API.
"""
from django.conf import settings
from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)
from apps.core.observability.health import HealthzView, ReadyzView

urlpatterns = [
    # Health checks (no auth required)
    path('healthz', HealthzView.as_view(), name='healthz'),
    path('readyz', ReadyzView.as_view(), name='readyz'),

    # Admin
    path('admin/', admin.site.urls),

    # Private API (authentication required)
    path('api/', include('apps.core.urls')),  # JWT auth, current user
    path('api/v1/catalog/', include('apps.catalog.urls')),  # Service catalog
    path('api/v1/clinical/', include('apps.clinical.urls')),  # Patients, events, photos, appointments
    path('api/v1/consents/', include('apps.documents.urls')),  # Consent documents
    path('api/v1/inventory/', include('apps.stock.urls')),  # Inventory items, consumption
    path('api/v1/finance/', include('apps.finance.urls')),  # Financial postings
    path('api/v1/integrations/', include('apps.integrations.urls')),  # Agenda

    # API Schema
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/schema/swagger-ui/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/schema/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]

# Debug toolbar
if settings.DEBUG_TOOLBAR:
    import debug_toolbar
    urlpatterns = [
        path('__debug__/', include(debug_toolbar.urls)),
    ] + urlpatterns
