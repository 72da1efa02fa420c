"""
Clinical URLs - Patients, Clinical Events, Photos, Appointments
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    AppointmentViewSet,
    ClinicalEventViewSet,
    PatientPhotoViewSet,
    PatientViewSet,
)

router = DefaultRouter()
router.register(r'patients', PatientViewSet, basename='patient')
router.register(r'events', ClinicalEventViewSet, basename='clinical-event')
router.register(r'photos', PatientPhotoViewSet, basename='patient-photo')
router.register(r'appointments', AppointmentViewSet, basename='appointment')

urlpatterns = [
    path('', include(router.urls)),
]
