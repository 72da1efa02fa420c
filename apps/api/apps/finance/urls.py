"""Finance URLs."""
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from .views import FinancialPostingViewSet

router = DefaultRouter()
router.register(r'postings', FinancialPostingViewSet, basename='financial-posting')

urlpatterns = [
    path('', include(router.urls)),
]
