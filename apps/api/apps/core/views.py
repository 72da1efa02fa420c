"""
Core API views.
"""
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.permissions import get_user_roles


class CurrentUserView(APIView):
    """
    Current authenticated user profile endpoint.

    GET /api/auth/me/ - Returns profile of the authenticated user.

    Frontend calls this after a JWT login and uses ``roles`` to pick which
    screens to show (staff back office or patient portal). The backend
    remains the authorization authority.

    Response format:
    {
        "id": "uuid",
        "email": "user@example.com",
        "is_active": true,
        "roles": ["admin", "practitioner"],
        "patient_id": null
    }
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = request.user
        patient = getattr(user, 'patient_profile', None)
        return Response({
            'id': str(user.id),
            'email': user.email,
            'is_active': user.is_active,
            'roles': sorted(get_user_roles(user)),
            'patient_id': str(patient.id) if patient else None,
        }, status=status.HTTP_200_OK)
