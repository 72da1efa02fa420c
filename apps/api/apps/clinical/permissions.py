"""
Clinical permissions for API endpoints.

BUSINESS RULE: Only Admin and Practitioner see professional-facing clinical
data (clinical notes, questionnaires, photos). Portal patients only reach
their own record.
"""
from rest_framework import permissions

from apps.authz.models import RoleChoices
from apps.authz.permissions import CLINICAL_ROLES, RoleBasedPermission, get_user_roles


def is_portal_patient(user_roles):
    """True for users whose only access is through their own patient record."""
    return RoleChoices.PATIENT in user_roles and not (user_roles - {RoleChoices.PATIENT})


def owns_patient_record(user, patient):
    return patient is not None and patient.user_id is not None and patient.user_id == user.pk


class IsClinicalStaff(permissions.BasePermission):
    """
    Permission for clinical endpoints (events, photos, questionnaires).

    - Admin: Full access
    - Practitioner: Full access
    - Reception, Accounting, Marketing, Patient: NO ACCESS
    """

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return bool(get_user_roles(request.user) & CLINICAL_ROLES)


class PatientPermission(RoleBasedPermission):
    """
    Permission for Patient endpoints based on role.

    - Admin: Full access (read, write, soft-delete)
    - Practitioner, Reception: Read, create, update
    - Accounting: Read only
    - Marketing: No access
    - Patient: Read own record only (object level)
    """
    read_roles = frozenset({
        RoleChoices.ADMIN,
        RoleChoices.PRACTITIONER,
        RoleChoices.RECEPTION,
        RoleChoices.ACCOUNTING,
        RoleChoices.PATIENT,
    })
    write_roles = frozenset({RoleChoices.ADMIN, RoleChoices.PRACTITIONER, RoleChoices.RECEPTION})

    def has_object_permission(self, request, view, obj):
        user_roles = get_user_roles(request.user)
        if is_portal_patient(user_roles):
            return request.method in permissions.SAFE_METHODS and owns_patient_record(request.user, obj)
        return True


class AppointmentPermission(RoleBasedPermission):
    """
    - Admin, Practitioner, Reception: Full agenda access
    - Patient: Read own appointments (filtered in the view)
    """
    read_roles = frozenset({
        RoleChoices.ADMIN,
        RoleChoices.PRACTITIONER,
        RoleChoices.RECEPTION,
        RoleChoices.PATIENT,
    })
    write_roles = frozenset({RoleChoices.ADMIN, RoleChoices.PRACTITIONER, RoleChoices.RECEPTION})
    delete_roles = frozenset({RoleChoices.ADMIN, RoleChoices.PRACTITIONER, RoleChoices.RECEPTION})

    def has_object_permission(self, request, view, obj):
        if is_portal_patient(get_user_roles(request.user)):
            return request.method in permissions.SAFE_METHODS and owns_patient_record(request.user, obj.patient)
        return True


class PatientAvatarPermission(RoleBasedPermission):
    """Front desk and clinical staff may replace or remove a patient's avatar."""
    read_roles = frozenset({RoleChoices.ADMIN, RoleChoices.PRACTITIONER, RoleChoices.RECEPTION})
    write_roles = read_roles
    delete_roles = read_roles
