"""
Role lookup helpers and shared permission classes.
"""
from rest_framework import permissions
from apps.authz.models import RoleChoices


# Roles allowed to read professional-facing clinical notes
CLINICAL_ROLES = frozenset({RoleChoices.ADMIN, RoleChoices.PRACTITIONER})

# Every back-office role (everyone except portal patients)
STAFF_ROLES = frozenset({
    RoleChoices.ADMIN,
    RoleChoices.PRACTITIONER,
    RoleChoices.RECEPTION,
    RoleChoices.ACCOUNTING,
    RoleChoices.MARKETING,
})


def get_user_roles(user):
    """Return the set of role names held by ``user`` (empty for anonymous)."""
    if not user or not user.is_authenticated:
        return set()
    return set(user.user_roles.values_list('role__name', flat=True))


class RoleBasedPermission(permissions.BasePermission):
    """
    Read/write role matrix.

    Subclasses declare ``read_roles`` and ``write_roles``; DELETE falls back
    to ``delete_roles`` (admin only by default).
    """
    read_roles = frozenset()
    write_roles = frozenset()
    delete_roles = frozenset({RoleChoices.ADMIN})

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        user_roles = get_user_roles(request.user)

        if request.method in permissions.SAFE_METHODS:
            return bool(user_roles & self.read_roles)

        if request.method in ['POST', 'PATCH', 'PUT']:
            return bool(user_roles & self.write_roles)

        if request.method == 'DELETE':
            return bool(user_roles & self.delete_roles)

        return False


class IsAdmin(permissions.BasePermission):
    """Only Admin role users."""

    def has_permission(self, request, view):
        return RoleChoices.ADMIN in get_user_roles(request.user)
