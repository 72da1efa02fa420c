"""
Consent document permissions.

- Admin, Practitioner, Reception: Request, reissue, sign, read
- Patient: Read and sign their own documents (object level)
- Accounting, Marketing: No access
"""
from rest_framework import permissions

from apps.authz.models import RoleChoices
from apps.authz.permissions import RoleBasedPermission, get_user_roles
from apps.clinical.permissions import is_portal_patient, owns_patient_record

# Actions a portal patient may trigger on their own document
PATIENT_ACTIONS = frozenset({'list', 'retrieve', 'history', 'sign'})


class ConsentDocumentPermission(RoleBasedPermission):
    read_roles = frozenset({
        RoleChoices.ADMIN,
        RoleChoices.PRACTITIONER,
        RoleChoices.RECEPTION,
        RoleChoices.PATIENT,
    })
    write_roles = frozenset({
        RoleChoices.ADMIN,
        RoleChoices.PRACTITIONER,
        RoleChoices.RECEPTION,
    })

    def has_permission(self, request, view):
        user_roles = get_user_roles(request.user)
        if is_portal_patient(user_roles):
            return getattr(view, 'action', None) in PATIENT_ACTIONS
        return super().has_permission(request, view)

    def has_object_permission(self, request, view, obj):
        if is_portal_patient(get_user_roles(request.user)):
            return owns_patient_record(request.user, obj.patient)
        return True
