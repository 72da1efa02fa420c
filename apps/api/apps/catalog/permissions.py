"""
Catalog permissions.

- Admin: Full access
- Practitioner, Reception, Accounting, Marketing: Read-only
- Patient: No access
"""
from apps.authz.models import RoleChoices
from apps.authz.permissions import RoleBasedPermission, STAFF_ROLES


class ServicePermission(RoleBasedPermission):
    read_roles = STAFF_ROLES
    write_roles = frozenset({RoleChoices.ADMIN})
