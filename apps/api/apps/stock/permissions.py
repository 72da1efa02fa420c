"""
Inventory permissions.

- Admin, Practitioner: Full access (practitioners consume and restock)
- Accounting: Read-only (valuation)
- Reception, Marketing, Patient: No access
"""
from apps.authz.models import RoleChoices
from apps.authz.permissions import RoleBasedPermission


class InventoryPermission(RoleBasedPermission):
    message = 'Access to inventory requires Admin, Practitioner or Accounting role.'

    read_roles = frozenset({RoleChoices.ADMIN, RoleChoices.PRACTITIONER, RoleChoices.ACCOUNTING})
    write_roles = frozenset({RoleChoices.ADMIN, RoleChoices.PRACTITIONER})
