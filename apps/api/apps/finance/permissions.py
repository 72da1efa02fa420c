"""
Finance permissions.

- Admin, Accounting: Full access
- Reception: Read + create (payments taken at the front desk)
- Practitioner, Marketing, Patient: No access
"""
from apps.authz.models import RoleChoices
from apps.authz.permissions import RoleBasedPermission


class FinancialPostingPermission(RoleBasedPermission):
    read_roles = frozenset({RoleChoices.ADMIN, RoleChoices.ACCOUNTING, RoleChoices.RECEPTION})
    write_roles = frozenset({RoleChoices.ADMIN, RoleChoices.ACCOUNTING, RoleChoices.RECEPTION})
    delete_roles = frozenset({RoleChoices.ADMIN, RoleChoices.ACCOUNTING})
