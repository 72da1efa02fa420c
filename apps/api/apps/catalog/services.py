"""
Catalog services - read side consumed by the clinical core.
"""
from typing import Dict, List

from .models import Service


def list_services_with_expiration() -> List[Dict]:
    """
    Return ``[{'name', 'validity_months'}]`` for services whose effect expires.

    Inactive services are included: a procedure performed while the service
    was offered keeps expiring after the service leaves the menu.
    """
    return list(
        Service.objects.filter(validity_months__gt=0)
        .order_by('name')
        .values('name', 'validity_months')
    )
