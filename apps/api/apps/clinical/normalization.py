"""
Legacy patient payload normalization.

Older clients and imported spreadsheets send patients with a different
field vocabulary (``name``, ``zipCode``, ``avatar`` ...). Payloads are
mapped onto the canonical field names before validation. When both a
legacy and a canonical key are present the canonical value wins.
"""
from typing import Any, Dict, Mapping

# legacy key -> canonical key
LEGACY_FIELD_MAP = {
    'address': 'address_line1',
    'street': 'address_line1',
    'zipCode': 'postal_code',
    'zip_code': 'postal_code',
    'zip': 'postal_code',
    'birthDate': 'birth_date',
    'dateOfBirth': 'birth_date',
    'firstName': 'first_name',
    'lastName': 'last_name',
    'allergies': 'declared_allergies',
    'avatar': 'avatar_path',
    'avatar_url': 'avatar_path',
    'avatarUrl': 'avatar_path',
    'alertTags': 'alert_tags',
    'tags': 'alert_tags',
}


def split_full_name(name: str):
    """'Ana Maria Souza' -> ('Ana', 'Maria Souza')"""
    parts = (name or '').split()
    if not parts:
        return '', ''
    return parts[0], ' '.join(parts[1:])


def normalize_patient_payload(data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of ``data`` using canonical patient field names.

    - legacy keys are renamed unless the canonical key is also present
    - ``name`` is split into ``first_name``/``last_name`` when those are absent
    - ``status`` is case-folded (``'VIP'`` -> ``'vip'``)
    """
    normalized = {}
    legacy = {}
    for key, value in data.items():
        canonical = LEGACY_FIELD_MAP.get(key)
        if canonical is None:
            normalized[key] = value
        else:
            legacy.setdefault(canonical, value)

    for canonical, value in legacy.items():
        normalized.setdefault(canonical, value)

    name = normalized.pop('name', None)
    if isinstance(name, str) and name.strip():
        first, last = split_full_name(name)
        normalized.setdefault('first_name', first)
        normalized.setdefault('last_name', last)

    status = normalized.get('status')
    if isinstance(status, str):
        normalized['status'] = status.strip().casefold()

    return normalized
