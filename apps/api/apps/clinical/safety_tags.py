"""
Safety-tag aggregation.

Allergies and contraindications live in several independent sources (the
intake form, manual alert tags, facial and body questionnaires). Each
source yields raw tag strings; ``aggregate_safety_tags`` merges them into
one ordered, duplicate-free list. Everything here is a pure function of
its arguments: the caller fetches the records.

Questionnaire payload shapes:

    facial = {"health_history": {"diabetes": true, ..., "allergies": "latex"}}
    body = {"patient_history": {
        "medication": {"uses": true, "which": "..."},
        "allergies": {"has": true, "which": "..."},
        "skin_conditions": {"has": true, "which": "..."},
        "blood_pressure": {"hypertension": true, "hypotension": false},
        "pacemaker": true,
        "epilepsy": false,
        "circulatory_disorder": {"thrombosis": false, "varicose_veins": true},
        "diabetes": {"has": true, "type": "type 2"},
        "metal_implants": {"has": false, "where": ""},
    }}
"""
from typing import Iterable, List, Mapping, Optional

from apps.clinical.models import AnamnesisKindChoices

ALLERGY_PREFIX = 'Allergy: '
MEDICATION_PREFIX = 'Medication: '

# Boolean flags of the facial health history, in display order
FACIAL_FLAG_LABELS = (
    ('diabetes', 'Diabetes'),
    ('hypertension', 'Hypertension'),
    ('thyroid', 'Thyroid disorder'),
    ('cardiac', 'Heart condition'),
    ('pacemaker', 'Pacemaker'),
    ('autoimmune', 'Autoimmune disease'),
    ('coagulation', 'Coagulation disorder'),
    ('herpes', 'Herpes'),
    ('epilepsy', 'Epilepsy'),
    ('pregnant', 'Pregnant'),
    ('breastfeeding', 'Breastfeeding'),
    ('trying_to_conceive', 'Trying to conceive'),
)


def _text(value) -> str:
    return value.strip() if isinstance(value, str) else ''


def _section(payload: Optional[Mapping], key: str) -> Mapping:
    value = (payload or {}).get(key)
    return value if isinstance(value, Mapping) else {}


def aggregate_safety_tags(sources: Iterable[Iterable[str]]) -> List[str]:
    """
    Merge tag sources into one list.

    Tags are trimmed, blanks dropped and duplicates (exact equality after
    trimming) removed. Order is first-seen across sources in the given order.
    """
    seen = set()
    merged = []
    for source in sources:
        for raw in source or ():
            tag = _text(raw)
            if tag and tag not in seen:
                seen.add(tag)
                merged.append(tag)
    return merged


def declared_allergy_tags(declared_allergies: Optional[str]) -> List[str]:
    text = _text(declared_allergies)
    return [f'{ALLERGY_PREFIX}{text}'] if text else []


def facial_questionnaire_tags(payload: Optional[Mapping]) -> List[str]:
    history = _section(payload, 'health_history')
    tags = [label for key, label in FACIAL_FLAG_LABELS if history.get(key) is True]
    allergies = _text(history.get('allergies'))
    if allergies:
        tags.append(f'{ALLERGY_PREFIX}{allergies}')
    return tags


def body_questionnaire_tags(payload: Optional[Mapping]) -> List[str]:
    history = _section(payload, 'patient_history')
    tags = []

    medication = _section(history, 'medication')
    if medication.get('uses') and _text(medication.get('which')):
        tags.append(f"{MEDICATION_PREFIX}{_text(medication.get('which'))}")

    allergies = _section(history, 'allergies')
    if allergies.get('has') and _text(allergies.get('which')):
        tags.append(f"{ALLERGY_PREFIX}{_text(allergies.get('which'))}")

    skin = _section(history, 'skin_conditions')
    if skin.get('has'):
        detail = _text(skin.get('which'))
        tags.append(f'Skin condition: {detail}' if detail else 'Skin condition')

    pressure = _section(history, 'blood_pressure')
    if pressure.get('hypertension') is True:
        tags.append('Hypertension')
    if pressure.get('hypotension') is True:
        tags.append('Hypotension')

    if history.get('pacemaker') is True:
        tags.append('Pacemaker')
    if history.get('epilepsy') is True:
        tags.append('Epilepsy')

    circulatory = _section(history, 'circulatory_disorder')
    if circulatory.get('thrombosis') is True:
        tags.append('Thrombosis')
    if circulatory.get('varicose_veins') is True:
        tags.append('Varicose veins')

    diabetes = _section(history, 'diabetes')
    if diabetes.get('has'):
        kind = _text(diabetes.get('type'))
        tags.append(f'Diabetes {kind}' if kind else 'Diabetes')

    metals = _section(history, 'metal_implants')
    if metals.get('has'):
        tags.append('Metal implants')

    return tags


QUESTIONNAIRE_EXTRACTORS = {
    AnamnesisKindChoices.FACIAL: facial_questionnaire_tags,
    AnamnesisKindChoices.BODY: body_questionnaire_tags,
}

# Sources are always read in this order so output does not depend on query order
_KIND_ORDER = [AnamnesisKindChoices.FACIAL, AnamnesisKindChoices.BODY]


def _ordered(records):
    return sorted(records, key=lambda record: _KIND_ORDER.index(record.kind))


def patient_safety_tags(patient, records) -> List[str]:
    """
    Safety tags for ``patient`` from its own fields plus ``records``
    (the patient's ``AnamnesisRecord`` rows).
    """
    sources = [
        patient.alert_tags or [],
        declared_allergy_tags(patient.declared_allergies),
    ]
    for record in _ordered(records):
        sources.append(QUESTIONNAIRE_EXTRACTORS[record.kind](record.payload))
    return aggregate_safety_tags(sources)


def collect_allergies(patient, records) -> str:
    """
    Comma-separated allergy list for printed consent forms.
    Each distinct allergy text appears once.
    """
    tags = patient_safety_tags(patient, records)
    allergies = [tag[len(ALLERGY_PREFIX):] for tag in tags if tag.startswith(ALLERGY_PREFIX)]
    return ', '.join(aggregate_safety_tags([allergies]))
