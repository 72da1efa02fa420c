"""
Tests for safety-tag aggregation.

Business Rules:
- Sources: manual alert tags, declared allergies, facial and body questionnaires
- Tags are trimmed, blanks dropped, duplicates removed, first-seen order kept
- Aggregation is idempotent: aggregating its own output changes nothing
- Allergies collected for consent forms appear once each
"""
from types import SimpleNamespace

import pytest

from apps.clinical.normalization import normalize_patient_payload, split_full_name
from apps.clinical.safety_tags import (
    aggregate_safety_tags,
    body_questionnaire_tags,
    collect_allergies,
    facial_questionnaire_tags,
    patient_safety_tags,
)

BODY_PAYLOAD = {
    'patient_history': {
        'medication': {'uses': True, 'which': 'Warfarin'},
        'allergies': {'has': True, 'which': 'Latex'},
        'skin_conditions': {'has': True, 'which': ''},
        'blood_pressure': {'hypertension': True, 'hypotension': False},
        'pacemaker': False,
        'epilepsy': True,
        'circulatory_disorder': {'thrombosis': False, 'varicose_veins': True},
        'diabetes': {'has': True, 'type': 'type 2'},
        'metal_implants': {'has': True, 'where': 'knee'},
    }
}


def record(kind, payload):
    return SimpleNamespace(kind=kind, payload=payload)


class TestAggregate:

    def test_merges_in_source_order_without_duplicates(self):
        merged = aggregate_safety_tags([
            ['Pacemaker', ' Allergy: Latex '],
            ['Allergy: Latex', 'Diabetes'],
            ['Pacemaker'],
        ])
        assert merged == ['Pacemaker', 'Allergy: Latex', 'Diabetes']

    def test_blank_and_missing_sources_ignored(self):
        assert aggregate_safety_tags([None, [], ['', '   '], ['Herpes']]) == ['Herpes']

    def test_idempotent(self):
        sources = [['B', 'A'], ['A', ' C', 'B'], ['D']]
        once = aggregate_safety_tags(sources)
        assert aggregate_safety_tags([once]) == once
        assert aggregate_safety_tags([once, once]) == once

    def test_non_string_entries_dropped(self):
        assert aggregate_safety_tags([[None, 3, 'Epilepsy']]) == ['Epilepsy']


class TestQuestionnaires:

    def test_facial_flags_use_canonical_labels(self):
        payload = {'health_history': {
            'diabetes': True,
            'thyroid': True,
            'pregnant': False,
            'trying_to_conceive': True,
            'allergies': ' Dipyrone ',
        }}
        assert facial_questionnaire_tags(payload) == [
            'Diabetes', 'Thyroid disorder', 'Trying to conceive', 'Allergy: Dipyrone'
        ]

    def test_facial_truthy_strings_are_not_flags(self):
        assert facial_questionnaire_tags({'health_history': {'diabetes': 'yes'}}) == []

    def test_body_history(self):
        assert body_questionnaire_tags(BODY_PAYLOAD) == [
            'Medication: Warfarin',
            'Allergy: Latex',
            'Skin condition',
            'Hypertension',
            'Epilepsy',
            'Varicose veins',
            'Diabetes type 2',
            'Metal implants',
        ]

    def test_malformed_payloads_yield_nothing(self):
        assert body_questionnaire_tags(None) == []
        assert body_questionnaire_tags({'patient_history': 'n/a'}) == []
        assert facial_questionnaire_tags({}) == []


class TestPatientTags:

    def test_sources_combined_regardless_of_record_order(self):
        patient = SimpleNamespace(alert_tags=['Anticoagulants'], declared_allergies='Latex')
        records = [
            record('body', BODY_PAYLOAD),
            record('facial', {'health_history': {'diabetes': True, 'allergies': 'Latex'}}),
        ]

        tags = patient_safety_tags(patient, records)

        assert tags[:3] == ['Anticoagulants', 'Allergy: Latex', 'Diabetes']
        assert tags.count('Allergy: Latex') == 1
        assert patient_safety_tags(patient, list(reversed(records))) == tags

    def test_collect_allergies_deduplicates(self):
        patient = SimpleNamespace(alert_tags=[], declared_allergies='Lidocaine')
        records = [
            record('facial', {'health_history': {'allergies': 'Latex'}}),
            record('body', {'patient_history': {'allergies': {'has': True, 'which': 'Lidocaine'}}}),
        ]
        assert collect_allergies(patient, records) == 'Lidocaine, Latex'

    def test_no_allergies_is_empty_string(self):
        patient = SimpleNamespace(alert_tags=[], declared_allergies='')
        assert collect_allergies(patient, []) == ''


class TestLegacyNormalization:

    def test_legacy_keys_renamed(self):
        normalized = normalize_patient_payload({
            'name': 'Ana Maria Souza',
            'zipCode': '01310-100',
            'address': 'Av. Paulista 1000',
            'birthDate': '1985-04-12',
            'allergies': 'Latex',
            'status': 'VIP',
        })
        assert normalized == {
            'first_name': 'Ana',
            'last_name': 'Maria Souza',
            'postal_code': '01310-100',
            'address_line1': 'Av. Paulista 1000',
            'birth_date': '1985-04-12',
            'declared_allergies': 'Latex',
            'status': 'vip',
        }

    def test_canonical_key_wins(self):
        normalized = normalize_patient_payload({'zip': '111', 'postal_code': '222', 'first_name': 'Bea', 'name': 'X Y'})
        assert normalized['postal_code'] == '222'
        assert normalized['first_name'] == 'Bea'
        assert normalized['last_name'] == 'Y'

    def test_split_single_word_name(self):
        assert split_full_name('Cher') == ('Cher', '')
        assert split_full_name('') == ('', '')


@pytest.mark.django_db
class TestLegacyPatientApi:

    def test_create_from_legacy_payload(self, reception_client):
        response = reception_client.post('/api/v1/clinical/patients/', {
            'name': 'Ana Souza',
            'zipCode': '01310-100',
            'allergies': 'Latex',
            'alertTags': [' Pacemaker ', ''],
            'status': 'Recurring',
        }, format='json')

        assert response.status_code == 201
        assert response.data['first_name'] == 'Ana'
        assert response.data['last_name'] == 'Souza'
        assert response.data['postal_code'] == '01310-100'
        assert response.data['declared_allergies'] == 'Latex'
        assert response.data['alert_tags'] == ['Pacemaker']
        assert response.data['status'] == 'recurring'
