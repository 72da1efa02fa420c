"""
Global test fixtures for pytest.

Provides reusable fixtures for API testing:
- Authenticated API clients by role
- Model instances (Patient, ClinicalEvent, InventoryItem, Service, etc.)
"""
from datetime import date
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from apps.authz.models import User, Role, UserRole, RoleChoices
from apps.catalog.models import Service
from apps.clinical.models import AnamnesisRecord, ClinicalEvent, Patient
from apps.stock.models import InventoryItem


def create_user_with_role(email, role_name, **extra):
    """Create an active user holding ``role_name``."""
    user = User.objects.create_user(
        email=email,
        password='testpass123',
        is_active=True,
        **extra
    )
    role, _ = Role.objects.get_or_create(name=role_name)
    UserRole.objects.create(user=user, role=role)
    return user


def client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


# ============================================================================
# API Clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def admin_client(admin_user):
    """
    Authenticated API client with Admin role.
    Admin has full access to all resources.
    """
    return client_for(admin_user)


@pytest.fixture
def practitioner_client(practitioner_user):
    """
    Authenticated API client with Practitioner role.
    Practitioner has clinical access (events, photos, questionnaires, inventory).
    """
    return client_for(practitioner_user)


@pytest.fixture
def reception_client(db):
    """
    Authenticated API client with Reception role.
    Reception manages patients, agenda, consents and front-desk payments.
    """
    return client_for(create_user_with_role('reception@test.com', RoleChoices.RECEPTION))


@pytest.fixture
def accounting_client(db):
    """
    Authenticated API client with Accounting role.
    Accounting reads patients and owns finance.
    """
    return client_for(create_user_with_role('accounting@test.com', RoleChoices.ACCOUNTING))


@pytest.fixture
def marketing_client(db):
    """
    Authenticated API client with Marketing role.
    Marketing has NO access to clinical data (should receive 403).
    """
    return client_for(create_user_with_role('marketing@test.com', RoleChoices.MARKETING))


@pytest.fixture
def patient_client(patient_user):
    """Portal client of the patient linked to the ``patient`` fixture."""
    return client_for(patient_user)


# ============================================================================
# User Fixtures
# ============================================================================

@pytest.fixture
def admin_user(db):
    """Admin user (without authenticated client)."""
    return create_user_with_role(
        'admin_user@test.com', RoleChoices.ADMIN, is_staff=True, is_superuser=True
    )


@pytest.fixture
def practitioner_user(db):
    """Practitioner user (without authenticated client)."""
    return create_user_with_role('practitioner_user@test.com', RoleChoices.PRACTITIONER)


@pytest.fixture
def patient_user(db):
    """Portal account with the patient role."""
    return create_user_with_role('portal@test.com', RoleChoices.PATIENT)


# ============================================================================
# Model Fixtures
# ============================================================================

@pytest.fixture
def patient(db, admin_user, patient_user):
    """Create a patient linked to the portal account."""
    return Patient.objects.create(
        first_name='John',
        last_name='Doe',
        birth_date='1990-01-15',
        sex='male',
        email='john.doe@test.com',
        phone='+33600000000',
        declared_allergies='Lidocaine',
        alert_tags=['Anticoagulants'],
        user=patient_user,
        created_by_user=admin_user
    )


@pytest.fixture
def other_patient(db, admin_user):
    return Patient.objects.create(
        first_name='Jane',
        last_name='Roe',
        email='jane.roe@test.com',
        created_by_user=admin_user
    )


@pytest.fixture
def botox_service(db):
    """Catalog service whose effect lasts 4 months."""
    return Service.objects.create(
        name='Botox',
        category='injectables',
        price=Decimal('1200.00'),
        validity_months=4,
    )


@pytest.fixture
def cleansing_service(db):
    """Catalog service that never expires."""
    return Service.objects.create(name='Deep Cleansing', category='facial', validity_months=0)


@pytest.fixture
def clinical_event(db, patient, practitioner_user):
    return ClinicalEvent.objects.create(
        patient=patient,
        performed_on=date(2024, 1, 31),
        title='Botox',
        event_type='procedure',
        clinical_notes='20U glabella',
        patient_summary='Botox application',
        professional_name='Dr. Test',
        created_by_user=practitioner_user,
    )


@pytest.fixture
def inventory_item(db):
    """Toxin vials, 10 in stock."""
    return InventoryItem.objects.create(
        name='Botulinum toxin 100U',
        category='injectables',
        unit='vial',
        stock_quantity=Decimal('10'),
        min_stock=Decimal('2'),
        unit_cost=Decimal('450.00'),
    )


@pytest.fixture
def syringe_item(db):
    return InventoryItem.objects.create(
        name='Syringe 1ml',
        unit='syringe',
        stock_quantity=Decimal('3'),
        min_stock=Decimal('5'),
        unit_cost=Decimal('1.50'),
    )


@pytest.fixture
def facial_anamnesis(db, patient):
    return AnamnesisRecord.objects.create(
        patient=patient,
        kind='facial',
        payload={'health_history': {'diabetes': True, 'pregnant': False, 'allergies': 'Latex'}},
    )


# ============================================================================
# Factory-style Fixtures (for creating multiple instances)
# ============================================================================

@pytest.fixture
def patient_factory(db, admin_user):
    """
    Factory fixture for creating multiple patients.

    Usage:
        patient1 = patient_factory(first_name='Jane', last_name='Smith')
        patient2 = patient_factory(email='test@example.com')
    """
    created_patients = []

    def _create_patient(**kwargs):
        defaults = {
            'first_name': 'Test',
            'last_name': 'Patient',
            'email': f'patient{len(created_patients)}@test.com',
            'created_by_user': admin_user
        }
        defaults.update(kwargs)
        patient = Patient.objects.create(**defaults)
        created_patients.append(patient)
        return patient

    return _create_patient
