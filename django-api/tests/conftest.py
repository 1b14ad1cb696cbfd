"""Pytest configuration and shared fixtures."""

import uuid

import pytest
from rest_framework.test import APIClient

from registrations import models
from registrations.domain import PaymentMethod, Registrant
from registrations.services import (
    PaymentLedger,
    PricingService,
    RefundProcessor,
    RegistrationService,
)
from registrations.stores.django_store import DjangoRegistrationStore


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def org_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture
def org_client(api_client, org_id) -> APIClient:
    api_client.credentials(HTTP_X_ORGANIZATION_ID=org_id)
    return api_client


@pytest.fixture
def make_event(org_id):
    def _make_event(**overrides) -> models.Event:
        fields = {
            "organization_id": org_id,
            "name": "Spring Half Marathon",
            "currency": "ARS",
            "max_capacity": None,
            "waitlist_enabled": True,
            "max_waitlist_size": None,
            "pricing_enabled": False,
        }
        fields.update(overrides)
        return models.Event.objects.create(**fields)

    return _make_event


@pytest.fixture
def make_tier():
    def _make_tier(event: models.Event, **overrides) -> models.PricingTier:
        fields = {"name": "General", "price": 10000}
        fields.update(overrides)
        return models.PricingTier.objects.create(event=event, **fields)

    return _make_tier


@pytest.fixture
def registrant():
    def _registrant(name: str, is_member: bool = False) -> Registrant:
        return Registrant(
            name=name,
            email=f"{name.lower().replace(' ', '.')}@example.com",
            is_member=is_member,
        )

    return _registrant


@pytest.fixture
def store() -> DjangoRegistrationStore:
    return DjangoRegistrationStore()


@pytest.fixture
def registration_service(store) -> RegistrationService:
    return RegistrationService(store)


@pytest.fixture
def pricing_service(store) -> PricingService:
    return PricingService(store)


@pytest.fixture
def payment_ledger(store) -> PaymentLedger:
    return PaymentLedger(store)


@pytest.fixture
def refund_processor(store) -> RefundProcessor:
    return RefundProcessor(store)


@pytest.fixture
def priced_registration(make_event, make_tier, registration_service, registrant, org_id):
    """A confirmed registration whose price snapshot is 10000."""
    event = make_event(pricing_enabled=True)
    make_tier(event, price=10000)
    return registration_service.create_registration(org_id, str(event.id), registrant("Ana"))


@pytest.fixture
def pay(payment_ledger, org_id):
    def _pay(registration, amount: int, method: PaymentMethod = PaymentMethod.CASH):
        return payment_ledger.record_payment(
            org_id, str(registration.id.value), amount, method
        )

    return _pay
