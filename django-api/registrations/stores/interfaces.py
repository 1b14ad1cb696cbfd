"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Every write that has to
be atomic with other writes runs inside ``atomic()``; the ``for_update``
flags take row locks that are held until that block exits.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, TypeVar

from registrations.domain import (
    Event,
    EventId,
    NewPayment,
    NewPricingTier,
    NewRegistration,
    OrganizationId,
    Payment,
    PaymentId,
    PaymentMethod,
    PaymentStatus,
    PricingTier,
    PricingTierId,
    Registration,
    RegistrationId,
    RegistrationStatus,
)

T = TypeVar("T")

SORTABLE_REGISTRATION_FIELDS = (
    "registration_number",
    "registrant_name",
    "registrant_email",
    "status",
    "price",
    "registered_at",
)


@dataclass(frozen=True)
class PageRequest:
    limit: int
    offset: int = 0


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    total: int


@dataclass(frozen=True)
class RegistrationFilters:
    statuses: tuple[RegistrationStatus, ...] = ()
    waitlist_only: bool | None = None
    query: str = ""
    sort_by: str = "registration_number"
    descending: bool = False


@dataclass(frozen=True)
class PaymentFilters:
    registration_id: RegistrationId | None = None
    event_id: EventId | None = None
    statuses: tuple[PaymentStatus, ...] = ()
    methods: tuple[PaymentMethod, ...] = ()


class RegistrationStore(ABC):
    """Interface for registration and payment persistence operations."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Return a context manager wrapping a single transaction."""
        ...

    # Events and tiers

    @abstractmethod
    def get_event(
        self, organization_id: OrganizationId, event_id: EventId, *, for_update: bool = False
    ) -> Event | None:
        """Return an event scoped to the organization, or None if not found."""
        ...

    @abstractmethod
    def list_pricing_tiers(
        self, event_id: EventId, *, include_inactive: bool = False
    ) -> list[PricingTier]:
        ...

    @abstractmethod
    def get_pricing_tier(
        self, organization_id: OrganizationId, tier_id: PricingTierId
    ) -> PricingTier | None:
        ...

    @abstractmethod
    def add_pricing_tier(self, tier: NewPricingTier) -> PricingTier:
        ...

    @abstractmethod
    def update_pricing_tier(self, tier_id: PricingTierId, tier: NewPricingTier) -> PricingTier:
        """Overwrite a tier's editable fields. The active flag is left alone."""
        ...

    @abstractmethod
    def set_pricing_tier_active(self, tier_id: PricingTierId, is_active: bool) -> PricingTier:
        ...

    # Registrations

    @abstractmethod
    def count_registrations(self, event_id: EventId, status: RegistrationStatus) -> int:
        ...

    @abstractmethod
    def next_registration_number(self, event_id: EventId) -> int:
        """Return one past the highest registration number for the event."""
        ...

    @abstractmethod
    def has_active_registration(self, event_id: EventId, email: str) -> bool:
        """Check for a non-cancelled registration with the given email."""
        ...

    @abstractmethod
    def list_waitlist(self, event_id: EventId) -> list[Registration]:
        """Return waitlisted registrations ordered by position ascending."""
        ...

    @abstractmethod
    def add_registration(self, registration: NewRegistration) -> Registration:
        ...

    @abstractmethod
    def get_registration(
        self,
        organization_id: OrganizationId,
        registration_id: RegistrationId,
        *,
        for_update: bool = False,
    ) -> Registration | None:
        ...

    @abstractmethod
    def save_registration(self, registration: Registration) -> Registration:
        """Persist the mutable fields of an existing registration."""
        ...

    @abstractmethod
    def set_waitlist_position(self, registration_id: RegistrationId, position: int) -> None:
        ...

    @abstractmethod
    def list_registrations(
        self, event_id: EventId, filters: RegistrationFilters, page: PageRequest
    ) -> Page[Registration]:
        ...

    # Payments

    @abstractmethod
    def add_payment(self, payment: NewPayment) -> Payment:
        ...

    @abstractmethod
    def get_payment(
        self, organization_id: OrganizationId, payment_id: PaymentId, *, for_update: bool = False
    ) -> Payment | None:
        ...

    @abstractmethod
    def list_payments_for_registration(self, registration_id: RegistrationId) -> list[Payment]:
        ...

    @abstractmethod
    def apply_refund(
        self,
        payment: Payment,
        refunded_amount: int,
        status: PaymentStatus,
        refunded_at: datetime,
        refund_reason: str,
    ) -> Payment | None:
        """Write refund fields only if ``refunded_amount`` is still what
        ``payment`` says it was. Return None when the write lost a race."""
        ...

    @abstractmethod
    def list_payments(
        self, organization_id: OrganizationId, filters: PaymentFilters, page: PageRequest
    ) -> Page[Payment]:
        ...
