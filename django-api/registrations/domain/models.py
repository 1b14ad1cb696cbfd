"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in registrations/models.py (persistence layer).
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from registrations.domain.value_objects import (
    Audience,
    Capacity,
    EventId,
    Money,
    OrganizationId,
    PaymentId,
    PaymentMethod,
    PaymentStatus,
    PricingTierId,
    RegistrationId,
    RegistrationPaymentStatus,
    RegistrationStatus,
)


@dataclass(frozen=True)
class Event:
    """Domain representation of a sporting event open for registration."""

    id: EventId
    organization_id: OrganizationId
    name: str
    currency: str
    max_capacity: Capacity | None
    waitlist_enabled: bool
    max_waitlist_size: Capacity | None
    pricing_enabled: bool
    registration_opens_at: datetime | None
    registration_closes_at: datetime | None
    created_at: datetime
    updated_at: datetime

    def accepts_registrations_at(self, at: datetime) -> bool:
        if self.registration_opens_at is not None and at < self.registration_opens_at:
            return False
        if self.registration_closes_at is not None and at >= self.registration_closes_at:
            return False
        return True


@dataclass(frozen=True)
class PricingTier:
    """Domain representation of a time-bounded price rule."""

    id: PricingTierId
    event_id: EventId
    name: str
    price: Money
    audience: Audience
    priority: int
    effective_from: datetime | None
    effective_to: datetime | None
    capacity_start: int | None
    capacity_end: int | None
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class NewPricingTier:
    """Validated input for a tier that has not been persisted yet."""

    event_id: EventId
    name: str
    price: Money
    audience: Audience = Audience.GENERAL
    priority: int = 0
    effective_from: datetime | None = None
    effective_to: datetime | None = None
    capacity_start: int | None = None
    capacity_end: int | None = None


@dataclass(frozen=True)
class Registrant:
    """The person being registered, as supplied by the caller."""

    name: str
    email: str
    phone: str | None = None
    is_member: bool = False
    athlete_id: UUID | None = None

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Registrant name is required")
        if "@" not in self.email:
            raise ValueError("Registrant email is invalid")
        object.__setattr__(self, "email", self.email.strip().lower())

    @property
    def audience(self) -> Audience:
        return Audience.MEMBERS if self.is_member else Audience.GENERAL


@dataclass(frozen=True)
class ResolvedPrice:
    """Immutable price snapshot taken from the applicable tier."""

    price: Money
    tier_id: PricingTierId | None
    tier_name: str | None


@dataclass(frozen=True)
class Registration:
    """Domain representation of a Registration."""

    id: RegistrationId
    event_id: EventId
    registration_number: int
    registrant: Registrant
    status: RegistrationStatus
    price: Money
    applied_tier_id: PricingTierId | None
    paid_amount: Money
    payment_status: RegistrationPaymentStatus
    waitlist_position: int | None
    cancellation_reason: str
    registered_at: datetime
    confirmed_at: datetime | None
    cancelled_at: datetime | None

    @property
    def outstanding(self) -> Money:
        return self.price - self.paid_amount


@dataclass(frozen=True)
class NewRegistration:
    """A registration admitted but not yet persisted."""

    event_id: EventId
    registration_number: int
    registrant: Registrant
    status: RegistrationStatus
    resolved_price: ResolvedPrice
    waitlist_position: int | None
    registered_at: datetime
    confirmed_at: datetime | None


@dataclass(frozen=True)
class Payment:
    """Domain representation of a payment transaction."""

    id: PaymentId
    registration_id: RegistrationId
    amount: Money
    method: PaymentMethod
    status: PaymentStatus
    payment_date: datetime
    receipt_number: str
    notes: str
    refunded_amount: Money
    refunded_at: datetime | None
    refund_reason: str
    created_at: datetime

    @property
    def refundable(self) -> Money:
        return self.amount - self.refunded_amount


@dataclass(frozen=True)
class NewPayment:
    registration_id: RegistrationId
    amount: Money
    method: PaymentMethod
    payment_date: datetime
    receipt_number: str = ""
    notes: str = ""


@dataclass(frozen=True)
class EventAvailability:
    """Read-only snapshot of an event's admission state."""

    event_id: EventId
    max_capacity: int | None
    confirmed_count: int
    spots_available: int | None
    waitlist_enabled: bool
    waitlist_count: int
    max_waitlist_size: int | None

    @property
    def waitlist_open(self) -> bool:
        if not self.waitlist_enabled:
            return False
        if self.max_waitlist_size is None:
            return True
        return self.waitlist_count < self.max_waitlist_size
