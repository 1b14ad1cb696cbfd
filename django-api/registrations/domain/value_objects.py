"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from enum import Enum
from functools import total_ordering
from typing import Self
from uuid import UUID


@dataclass(frozen=True)
class OrganizationId:
    """Tenant identifier supplied by the caller."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))


@dataclass(frozen=True)
class EventId:
    """Unique identifier for an Event."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))


@dataclass(frozen=True)
class PricingTierId:
    """Unique identifier for a PricingTier."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))


@dataclass(frozen=True)
class RegistrationId:
    """Unique identifier for a Registration."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))


@dataclass(frozen=True)
class PaymentId:
    """Unique identifier for a Payment."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))


@total_ordering
@dataclass(frozen=True)
class Money:
    """Amount in minor currency units (e.g. cents) tagged with its currency."""

    amount: int
    currency: str

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")
        if len(self.currency) != 3 or not self.currency.isalpha():
            raise ValueError("Currency must be a three-letter ISO code")

    @classmethod
    def zero(cls, currency: str) -> Self:
        return cls(amount=0, currency=currency)

    def _check_currency(self, other: "Money") -> None:
        if other.currency != self.currency:
            raise ValueError(
                f"Currency mismatch: {self.currency} and {other.currency}"
            )

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def __lt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount < other.amount

    def is_zero(self) -> bool:
        return self.amount == 0

    def __str__(self) -> str:
        return f"{self.amount / 100:.2f} {self.currency}"


@dataclass(frozen=True)
class Capacity:
    """Non-negative integer representing capacity."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("Capacity cannot be negative")


class Audience(Enum):
    """Who a pricing tier is offered to."""

    GENERAL = "general"
    MEMBERS = "members"


class RegistrationStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    WAITLISTED = "waitlisted"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    """Status of a single payment transaction."""

    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    PARTIAL = "partial"
    FAILED = "failed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class RegistrationPaymentStatus(Enum):
    """Payment progress of a registration, derived from its ledger."""

    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"


class PaymentMethod(Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    MERCADO_PAGO = "mercado_pago"
    STRIPE = "stripe"
    CARD = "card"
    OTHER = "other"
