"""Domain error codes for the registrations module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
    PRICING_TIER_NOT_FOUND = "PRICING_TIER_NOT_FOUND"
    INVALID_IDENTIFIER = "INVALID_IDENTIFIER"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_TIER = "INVALID_TIER"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    INVALID_STATE = "INVALID_STATE"
    DUPLICATE_REGISTRATION = "DUPLICATE_REGISTRATION"
    REGISTRATION_CLOSED = "REGISTRATION_CLOSED"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"
    OVERPAYMENT_REJECTED = "OVERPAYMENT_REJECTED"
    REFUND_EXCEEDS_BALANCE = "REFUND_EXCEEDS_BALANCE"
    PRICING_UNRESOLVED = "PRICING_UNRESOLVED"


# Not frozen: the interpreter and context managers assign __traceback__
# on raised exceptions.
@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code, user-safe message and offending entity."""

    code: ErrorCode
    message: str
    entity_id: str | None = None

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(DomainError):
    """An entity is missing or belongs to another organization."""


class EventNotFoundError(NotFoundError):
    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message="Event not found",
            entity_id=event_id,
        )


class RegistrationNotFoundError(NotFoundError):
    def __init__(self, registration_id: str) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_NOT_FOUND,
            message="Registration not found",
            entity_id=registration_id,
        )


class PaymentNotFoundError(NotFoundError):
    def __init__(self, payment_id: str) -> None:
        super().__init__(
            code=ErrorCode.PAYMENT_NOT_FOUND,
            message="Payment not found",
            entity_id=payment_id,
        )


class PricingTierNotFoundError(NotFoundError):
    def __init__(self, tier_id: str) -> None:
        super().__init__(
            code=ErrorCode.PRICING_TIER_NOT_FOUND,
            message="Pricing tier not found",
            entity_id=tier_id,
        )


class InvalidIdentifierError(DomainError):
    """Raised when an identifier is not a valid UUID."""

    def __init__(self, kind: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_IDENTIFIER,
            message=f"Invalid {kind} ID format",
        )


class InvalidAmountError(DomainError):
    def __init__(self, message: str, entity_id: str | None = None) -> None:
        super().__init__(
            code=ErrorCode.INVALID_AMOUNT,
            message=message,
            entity_id=entity_id,
        )


class InvalidTierError(DomainError):
    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_TIER, message=message)


class CapacityExceededError(DomainError):
    """Raised when neither a confirmed nor a waitlist slot is available."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.CAPACITY_EXCEEDED,
            message="Event is at capacity and no waitlist slot is available",
            entity_id=event_id,
        )


class InvalidStateError(DomainError):
    """Raised when an operation is not valid for the entity's current status."""

    def __init__(self, message: str, entity_id: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_STATE,
            message=message,
            entity_id=entity_id,
        )


class DuplicateRegistrationError(DomainError):
    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.DUPLICATE_REGISTRATION,
            message="This email is already registered for this event",
            entity_id=event_id,
        )


class RegistrationClosedError(DomainError):
    def __init__(self, event_id: str, message: str) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_CLOSED,
            message=message,
            entity_id=event_id,
        )


class ConcurrentModificationError(DomainError):
    """A write lost a race or timed out on a lock; the caller may retry."""

    def __init__(self, entity_id: str | None = None) -> None:
        super().__init__(
            code=ErrorCode.CONCURRENT_MODIFICATION,
            message="The record was modified concurrently, please retry",
            entity_id=entity_id,
        )


class OverpaymentRejectedError(DomainError):
    def __init__(self, registration_id: str, outstanding: int) -> None:
        super().__init__(
            code=ErrorCode.OVERPAYMENT_REJECTED,
            message=f"Payment exceeds the outstanding balance of {outstanding}",
            entity_id=registration_id,
        )
        self.outstanding = outstanding


class RefundExceedsBalanceError(DomainError):
    def __init__(self, payment_id: str, refundable: int) -> None:
        super().__init__(
            code=ErrorCode.REFUND_EXCEEDS_BALANCE,
            message=f"Refund exceeds the refundable remainder of {refundable}",
            entity_id=payment_id,
        )
        self.refundable = refundable


class PricingUnresolvedError(DomainError):
    """Raised when no pricing tier covers the requested instant."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.PRICING_UNRESOLVED,
            message="No pricing tier covers the requested time",
            entity_id=event_id,
        )
