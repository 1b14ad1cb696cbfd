"""Aggregation rules shared by the payment ledger and the refund processor."""

from collections.abc import Iterable

from registrations.domain.models import Payment
from registrations.domain.value_objects import (
    Money,
    PaymentStatus,
    RegistrationPaymentStatus,
)

# Payments whose funds were confirmed; only these count toward paid_amount.
CAPTURED_STATUSES = frozenset(
    {PaymentStatus.PAID, PaymentStatus.PARTIAL, PaymentStatus.REFUNDED}
)


def captured_total(payments: Iterable[Payment], currency: str) -> Money:
    """Sum of ``amount - refunded_amount`` over captured payments."""
    total = Money.zero(currency)
    for payment in payments:
        if payment.status in CAPTURED_STATUSES:
            total = total + payment.refundable
    return total


def derive_payment_status(paid: Money, price: Money) -> RegistrationPaymentStatus:
    # Checked first so that a free registration is settled from the start.
    if paid >= price:
        return RegistrationPaymentStatus.PAID
    if paid.is_zero():
        return RegistrationPaymentStatus.PENDING
    return RegistrationPaymentStatus.PARTIAL


def status_after_refund(amount: Money, refunded: Money) -> PaymentStatus:
    if refunded == amount:
        return PaymentStatus.REFUNDED
    return PaymentStatus.PARTIAL
