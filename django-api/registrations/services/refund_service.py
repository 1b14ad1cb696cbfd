"""Refund processor - returns captured funds from a single payment.

Refunding never cancels the registration or releases its slot; that is a
separate cancel_registration call.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from django.utils import timezone

from registrations.conf import get_setting
from registrations.domain import Money, Payment, PaymentId, Registration
from registrations.domain.errors import (
    ConcurrentModificationError,
    InvalidAmountError,
    InvalidStateError,
    PaymentNotFoundError,
    RefundExceedsBalanceError,
)
from registrations.domain.ledger import CAPTURED_STATUSES, status_after_refund
from registrations.services.identifiers import parse_id, parse_organization_id
from registrations.services.payment_service import PaymentLedger
from registrations.stores.interfaces import RegistrationStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefundResult:
    payment: Payment
    registration: Registration

    @property
    def new_paid_amount(self) -> Money:
        return self.registration.paid_amount


class RefundProcessor:
    def __init__(self, store: RegistrationStore, ledger: PaymentLedger | None = None) -> None:
        self._store = store
        self._ledger = ledger or PaymentLedger(store)

    def process_refund(
        self,
        organization_id: str,
        payment_id: str,
        refund_amount: int,
        reason: str = "",
        at: datetime | None = None,
    ) -> RefundResult:
        """Refund part or all of a payment's remaining refundable amount.

        Raises:
            InvalidAmountError: If ``refund_amount`` is not positive.
            PaymentNotFoundError: If the payment does not exist.
            InvalidStateError: If the payment never captured funds, or the
                refund is a partial one below the configured minimum.
            RefundExceedsBalanceError: If ``refund_amount`` exceeds what is
                left to refund on this payment.
            ConcurrentModificationError: If another refund won the race.
        """
        org_id = parse_organization_id(organization_id)
        parsed_id = parse_id(PaymentId, payment_id, "payment")
        if refund_amount <= 0:
            raise InvalidAmountError("Refund amount must be positive", payment_id)
        at = at or timezone.now()

        with self._store.atomic():
            payment = self._store.get_payment(org_id, parsed_id)
            if payment is None:
                raise PaymentNotFoundError(payment_id)

            # Lock order: registration, then payment.
            registration = self._store.get_registration(
                org_id, payment.registration_id, for_update=True
            )
            payment = self._store.get_payment(org_id, parsed_id, for_update=True)
            if registration is None or payment is None:
                raise PaymentNotFoundError(payment_id)

            self._validate(payment, refund_amount)

            refunded_total = payment.refunded_amount.amount + refund_amount
            updated = self._store.apply_refund(
                payment,
                refunded_amount=refunded_total,
                status=status_after_refund(
                    payment.amount, Money(refunded_total, payment.amount.currency)
                ),
                refunded_at=at,
                refund_reason=self._append_reason(payment.refund_reason, reason),
            )
            if updated is None:
                raise ConcurrentModificationError(payment_id)

            registration = self._ledger.reconcile(registration)

        logger.info(
            "Refunded %d on payment %s (refunded total=%s, registration paid=%s)",
            refund_amount,
            payment_id,
            updated.refunded_amount,
            registration.paid_amount,
        )
        return RefundResult(payment=updated, registration=registration)

    def _validate(self, payment: Payment, refund_amount: int) -> None:
        payment_id = str(payment.id.value)
        if payment.status not in CAPTURED_STATUSES:
            raise InvalidStateError(
                f"Cannot refund a payment that is {payment.status.value}", payment_id
            )

        refundable = payment.refundable.amount
        if refund_amount > refundable:
            raise RefundExceedsBalanceError(payment_id, refundable)

        minimum = get_setting("MINIMUM_REFUND_AMOUNT")
        if refund_amount < minimum and refund_amount != refundable:
            raise InvalidStateError(
                f"Partial refunds must be at least {minimum}", payment_id
            )

    @staticmethod
    def _append_reason(existing: str, reason: str) -> str:
        reason = reason.strip()
        if not reason:
            return existing
        if not existing:
            return reason
        return f"{existing}\n{reason}"
