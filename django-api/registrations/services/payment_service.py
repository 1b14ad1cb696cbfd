"""Payment ledger - records payments and reconciles a registration's balance."""

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from django.utils import timezone

from registrations.conf import get_setting
from registrations.domain import (
    EventId,
    Money,
    NewPayment,
    Payment,
    PaymentMethod,
    PaymentStatus,
    Registration,
    RegistrationId,
    RegistrationStatus,
)
from registrations.domain.errors import (
    InvalidAmountError,
    InvalidStateError,
    OverpaymentRejectedError,
    RegistrationNotFoundError,
)
from registrations.domain.ledger import captured_total, derive_payment_status
from registrations.services.identifiers import parse_id, parse_organization_id
from registrations.stores.interfaces import Page, PageRequest, PaymentFilters, RegistrationStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentResult:
    payment: Payment
    registration: Registration


class PaymentLedger:
    """Append-only record of payments backing each registration's paid amount."""

    def __init__(self, store: RegistrationStore) -> None:
        self._store = store

    def record_payment(
        self,
        organization_id: str,
        registration_id: str,
        amount: int,
        method: PaymentMethod,
        payment_date: datetime | None = None,
        receipt_number: str = "",
        notes: str = "",
    ) -> PaymentResult:
        """Record a confirmed payment against a registration.

        Raises:
            InvalidAmountError: If ``amount`` is not positive.
            RegistrationNotFoundError: If the registration does not exist.
            InvalidStateError: If the registration is cancelled.
            OverpaymentRejectedError: If ``amount`` exceeds the outstanding balance.
        """
        org_id = parse_organization_id(organization_id)
        parsed_id = parse_id(RegistrationId, registration_id, "registration")
        if amount <= 0:
            raise InvalidAmountError("Payment amount must be positive", registration_id)

        with self._store.atomic():
            registration = self._store.get_registration(org_id, parsed_id, for_update=True)
            if registration is None:
                raise RegistrationNotFoundError(registration_id)
            if registration.status is RegistrationStatus.CANCELLED:
                raise InvalidStateError(
                    "Cannot record a payment for a cancelled registration", registration_id
                )

            outstanding = registration.outstanding
            if amount > outstanding.amount:
                raise OverpaymentRejectedError(registration_id, outstanding.amount)

            payment = self._store.add_payment(
                NewPayment(
                    registration_id=registration.id,
                    amount=Money(amount, registration.price.currency),
                    method=method,
                    payment_date=payment_date or timezone.now(),
                    receipt_number=receipt_number.strip(),
                    notes=notes.strip(),
                )
            )
            registration = self.reconcile(registration)

        logger.info(
            "Recorded payment %s of %s on registration %s (paid=%s, status=%s)",
            payment.id.value,
            payment.amount,
            registration_id,
            registration.paid_amount,
            registration.payment_status.value,
        )
        return PaymentResult(payment=payment, registration=registration)

    def reconcile(self, registration: Registration) -> Registration:
        """Recompute ``paid_amount`` and payment status from the ledger.

        Must run inside the transaction that holds the registration's row lock.
        """
        payments = self._store.list_payments_for_registration(registration.id)
        paid = captured_total(payments, registration.price.currency)
        if paid > registration.price:
            raise OverpaymentRejectedError(str(registration.id.value), 0)
        return self._store.save_registration(
            replace(
                registration,
                paid_amount=paid,
                payment_status=derive_payment_status(paid, registration.price),
            )
        )

    def list_payments(
        self,
        organization_id: str,
        registration_id: str | None = None,
        event_id: str | None = None,
        statuses: tuple[PaymentStatus, ...] = (),
        methods: tuple[PaymentMethod, ...] = (),
        limit: int | None = None,
        offset: int = 0,
    ) -> Page[Payment]:
        org_id = parse_organization_id(organization_id)
        filters = PaymentFilters(
            registration_id=(
                parse_id(RegistrationId, registration_id, "registration")
                if registration_id
                else None
            ),
            event_id=parse_id(EventId, event_id, "event") if event_id else None,
            statuses=statuses,
            methods=methods,
        )
        if filters.registration_id is not None:
            if self._store.get_registration(org_id, filters.registration_id) is None:
                raise RegistrationNotFoundError(registration_id)
        page_size = limit or get_setting("DEFAULT_PAGE_SIZE")
        page = PageRequest(
            limit=max(1, min(page_size, get_setting("MAX_PAGE_SIZE"))),
            offset=max(0, offset),
        )
        return self._store.list_payments(org_id, filters, page)
