"""Tests for the payment ledger.

Run with: pytest tests/test_payments.py -v
"""

import uuid

import pytest

from registrations import models
from registrations.domain import PaymentMethod, PaymentStatus, RegistrationPaymentStatus
from registrations.domain.errors import (
    InvalidAmountError,
    InvalidIdentifierError,
    InvalidStateError,
    OverpaymentRejectedError,
    RegistrationNotFoundError,
)


@pytest.mark.django_db
class TestRecordPayment:
    """Tests for PaymentLedger.record_payment."""

    def test_partial_then_overpayment_then_settled(self, priced_registration, pay):
        """Price 10000: 5000 is partial, 6000 is rejected, 5000 settles it."""
        first = pay(priced_registration, 5000)
        assert first.registration.payment_status is RegistrationPaymentStatus.PARTIAL
        assert first.registration.paid_amount.amount == 5000
        assert first.payment.status is PaymentStatus.PAID

        with pytest.raises(OverpaymentRejectedError) as exc_info:
            pay(priced_registration, 6000)
        assert exc_info.value.outstanding == 5000

        second = pay(priced_registration, 5000)
        assert second.registration.payment_status is RegistrationPaymentStatus.PAID
        assert second.registration.paid_amount.amount == 10000

    def test_rejected_payment_leaves_no_row(self, priced_registration, pay):
        with pytest.raises(OverpaymentRejectedError):
            pay(priced_registration, 10001)
        assert not models.Payment.objects.exists()

    def test_settled_registration_rejects_more(self, priced_registration, pay):
        pay(priced_registration, 10000)
        with pytest.raises(OverpaymentRejectedError):
            pay(priced_registration, 1)

    @pytest.mark.parametrize("amount", [0, -100])
    def test_non_positive_amount_rejected(self, priced_registration, pay, amount):
        with pytest.raises(InvalidAmountError):
            pay(priced_registration, amount)

    def test_cancelled_registration_rejects_payment(
        self, priced_registration, pay, registration_service, org_id
    ):
        registration_service.cancel_registration(org_id, str(priced_registration.id.value))
        with pytest.raises(InvalidStateError):
            pay(priced_registration, 1000)

    def test_waitlisted_registration_can_pay(
        self, registration_service, make_event, make_tier, registrant, pay, org_id
    ):
        event = make_event(max_capacity=0, pricing_enabled=True)
        make_tier(event, price=3000)
        registration = registration_service.create_registration(
            org_id, str(event.id), registrant("A")
        )
        result = pay(registration, 3000)
        assert result.registration.payment_status is RegistrationPaymentStatus.PAID

    def test_payment_keeps_receipt_details(self, payment_ledger, priced_registration, org_id):
        result = payment_ledger.record_payment(
            org_id,
            str(priced_registration.id.value),
            2500,
            PaymentMethod.BANK_TRANSFER,
            receipt_number=" TR-001 ",
            notes="Deposit",
        )
        assert result.payment.receipt_number == "TR-001"
        assert result.payment.method is PaymentMethod.BANK_TRANSFER
        assert result.payment.amount.currency == "ARS"

    def test_unknown_registration(self, payment_ledger, org_id):
        with pytest.raises(RegistrationNotFoundError):
            payment_ledger.record_payment(org_id, str(uuid.uuid4()), 100, PaymentMethod.CASH)

    def test_invalid_registration_id(self, payment_ledger, org_id):
        with pytest.raises(InvalidIdentifierError):
            payment_ledger.record_payment(org_id, "abc", 100, PaymentMethod.CASH)

    def test_other_organization_cannot_pay(self, payment_ledger, priced_registration):
        with pytest.raises(RegistrationNotFoundError):
            payment_ledger.record_payment(
                str(uuid.uuid4()), str(priced_registration.id.value), 100, PaymentMethod.CASH
            )


@pytest.mark.django_db
class TestReconcile:
    """Tests for recomputing the paid amount from the ledger."""

    def test_paid_amount_equals_captured_payments(
        self, payment_ledger, priced_registration, pay
    ):
        pay(priced_registration, 4000)
        pay(priced_registration, 3000)
        # A failed transaction recorded out of band does not count.
        models.Payment.objects.create(
            registration_id=priced_registration.id.value,
            amount=2000,
            currency="ARS",
            method=PaymentMethod.STRIPE.value,
            status=PaymentStatus.FAILED.value,
            payment_date=priced_registration.registered_at,
        )
        reconciled = payment_ledger.reconcile(priced_registration)
        assert reconciled.paid_amount.amount == 7000
        assert reconciled.payment_status is RegistrationPaymentStatus.PARTIAL


@pytest.mark.django_db
class TestListPayments:
    """Tests for PaymentLedger.list_payments."""

    def test_filters_by_method_and_status(self, payment_ledger, priced_registration, pay, org_id):
        pay(priced_registration, 1000, PaymentMethod.CASH)
        pay(priced_registration, 2000, PaymentMethod.CARD)

        everything = payment_ledger.list_payments(
            org_id, registration_id=str(priced_registration.id.value)
        )
        cards = payment_ledger.list_payments(
            org_id,
            registration_id=str(priced_registration.id.value),
            methods=(PaymentMethod.CARD,),
        )
        refunded = payment_ledger.list_payments(org_id, statuses=(PaymentStatus.REFUNDED,))

        assert everything.total == 2
        assert [p.amount.amount for p in cards.items] == [2000]
        assert refunded.total == 0

    def test_scoped_to_organization(self, payment_ledger, priced_registration, pay):
        pay(priced_registration, 1000)
        assert payment_ledger.list_payments(str(uuid.uuid4())).total == 0
