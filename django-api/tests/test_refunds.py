"""Tests for the refund processor.

Run with: pytest tests/test_refunds.py -v
"""

import uuid
from unittest.mock import patch

import pytest
from django.test import override_settings

from registrations import models
from registrations.domain import PaymentStatus, RegistrationPaymentStatus, RegistrationStatus
from registrations.domain.errors import (
    ConcurrentModificationError,
    InvalidAmountError,
    InvalidStateError,
    PaymentNotFoundError,
    RefundExceedsBalanceError,
)
from registrations.stores.django_store import DjangoRegistrationStore


@pytest.fixture
def paid_in_two(priced_registration, pay):
    """The 10000 registration settled by two payments of 5000."""
    first = pay(priced_registration, 5000).payment
    second = pay(priced_registration, 5000).payment
    return first, second


@pytest.mark.django_db
class TestProcessRefund:
    """Tests for RefundProcessor.process_refund."""

    def test_partial_refund_then_exceeding_refund(self, refund_processor, paid_in_two, org_id):
        """Refunding 3000 twice from a 5000 payment fails the second time."""
        payment1, _ = paid_in_two

        result = refund_processor.process_refund(
            org_id, str(payment1.id.value), 3000, reason="Changed distance"
        )
        assert result.new_paid_amount.amount == 7000
        assert result.registration.payment_status is RegistrationPaymentStatus.PARTIAL
        assert result.payment.status is PaymentStatus.PARTIAL
        assert result.payment.refunded_amount.amount == 3000
        assert result.payment.refund_reason == "Changed distance"

        with pytest.raises(RefundExceedsBalanceError) as exc_info:
            refund_processor.process_refund(org_id, str(payment1.id.value), 3000)
        assert exc_info.value.refundable == 2000

    def test_refund_remainder_marks_payment_refunded(
        self, refund_processor, paid_in_two, org_id
    ):
        payment1, _ = paid_in_two
        refund_processor.process_refund(org_id, str(payment1.id.value), 3000, reason="first")
        result = refund_processor.process_refund(
            org_id, str(payment1.id.value), 2000, reason="second"
        )

        assert result.payment.status is PaymentStatus.REFUNDED
        assert result.payment.refunded_at is not None
        assert result.payment.refund_reason == "first\nsecond"
        assert result.new_paid_amount.amount == 5000

        with pytest.raises(RefundExceedsBalanceError):
            refund_processor.process_refund(org_id, str(payment1.id.value), 1)

    def test_refunding_everything_returns_to_pending(
        self, refund_processor, paid_in_two, org_id
    ):
        for payment in paid_in_two:
            result = refund_processor.process_refund(org_id, str(payment.id.value), 5000)
        assert result.new_paid_amount.is_zero()
        assert result.registration.payment_status is RegistrationPaymentStatus.PENDING

    def test_refund_does_not_cancel_registration(self, refund_processor, paid_in_two, org_id):
        payment1, _ = paid_in_two
        result = refund_processor.process_refund(org_id, str(payment1.id.value), 5000)
        assert result.registration.status is RegistrationStatus.CONFIRMED

    def test_refund_on_cancelled_registration(
        self, refund_processor, registration_service, priced_registration, pay, org_id
    ):
        payment = pay(priced_registration, 4000).payment
        registration_service.cancel_registration(org_id, str(priced_registration.id.value))

        result = refund_processor.process_refund(org_id, str(payment.id.value), 4000)
        assert result.registration.status is RegistrationStatus.CANCELLED
        assert result.new_paid_amount.is_zero()

    @pytest.mark.parametrize("status", [PaymentStatus.FAILED, PaymentStatus.PENDING])
    def test_uncaptured_payment_cannot_be_refunded(
        self, refund_processor, priced_registration, org_id, status
    ):
        row = models.Payment.objects.create(
            registration_id=priced_registration.id.value,
            amount=2000,
            currency="ARS",
            method="stripe",
            status=status.value,
            payment_date=priced_registration.registered_at,
        )
        with pytest.raises(InvalidStateError):
            refund_processor.process_refund(org_id, str(row.id), 1000)

    @override_settings(REGISTRATIONS={"MINIMUM_REFUND_AMOUNT": 1000})
    def test_partial_refund_below_minimum_rejected(self, refund_processor, paid_in_two, org_id):
        payment1, _ = paid_in_two
        with pytest.raises(InvalidStateError):
            refund_processor.process_refund(org_id, str(payment1.id.value), 500)
        refund_processor.process_refund(org_id, str(payment1.id.value), 4500)
        # The final remainder may be smaller than the minimum.
        result = refund_processor.process_refund(org_id, str(payment1.id.value), 500)
        assert result.payment.status is PaymentStatus.REFUNDED

    def test_non_positive_amount(self, refund_processor, paid_in_two, org_id):
        payment1, _ = paid_in_two
        with pytest.raises(InvalidAmountError):
            refund_processor.process_refund(org_id, str(payment1.id.value), 0)

    def test_unknown_payment(self, refund_processor, org_id):
        with pytest.raises(PaymentNotFoundError):
            refund_processor.process_refund(org_id, str(uuid.uuid4()), 100)

    def test_other_organization_cannot_refund(self, refund_processor, paid_in_two):
        payment1, _ = paid_in_two
        with pytest.raises(PaymentNotFoundError):
            refund_processor.process_refund(str(uuid.uuid4()), str(payment1.id.value), 100)

    def test_lost_race_raises_and_changes_nothing(
        self, refund_processor, paid_in_two, org_id
    ):
        payment1, _ = paid_in_two
        with patch.object(DjangoRegistrationStore, "apply_refund", return_value=None):
            with pytest.raises(ConcurrentModificationError):
                refund_processor.process_refund(org_id, str(payment1.id.value), 1000)

        row = models.Payment.objects.get(pk=payment1.id.value)
        assert row.refunded_amount == 0
        registration = models.Registration.objects.get(pk=row.registration_id)
        assert registration.paid_amount == 10000

    def test_conditional_update_detects_stale_snapshot(
        self, store, paid_in_two, org_id
    ):
        payment1, _ = paid_in_two
        models.Payment.objects.filter(pk=payment1.id.value).update(refunded_amount=1000)
        assert (
            store.apply_refund(
                payment1,
                refunded_amount=2000,
                status=PaymentStatus.PARTIAL,
                refunded_at=payment1.payment_date,
                refund_reason="",
            )
            is None
        )
