"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/.
Constraints mirror the domain invariants so that a bug in the service layer
fails loudly at write time instead of persisting inconsistent state.
"""

import uuid

from django.db import models
from django.db.models import F, Q

from registrations.conf import get_setting
from registrations.domain.value_objects import (
    Audience,
    PaymentMethod,
    PaymentStatus,
    RegistrationPaymentStatus,
    RegistrationStatus,
)


def _choices(enum_cls) -> list[tuple[str, str]]:
    return [(member.value, member.name.replace("_", " ").title()) for member in enum_cls]


def _default_currency() -> str:
    return get_setting("DEFAULT_CURRENCY")


class Event(models.Model):
    """Persistence model for events that accept registrations."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization_id = models.UUIDField(db_index=True)
    name = models.CharField(max_length=255)
    currency = models.CharField(max_length=3, default=_default_currency)
    max_capacity = models.PositiveIntegerField(blank=True, null=True)
    waitlist_enabled = models.BooleanField(default=True)
    max_waitlist_size = models.PositiveIntegerField(blank=True, null=True)
    pricing_enabled = models.BooleanField(default=True)
    registration_opens_at = models.DateTimeField(blank=True, null=True)
    registration_closes_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["organization_id", "-created_at"]),
        ]

    def __str__(self) -> str:
        return self.name


class PricingTier(models.Model):
    """Persistence model for event pricing tiers."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="pricing_tiers")
    name = models.CharField(max_length=100)
    price = models.PositiveIntegerField(help_text="Price in minor currency units")
    audience = models.CharField(
        max_length=16, choices=_choices(Audience), default=Audience.GENERAL.value
    )
    priority = models.IntegerField(default=0)
    effective_from = models.DateTimeField(blank=True, null=True)
    effective_to = models.DateTimeField(blank=True, null=True)
    capacity_start = models.PositiveIntegerField(blank=True, null=True)
    capacity_end = models.PositiveIntegerField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-priority", "effective_from", "price"]
        indexes = [
            models.Index(fields=["event", "is_active"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(effective_from__isnull=True)
                | Q(effective_to__isnull=True)
                | Q(effective_from__lt=F("effective_to")),
                name="pricing_tier_window_ordered",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} - {self.price}"


class Registration(models.Model):
    """Persistence model for event registrations. Never deleted."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="registrations")
    registration_number = models.PositiveIntegerField()
    athlete_id = models.UUIDField(blank=True, null=True)
    registrant_name = models.CharField(max_length=200)
    registrant_email = models.EmailField()
    registrant_phone = models.CharField(max_length=30, blank=True)
    is_member = models.BooleanField(default=False)
    status = models.CharField(max_length=16, choices=_choices(RegistrationStatus))
    waitlist_position = models.PositiveIntegerField(blank=True, null=True)
    applied_tier = models.ForeignKey(
        PricingTier,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="+",
    )
    price = models.PositiveIntegerField(help_text="Price snapshot in minor currency units")
    currency = models.CharField(max_length=3)
    paid_amount = models.PositiveIntegerField(default=0)
    payment_status = models.CharField(
        max_length=16,
        choices=_choices(RegistrationPaymentStatus),
        default=RegistrationPaymentStatus.PENDING.value,
    )
    cancellation_reason = models.TextField(blank=True)
    registered_at = models.DateTimeField()
    confirmed_at = models.DateTimeField(blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["registration_number"]
        indexes = [
            models.Index(fields=["event", "status"]),
            models.Index(fields=["event", "waitlist_position"]),
            models.Index(fields=["event", "registrant_email"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["event", "registration_number"],
                name="registration_event_number_unique",
            ),
            models.CheckConstraint(
                condition=Q(paid_amount__lte=F("price")),
                name="registration_paid_within_price",
            ),
            models.CheckConstraint(
                condition=(
                    Q(status=RegistrationStatus.WAITLISTED.value, waitlist_position__isnull=False)
                    | (
                        ~Q(status=RegistrationStatus.WAITLISTED.value)
                        & Q(waitlist_position__isnull=True)
                    )
                ),
                name="registration_position_iff_waitlisted",
            ),
        ]

    def __str__(self) -> str:
        return f"#{self.registration_number} {self.registrant_name} ({self.status})"


class Payment(models.Model):
    """Persistence model for payment transactions against a registration."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    registration = models.ForeignKey(
        Registration, on_delete=models.PROTECT, related_name="payments"
    )
    amount = models.PositiveIntegerField(help_text="Amount in minor currency units")
    currency = models.CharField(max_length=3)
    method = models.CharField(max_length=16, choices=_choices(PaymentMethod))
    status = models.CharField(
        max_length=16, choices=_choices(PaymentStatus), default=PaymentStatus.PAID.value
    )
    payment_date = models.DateTimeField()
    receipt_number = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    refunded_amount = models.PositiveIntegerField(default=0)
    refunded_at = models.DateTimeField(blank=True, null=True)
    refund_reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["registration", "status"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="payment_amount_positive",
            ),
            models.CheckConstraint(
                condition=Q(refunded_amount__lte=F("amount")),
                name="payment_refund_within_amount",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.amount} {self.currency} ({self.status})"
