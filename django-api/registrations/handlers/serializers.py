"""Serializers for request validation and for rendering domain models."""

from rest_framework import serializers

from registrations.conf import get_setting
from registrations.domain import (
    Audience,
    PaymentMethod,
    PaymentStatus,
    RegistrationStatus,
)
from registrations.stores.interfaces import SORTABLE_REGISTRATION_FIELDS


def _enum_choices(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


# Input


class RegistrationCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True)
    is_member = serializers.BooleanField(default=False)
    athlete_id = serializers.UUIDField(required=False, allow_null=True)
    requested_at = serializers.DateTimeField(required=False)


class RegistrationCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class RegistrationListQuerySerializer(serializers.Serializer):
    status = serializers.ListField(
        child=serializers.ChoiceField(choices=_enum_choices(RegistrationStatus)),
        required=False,
    )
    waitlist = serializers.BooleanField(required=False, allow_null=True, default=None)
    q = serializers.CharField(required=False, allow_blank=True, default="")
    sort_by = serializers.ChoiceField(
        choices=sorted(SORTABLE_REGISTRATION_FIELDS), default="registration_number"
    )
    order = serializers.ChoiceField(choices=["asc", "desc"], default="asc")
    limit = serializers.IntegerField(min_value=1, required=False)
    offset = serializers.IntegerField(min_value=0, default=0)

    def validate_limit(self, value: int) -> int:
        return min(value, get_setting("MAX_PAGE_SIZE"))


class PaymentCreateSerializer(serializers.Serializer):
    amount = serializers.IntegerField(min_value=1)
    method = serializers.ChoiceField(choices=_enum_choices(PaymentMethod))
    payment_date = serializers.DateTimeField(required=False)
    receipt_number = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True, default="")


class PaymentListQuerySerializer(serializers.Serializer):
    status = serializers.ListField(
        child=serializers.ChoiceField(choices=_enum_choices(PaymentStatus)),
        required=False,
    )
    method = serializers.ListField(
        child=serializers.ChoiceField(choices=_enum_choices(PaymentMethod)),
        required=False,
    )
    limit = serializers.IntegerField(min_value=1, required=False)
    offset = serializers.IntegerField(min_value=0, default=0)


class RefundCreateSerializer(serializers.Serializer):
    refund_amount = serializers.IntegerField(min_value=1)
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class PricingTierCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    price = serializers.IntegerField(min_value=0)
    audience = serializers.ChoiceField(
        choices=_enum_choices(Audience), default=Audience.GENERAL.value
    )
    priority = serializers.IntegerField(default=0)
    effective_from = serializers.DateTimeField(required=False, allow_null=True, default=None)
    effective_to = serializers.DateTimeField(required=False, allow_null=True, default=None)
    capacity_start = serializers.IntegerField(min_value=1, required=False, allow_null=True, default=None)
    capacity_end = serializers.IntegerField(min_value=1, required=False, allow_null=True, default=None)


# Output


class PricingTierSerializer(serializers.Serializer):
    id = serializers.UUIDField(source="id.value")
    event_id = serializers.UUIDField(source="event_id.value")
    name = serializers.CharField()
    price = serializers.IntegerField(source="price.amount")
    currency = serializers.CharField(source="price.currency")
    audience = serializers.CharField(source="audience.value")
    priority = serializers.IntegerField()
    effective_from = serializers.DateTimeField(allow_null=True)
    effective_to = serializers.DateTimeField(allow_null=True)
    capacity_start = serializers.IntegerField(allow_null=True)
    capacity_end = serializers.IntegerField(allow_null=True)
    is_active = serializers.BooleanField()


class PriceQuoteSerializer(serializers.Serializer):
    price = serializers.IntegerField(source="resolved.price.amount")
    currency = serializers.CharField(source="resolved.price.currency")
    tier_id = serializers.UUIDField(source="resolved.tier_id.value", allow_null=True)
    tier_name = serializers.CharField(source="resolved.tier_name", allow_null=True)
    registration_number = serializers.IntegerField()


class RegistrationSerializer(serializers.Serializer):
    """Serializer for Registration domain model."""

    id = serializers.UUIDField(source="id.value")
    event_id = serializers.UUIDField(source="event_id.value")
    registration_number = serializers.IntegerField()
    name = serializers.CharField(source="registrant.name")
    email = serializers.EmailField(source="registrant.email")
    phone = serializers.CharField(source="registrant.phone", allow_null=True)
    is_member = serializers.BooleanField(source="registrant.is_member")
    status = serializers.CharField(source="status.value")
    waitlist_position = serializers.IntegerField(allow_null=True)
    price = serializers.IntegerField(source="price.amount")
    currency = serializers.CharField(source="price.currency")
    applied_tier_id = serializers.UUIDField(source="applied_tier_id.value", allow_null=True)
    paid_amount = serializers.IntegerField(source="paid_amount.amount")
    payment_status = serializers.CharField(source="payment_status.value")
    cancellation_reason = serializers.CharField()
    registered_at = serializers.DateTimeField()
    confirmed_at = serializers.DateTimeField(allow_null=True)
    cancelled_at = serializers.DateTimeField(allow_null=True)


class PaymentSerializer(serializers.Serializer):
    """Serializer for Payment domain model."""

    id = serializers.UUIDField(source="id.value")
    registration_id = serializers.UUIDField(source="registration_id.value")
    amount = serializers.IntegerField(source="amount.amount")
    currency = serializers.CharField(source="amount.currency")
    method = serializers.CharField(source="method.value")
    status = serializers.CharField(source="status.value")
    payment_date = serializers.DateTimeField()
    receipt_number = serializers.CharField()
    notes = serializers.CharField()
    refunded_amount = serializers.IntegerField(source="refunded_amount.amount")
    refunded_at = serializers.DateTimeField(allow_null=True)
    refund_reason = serializers.CharField()


class AvailabilitySerializer(serializers.Serializer):
    event_id = serializers.UUIDField(source="event_id.value")
    max_capacity = serializers.IntegerField(allow_null=True)
    confirmed_count = serializers.IntegerField()
    spots_available = serializers.IntegerField(allow_null=True)
    waitlist_enabled = serializers.BooleanField()
    waitlist_count = serializers.IntegerField()
    max_waitlist_size = serializers.IntegerField(allow_null=True)
    waitlist_open = serializers.BooleanField()
