"""Django ORM implementation of the RegistrationStore."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from django.db import OperationalError, transaction
from django.db.models import Max, Q

from registrations import models
from registrations.domain import (
    Audience,
    Capacity,
    Event,
    EventId,
    Money,
    NewPayment,
    NewPricingTier,
    NewRegistration,
    OrganizationId,
    Payment,
    PaymentId,
    PaymentMethod,
    PaymentStatus,
    PricingTier,
    PricingTierId,
    Registrant,
    Registration,
    RegistrationId,
    RegistrationPaymentStatus,
    RegistrationStatus,
)
from registrations.domain.errors import ConcurrentModificationError
from registrations.stores.interfaces import (
    Page,
    PageRequest,
    PaymentFilters,
    SORTABLE_REGISTRATION_FIELDS,
    RegistrationFilters,
    RegistrationStore,
)

logger = logging.getLogger(__name__)

TIER_EDITABLE_FIELDS = [
    "name",
    "price",
    "audience",
    "priority",
    "effective_from",
    "effective_to",
    "capacity_start",
    "capacity_end",
]

# lock_not_available, serialization_failure, deadlock_detected, query_canceled
RETRYABLE_SQLSTATES = frozenset({"55P03", "40001", "40P01", "57014"})


def is_retryable(exc: OperationalError) -> bool:
    """Whether the database gave up on contention rather than failed outright."""
    cause = exc.__cause__
    sqlstate = getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)
    if sqlstate is not None:
        return sqlstate in RETRYABLE_SQLSTATES
    # SQLite reports both busy and shared-cache contention as "locked".
    return "locked" in str(exc)


def _capacity(value: int | None) -> Capacity | None:
    return Capacity(value) if value is not None else None


def _to_event(row: models.Event) -> Event:
    return Event(
        id=EventId(row.id),
        organization_id=OrganizationId(row.organization_id),
        name=row.name,
        currency=row.currency,
        max_capacity=_capacity(row.max_capacity),
        waitlist_enabled=row.waitlist_enabled,
        max_waitlist_size=_capacity(row.max_waitlist_size),
        pricing_enabled=row.pricing_enabled,
        registration_opens_at=row.registration_opens_at,
        registration_closes_at=row.registration_closes_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _to_tier(row: models.PricingTier, currency: str) -> PricingTier:
    return PricingTier(
        id=PricingTierId(row.id),
        event_id=EventId(row.event_id),
        name=row.name,
        price=Money(row.price, currency),
        audience=Audience(row.audience),
        priority=row.priority,
        effective_from=row.effective_from,
        effective_to=row.effective_to,
        capacity_start=row.capacity_start,
        capacity_end=row.capacity_end,
        is_active=row.is_active,
        created_at=row.created_at,
    )


def _to_registration(row: models.Registration) -> Registration:
    return Registration(
        id=RegistrationId(row.id),
        event_id=EventId(row.event_id),
        registration_number=row.registration_number,
        registrant=Registrant(
            name=row.registrant_name,
            email=row.registrant_email,
            phone=row.registrant_phone or None,
            is_member=row.is_member,
            athlete_id=row.athlete_id,
        ),
        status=RegistrationStatus(row.status),
        price=Money(row.price, row.currency),
        applied_tier_id=PricingTierId(row.applied_tier_id) if row.applied_tier_id else None,
        paid_amount=Money(row.paid_amount, row.currency),
        payment_status=RegistrationPaymentStatus(row.payment_status),
        waitlist_position=row.waitlist_position,
        cancellation_reason=row.cancellation_reason,
        registered_at=row.registered_at,
        confirmed_at=row.confirmed_at,
        cancelled_at=row.cancelled_at,
    )


def _to_payment(row: models.Payment) -> Payment:
    return Payment(
        id=PaymentId(row.id),
        registration_id=RegistrationId(row.registration_id),
        amount=Money(row.amount, row.currency),
        method=PaymentMethod(row.method),
        status=PaymentStatus(row.status),
        payment_date=row.payment_date,
        receipt_number=row.receipt_number,
        notes=row.notes,
        refunded_amount=Money(row.refunded_amount, row.currency),
        refunded_at=row.refunded_at,
        refund_reason=row.refund_reason,
        created_at=row.created_at,
    )


class DjangoRegistrationStore(RegistrationStore):
    """PostgreSQL-backed registration store using Django ORM."""

    @contextmanager
    def atomic(self) -> Iterator[None]:
        try:
            with transaction.atomic():
                yield
        except OperationalError as exc:
            if not is_retryable(exc):
                raise
            logger.warning("Transaction aborted by lock contention: %s", exc)
            raise ConcurrentModificationError() from exc

    def get_event(
        self, organization_id: OrganizationId, event_id: EventId, *, for_update: bool = False
    ) -> Event | None:
        queryset = models.Event.objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        try:
            row = queryset.get(pk=event_id.value, organization_id=organization_id.value)
        except models.Event.DoesNotExist:
            return None
        return _to_event(row)

    def list_pricing_tiers(
        self, event_id: EventId, *, include_inactive: bool = False
    ) -> list[PricingTier]:
        queryset = models.PricingTier.objects.filter(event_id=event_id.value).select_related(
            "event"
        )
        if not include_inactive:
            queryset = queryset.filter(is_active=True)
        return [_to_tier(row, row.event.currency) for row in queryset]

    def get_pricing_tier(
        self, organization_id: OrganizationId, tier_id: PricingTierId
    ) -> PricingTier | None:
        try:
            row = models.PricingTier.objects.select_related("event").get(
                pk=tier_id.value, event__organization_id=organization_id.value
            )
        except models.PricingTier.DoesNotExist:
            return None
        return _to_tier(row, row.event.currency)

    def add_pricing_tier(self, tier: NewPricingTier) -> PricingTier:
        row = models.PricingTier.objects.create(
            event_id=tier.event_id.value,
            name=tier.name,
            price=tier.price.amount,
            audience=tier.audience.value,
            priority=tier.priority,
            effective_from=tier.effective_from,
            effective_to=tier.effective_to,
            capacity_start=tier.capacity_start,
            capacity_end=tier.capacity_end,
        )
        return _to_tier(row, tier.price.currency)

    def update_pricing_tier(self, tier_id: PricingTierId, tier: NewPricingTier) -> PricingTier:
        row = models.PricingTier.objects.select_related("event").get(pk=tier_id.value)
        row.name = tier.name
        row.price = tier.price.amount
        row.audience = tier.audience.value
        row.priority = tier.priority
        row.effective_from = tier.effective_from
        row.effective_to = tier.effective_to
        row.capacity_start = tier.capacity_start
        row.capacity_end = tier.capacity_end
        row.save(update_fields=TIER_EDITABLE_FIELDS)
        return _to_tier(row, row.event.currency)

    def set_pricing_tier_active(self, tier_id: PricingTierId, is_active: bool) -> PricingTier:
        row = models.PricingTier.objects.select_related("event").get(pk=tier_id.value)
        row.is_active = is_active
        row.save(update_fields=["is_active"])
        return _to_tier(row, row.event.currency)

    def count_registrations(self, event_id: EventId, status: RegistrationStatus) -> int:
        return models.Registration.objects.filter(
            event_id=event_id.value, status=status.value
        ).count()

    def next_registration_number(self, event_id: EventId) -> int:
        result = models.Registration.objects.filter(event_id=event_id.value).aggregate(
            highest=Max("registration_number")
        )
        return (result["highest"] or 0) + 1

    def has_active_registration(self, event_id: EventId, email: str) -> bool:
        return (
            models.Registration.objects.filter(event_id=event_id.value, registrant_email=email)
            .exclude(status=RegistrationStatus.CANCELLED.value)
            .exists()
        )

    def list_waitlist(self, event_id: EventId) -> list[Registration]:
        queryset = models.Registration.objects.filter(
            event_id=event_id.value, status=RegistrationStatus.WAITLISTED.value
        ).order_by("waitlist_position")
        return [_to_registration(row) for row in queryset]

    def add_registration(self, registration: NewRegistration) -> Registration:
        registrant = registration.registrant
        price = registration.resolved_price
        row = models.Registration.objects.create(
            event_id=registration.event_id.value,
            registration_number=registration.registration_number,
            athlete_id=registrant.athlete_id,
            registrant_name=registrant.name,
            registrant_email=registrant.email,
            registrant_phone=registrant.phone or "",
            is_member=registrant.is_member,
            status=registration.status.value,
            waitlist_position=registration.waitlist_position,
            applied_tier_id=price.tier_id.value if price.tier_id else None,
            price=price.price.amount,
            currency=price.price.currency,
            paid_amount=0,
            payment_status=(
                RegistrationPaymentStatus.PAID.value
                if price.price.is_zero()
                else RegistrationPaymentStatus.PENDING.value
            ),
            registered_at=registration.registered_at,
            confirmed_at=registration.confirmed_at,
        )
        return _to_registration(row)

    def get_registration(
        self,
        organization_id: OrganizationId,
        registration_id: RegistrationId,
        *,
        for_update: bool = False,
    ) -> Registration | None:
        queryset = models.Registration.objects.all()
        if for_update:
            queryset = queryset.select_for_update(of=("self",))
        try:
            row = queryset.get(
                pk=registration_id.value, event__organization_id=organization_id.value
            )
        except models.Registration.DoesNotExist:
            return None
        return _to_registration(row)

    def save_registration(self, registration: Registration) -> Registration:
        row = models.Registration.objects.get(pk=registration.id.value)
        row.status = registration.status.value
        row.waitlist_position = registration.waitlist_position
        row.paid_amount = registration.paid_amount.amount
        row.payment_status = registration.payment_status.value
        row.cancellation_reason = registration.cancellation_reason
        row.confirmed_at = registration.confirmed_at
        row.cancelled_at = registration.cancelled_at
        row.save(
            update_fields=[
                "status",
                "waitlist_position",
                "paid_amount",
                "payment_status",
                "cancellation_reason",
                "confirmed_at",
                "cancelled_at",
                "updated_at",
            ]
        )
        return _to_registration(row)

    def set_waitlist_position(self, registration_id: RegistrationId, position: int) -> None:
        models.Registration.objects.filter(pk=registration_id.value).update(
            waitlist_position=position
        )

    def list_registrations(
        self, event_id: EventId, filters: RegistrationFilters, page: PageRequest
    ) -> Page[Registration]:
        queryset = models.Registration.objects.filter(event_id=event_id.value)
        if filters.statuses:
            queryset = queryset.filter(status__in=[status.value for status in filters.statuses])
        if filters.waitlist_only is True:
            queryset = queryset.filter(status=RegistrationStatus.WAITLISTED.value)
        elif filters.waitlist_only is False:
            queryset = queryset.filter(waitlist_position__isnull=True)
        if filters.query:
            queryset = queryset.filter(
                Q(registrant_name__icontains=filters.query)
                | Q(registrant_email__icontains=filters.query)
            )

        sort_field = (
            filters.sort_by
            if filters.sort_by in SORTABLE_REGISTRATION_FIELDS
            else "registration_number"
        )
        ordering = f"-{sort_field}" if filters.descending else sort_field
        queryset = queryset.order_by(ordering, "registration_number")

        total = queryset.count()
        rows = queryset[page.offset : page.offset + page.limit]
        return Page(items=[_to_registration(row) for row in rows], total=total)

    def add_payment(self, payment: NewPayment) -> Payment:
        row = models.Payment.objects.create(
            registration_id=payment.registration_id.value,
            amount=payment.amount.amount,
            currency=payment.amount.currency,
            method=payment.method.value,
            status=PaymentStatus.PAID.value,
            payment_date=payment.payment_date,
            receipt_number=payment.receipt_number,
            notes=payment.notes,
        )
        return _to_payment(row)

    def get_payment(
        self, organization_id: OrganizationId, payment_id: PaymentId, *, for_update: bool = False
    ) -> Payment | None:
        queryset = models.Payment.objects.all()
        if for_update:
            queryset = queryset.select_for_update(of=("self",))
        try:
            row = queryset.get(
                pk=payment_id.value,
                registration__event__organization_id=organization_id.value,
            )
        except models.Payment.DoesNotExist:
            return None
        return _to_payment(row)

    def list_payments_for_registration(self, registration_id: RegistrationId) -> list[Payment]:
        queryset = models.Payment.objects.filter(registration_id=registration_id.value)
        return [_to_payment(row) for row in queryset]

    def apply_refund(
        self,
        payment: Payment,
        refunded_amount: int,
        status: PaymentStatus,
        refunded_at: datetime,
        refund_reason: str,
    ) -> Payment | None:
        updated = models.Payment.objects.filter(
            pk=payment.id.value,
            refunded_amount=payment.refunded_amount.amount,
        ).update(
            refunded_amount=refunded_amount,
            status=status.value,
            refunded_at=refunded_at,
            refund_reason=refund_reason,
        )
        if not updated:
            return None
        return _to_payment(models.Payment.objects.get(pk=payment.id.value))

    def list_payments(
        self, organization_id: OrganizationId, filters: PaymentFilters, page: PageRequest
    ) -> Page[Payment]:
        queryset = models.Payment.objects.filter(
            registration__event__organization_id=organization_id.value
        )
        if filters.registration_id is not None:
            queryset = queryset.filter(registration_id=filters.registration_id.value)
        if filters.event_id is not None:
            queryset = queryset.filter(registration__event_id=filters.event_id.value)
        if filters.statuses:
            queryset = queryset.filter(status__in=[status.value for status in filters.statuses])
        if filters.methods:
            queryset = queryset.filter(method__in=[method.value for method in filters.methods])

        queryset = queryset.order_by("-created_at")
        total = queryset.count()
        rows = queryset[page.offset : page.offset + page.limit]
        return Page(items=[_to_payment(row) for row in rows], total=total)
