"""Pricing tier selection.

A tier applies to a registration request when it is active, its
``[effective_from, effective_to)`` window contains the request instant, its
audience is general or matches the registrant, and its capacity range (if
any) contains the registration's sequence number. Among applicable tiers the
winner is picked by highest priority, then the latest ``effective_from``
(an open start sorts earliest), then the lowest price.
"""

from collections.abc import Iterable
from datetime import datetime

from registrations.domain.errors import InvalidTierError, PricingUnresolvedError
from registrations.domain.models import Event, NewPricingTier, PricingTier, ResolvedPrice
from registrations.domain.value_objects import Audience, Money


def tier_applies(
    tier: PricingTier,
    at: datetime,
    audience: Audience,
    registration_number: int,
) -> bool:
    if not tier.is_active:
        return False
    if tier.effective_from is not None and at < tier.effective_from:
        return False
    if tier.effective_to is not None and at >= tier.effective_to:
        return False
    if tier.audience is not Audience.GENERAL and tier.audience is not audience:
        return False
    if tier.capacity_start is not None and registration_number < tier.capacity_start:
        return False
    if tier.capacity_end is not None and registration_number > tier.capacity_end:
        return False
    return True


def _rank(tier: PricingTier) -> tuple:
    starts_at = tier.effective_from.timestamp() if tier.effective_from else float("-inf")
    return (-tier.priority, -starts_at, tier.price.amount)


def select_tier(
    tiers: Iterable[PricingTier],
    at: datetime,
    audience: Audience,
    registration_number: int,
) -> PricingTier | None:
    """Return the single applicable tier after tie-break, or None."""
    candidates = [
        tier for tier in tiers if tier_applies(tier, at, audience, registration_number)
    ]
    if not candidates:
        return None
    return min(candidates, key=_rank)


def resolve_price(
    event: Event,
    tiers: Iterable[PricingTier],
    at: datetime,
    audience: Audience,
    registration_number: int,
) -> ResolvedPrice:
    """Resolve the price snapshot for a registration request.

    Raises:
        PricingUnresolvedError: If pricing is enabled and no tier applies.
    """
    if not event.pricing_enabled:
        return ResolvedPrice(price=Money.zero(event.currency), tier_id=None, tier_name=None)

    tier = select_tier(tiers, at, audience, registration_number)
    if tier is None:
        raise PricingUnresolvedError(str(event.id.value))
    return ResolvedPrice(price=tier.price, tier_id=tier.id, tier_name=tier.name)


def validate_new_tier(tier: NewPricingTier) -> None:
    """Reject tiers whose windows or capacity ranges are inverted."""
    if not tier.name.strip():
        raise InvalidTierError("Tier name is required")
    if (
        tier.effective_from is not None
        and tier.effective_to is not None
        and tier.effective_from >= tier.effective_to
    ):
        raise InvalidTierError("effective_from must be earlier than effective_to")
    if tier.capacity_start is not None and tier.capacity_start < 1:
        raise InvalidTierError("capacity_start must be at least 1")
    if (
        tier.capacity_start is not None
        and tier.capacity_end is not None
        and tier.capacity_start > tier.capacity_end
    ):
        raise InvalidTierError("capacity_start must not exceed capacity_end")
