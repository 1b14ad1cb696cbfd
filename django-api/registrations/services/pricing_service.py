"""Pricing service - tier management and price resolution."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from datetime import datetime
from typing import Any

from django.utils import timezone

from registrations.domain import (
    Audience,
    Event,
    EventId,
    Money,
    NewPricingTier,
    PricingTier,
    PricingTierId,
    ResolvedPrice,
)
from registrations.domain.errors import (
    EventNotFoundError,
    InvalidTierError,
    PricingTierNotFoundError,
)
from registrations.domain.pricing import resolve_price, validate_new_tier
from registrations.services.identifiers import parse_id, parse_organization_id
from registrations.stores.interfaces import RegistrationStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TierInput:
    """Caller-supplied fields of a pricing tier."""

    name: str
    price: int
    audience: str = Audience.GENERAL.value
    priority: int = 0
    effective_from: datetime | None = None
    effective_to: datetime | None = None
    capacity_start: int | None = None
    capacity_end: int | None = None


@dataclass(frozen=True)
class PriceQuote:
    resolved: ResolvedPrice
    registration_number: int


class PricingService:
    """Service for pricing tiers and the pricing resolver."""

    def __init__(self, store: RegistrationStore) -> None:
        self._store = store

    def resolve_for_event(
        self,
        event: Event,
        at: datetime,
        audience: Audience,
        registration_number: int,
    ) -> ResolvedPrice:
        """Resolve the price snapshot for an already loaded event.

        Raises:
            PricingUnresolvedError: If no tier covers ``at``.
        """
        tiers = self._store.list_pricing_tiers(event.id)
        resolved = resolve_price(event, tiers, at, audience, registration_number)
        logger.debug(
            "Resolved price %s for event %s (tier=%s, registration #%d)",
            resolved.price,
            event.id.value,
            resolved.tier_name,
            registration_number,
        )
        return resolved

    def quote_price(
        self,
        organization_id: str,
        event_id: str,
        audience: str = Audience.GENERAL.value,
        at: datetime | None = None,
    ) -> PriceQuote:
        """Quote the price the next registration would be charged.

        Raises:
            InvalidIdentifierError: If an ID is not a valid UUID.
            EventNotFoundError: If the event does not exist.
            PricingUnresolvedError: If no tier covers ``at``.
        """
        event = self._load_event(organization_id, event_id)
        try:
            parsed_audience = Audience(audience)
        except ValueError:
            raise InvalidTierError(f"Unknown audience: {audience}") from None
        registration_number = self._store.next_registration_number(event.id)
        resolved = self.resolve_for_event(
            event, at or timezone.now(), parsed_audience, registration_number
        )
        return PriceQuote(resolved=resolved, registration_number=registration_number)

    def list_tiers(
        self, organization_id: str, event_id: str, include_inactive: bool = False
    ) -> list[PricingTier]:
        event = self._load_event(organization_id, event_id)
        return self._store.list_pricing_tiers(event.id, include_inactive=include_inactive)

    def create_tier(self, organization_id: str, event_id: str, data: TierInput) -> PricingTier:
        """Add a pricing tier to an event.

        Raises:
            InvalidTierError: If the tier's fields are inconsistent.
        """
        event = self._load_event(organization_id, event_id)
        new_tier = _build_tier(event.id, event.currency, data)
        tier = self._store.add_pricing_tier(new_tier)
        logger.info("Created pricing tier %s for event %s", tier.id.value, event.id.value)
        return tier

    def update_tier(
        self, organization_id: str, tier_id: str, changes: Mapping[str, Any]
    ) -> PricingTier:
        """Edit some of a tier's fields.

        The merged tier is checked like a new one. Registrations priced
        before the edit keep their snapshot.

        Raises:
            InvalidIdentifierError: If an ID is not a valid UUID.
            PricingTierNotFoundError: If the tier does not exist.
            InvalidTierError: If the merged fields are inconsistent.
        """
        org_id = parse_organization_id(organization_id)
        parsed = parse_id(PricingTierId, tier_id, "pricing tier")
        tier = self._store.get_pricing_tier(org_id, parsed)
        if tier is None:
            raise PricingTierNotFoundError(tier_id)
        unknown = set(changes) - {f.name for f in fields(TierInput)}
        if unknown:
            raise InvalidTierError(f"Unknown tier fields: {', '.join(sorted(unknown))}")

        data = replace(_tier_input(tier), **changes)
        updated = self._store.update_pricing_tier(
            parsed, _build_tier(tier.event_id, tier.price.currency, data)
        )
        logger.info("Updated pricing tier %s (%s)", tier_id, ", ".join(sorted(changes)))
        return updated

    def deactivate_tier(self, organization_id: str, tier_id: str) -> PricingTier:
        """Stop offering a tier. Existing registrations keep their snapshot."""
        org_id = parse_organization_id(organization_id)
        parsed = parse_id(PricingTierId, tier_id, "pricing tier")
        tier = self._store.get_pricing_tier(org_id, parsed)
        if tier is None:
            raise PricingTierNotFoundError(tier_id)
        if not tier.is_active:
            return tier
        logger.info("Deactivating pricing tier %s", tier_id)
        return self._store.set_pricing_tier_active(parsed, False)

    def _load_event(self, organization_id: str, event_id: str) -> Event:
        org_id = parse_organization_id(organization_id)
        parsed = parse_id(EventId, event_id, "event")
        event = self._store.get_event(org_id, parsed)
        if event is None:
            raise EventNotFoundError(event_id)
        return event


def _tier_input(tier: PricingTier) -> TierInput:
    return TierInput(
        name=tier.name,
        price=tier.price.amount,
        audience=tier.audience.value,
        priority=tier.priority,
        effective_from=tier.effective_from,
        effective_to=tier.effective_to,
        capacity_start=tier.capacity_start,
        capacity_end=tier.capacity_end,
    )


def _build_tier(event_id: EventId, currency: str, data: TierInput) -> NewPricingTier:
    try:
        new_tier = NewPricingTier(
            event_id=event_id,
            name=data.name.strip(),
            price=Money(data.price, currency),
            audience=Audience(data.audience),
            priority=data.priority,
            effective_from=data.effective_from,
            effective_to=data.effective_to,
            capacity_start=data.capacity_start,
            capacity_end=data.capacity_end,
        )
    except ValueError as exc:
        raise InvalidTierError(str(exc)) from exc
    validate_new_tier(new_tier)
    return new_tier
