"""Tests for pricing tier selection and the pricing service.

Run with: pytest tests/test_pricing.py -v
"""

import uuid
from datetime import datetime, timezone

import pytest

from registrations.domain import (
    Audience,
    Event,
    EventId,
    Money,
    OrganizationId,
    PricingTier,
    PricingTierId,
)
from registrations.domain.errors import (
    EventNotFoundError,
    InvalidTierError,
    PricingTierNotFoundError,
    PricingUnresolvedError,
)
from registrations.domain.pricing import resolve_price, select_tier
from registrations.services import TierInput


def utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


EVENT_ID = EventId(uuid.uuid4())


def make_domain_event(pricing_enabled: bool = True) -> Event:
    return Event(
        id=EVENT_ID,
        organization_id=OrganizationId(uuid.uuid4()),
        name="Trail Run",
        currency="ARS",
        max_capacity=None,
        waitlist_enabled=True,
        max_waitlist_size=None,
        pricing_enabled=pricing_enabled,
        registration_opens_at=None,
        registration_closes_at=None,
        created_at=utc(2025, 1, 1),
        updated_at=utc(2025, 1, 1),
    )


def make_domain_tier(name: str, price: int, **overrides) -> PricingTier:
    fields = {
        "id": PricingTierId(uuid.uuid4()),
        "event_id": EVENT_ID,
        "name": name,
        "price": Money(price, "ARS"),
        "audience": Audience.GENERAL,
        "priority": 0,
        "effective_from": None,
        "effective_to": None,
        "capacity_start": None,
        "capacity_end": None,
        "is_active": True,
        "created_at": utc(2025, 1, 1),
    }
    fields.update(overrides)
    return PricingTier(**fields)


class TestResolvePrice:
    """Tests for the pure pricing resolver."""

    def setup_method(self):
        self.event = make_domain_event()
        self.tiers = [
            make_domain_tier(
                "January", 100, effective_from=utc(2025, 1, 1), effective_to=utc(2025, 2, 1)
            ),
            make_domain_tier(
                "February", 150, effective_from=utc(2025, 2, 1), effective_to=utc(2025, 3, 1)
            ),
        ]

    def test_resolves_tier_covering_instant(self):
        """Consecutive windows each price their own month."""
        jan = resolve_price(self.event, self.tiers, utc(2025, 1, 15), Audience.GENERAL, 1)
        feb = resolve_price(self.event, self.tiers, utc(2025, 2, 15), Audience.GENERAL, 1)
        assert jan.price.amount == 100
        assert jan.tier_name == "January"
        assert feb.price.amount == 150

    def test_no_covering_tier_raises(self):
        """An instant past every window cannot be priced."""
        with pytest.raises(PricingUnresolvedError):
            resolve_price(self.event, self.tiers, utc(2025, 3, 15), Audience.GENERAL, 1)

    def test_window_end_is_exclusive(self):
        """At exactly Feb 1 the February tier applies, not January."""
        resolved = resolve_price(self.event, self.tiers, utc(2025, 2, 1), Audience.GENERAL, 1)
        assert resolved.tier_name == "February"

    def test_pricing_disabled_is_free(self):
        """Events without pricing resolve to zero and no tier."""
        resolved = resolve_price(
            make_domain_event(pricing_enabled=False), [], utc(2025, 3, 15), Audience.GENERAL, 1
        )
        assert resolved.price.is_zero()
        assert resolved.tier_id is None


class TestSelectTier:
    """Tests for tier tie-breaking and filters."""

    def test_highest_priority_wins(self):
        tiers = [
            make_domain_tier("Base", 100),
            make_domain_tier("Promo", 200, priority=5),
        ]
        assert select_tier(tiers, utc(2025, 1, 10), Audience.GENERAL, 1).name == "Promo"

    def test_latest_start_wins_on_equal_priority(self):
        tiers = [
            make_domain_tier("Open", 100),
            make_domain_tier("Late", 300, effective_from=utc(2025, 1, 5)),
        ]
        assert select_tier(tiers, utc(2025, 1, 10), Audience.GENERAL, 1).name == "Late"

    def test_lowest_price_breaks_remaining_tie(self):
        tiers = [
            make_domain_tier("Expensive", 300),
            make_domain_tier("Cheap", 100),
        ]
        assert select_tier(tiers, utc(2025, 1, 10), Audience.GENERAL, 1).name == "Cheap"

    def test_member_tier_only_for_members(self):
        tiers = [
            make_domain_tier("General", 1000),
            make_domain_tier("Members", 700, audience=Audience.MEMBERS, priority=1),
        ]
        assert select_tier(tiers, utc(2025, 1, 10), Audience.GENERAL, 1).name == "General"
        assert select_tier(tiers, utc(2025, 1, 10), Audience.MEMBERS, 1).name == "Members"

    def test_capacity_range_is_inclusive(self):
        tiers = [
            make_domain_tier("Early bird", 500, priority=1, capacity_start=1, capacity_end=10),
            make_domain_tier("Regular", 800),
        ]
        assert select_tier(tiers, utc(2025, 1, 10), Audience.GENERAL, 10).name == "Early bird"
        assert select_tier(tiers, utc(2025, 1, 10), Audience.GENERAL, 11).name == "Regular"

    def test_inactive_tier_ignored(self):
        tiers = [make_domain_tier("Retired", 100, is_active=False)]
        assert select_tier(tiers, utc(2025, 1, 10), Audience.GENERAL, 1) is None


@pytest.mark.django_db
class TestPricingService:
    """Tests for PricingService against the database."""

    def test_create_and_list_tiers(self, pricing_service, make_event, org_id):
        event = make_event(pricing_enabled=True)
        tier = pricing_service.create_tier(
            org_id, str(event.id), TierInput(name="  Early  ", price=5000, priority=2)
        )
        assert tier.name == "Early"
        assert tier.price == Money(5000, "ARS")
        assert [t.id for t in pricing_service.list_tiers(org_id, str(event.id))] == [tier.id]

    def test_create_tier_rejects_inverted_window(self, pricing_service, make_event, org_id):
        event = make_event(pricing_enabled=True)
        data = TierInput(
            name="Broken", price=100, effective_from=utc(2025, 2, 1), effective_to=utc(2025, 1, 1)
        )
        with pytest.raises(InvalidTierError):
            pricing_service.create_tier(org_id, str(event.id), data)

    def test_create_tier_rejects_inverted_capacity_range(
        self, pricing_service, make_event, org_id
    ):
        event = make_event(pricing_enabled=True)
        data = TierInput(name="Broken", price=100, capacity_start=10, capacity_end=5)
        with pytest.raises(InvalidTierError):
            pricing_service.create_tier(org_id, str(event.id), data)

    def test_create_tier_unknown_event(self, pricing_service, org_id):
        with pytest.raises(EventNotFoundError):
            pricing_service.create_tier(org_id, str(uuid.uuid4()), TierInput(name="X", price=1))

    def test_deactivate_tier_hides_it_from_resolution(
        self, pricing_service, make_event, make_tier, org_id
    ):
        event = make_event(pricing_enabled=True)
        tier = make_tier(event, price=5000)
        pricing_service.deactivate_tier(org_id, str(tier.id))

        assert pricing_service.list_tiers(org_id, str(event.id)) == []
        assert len(pricing_service.list_tiers(org_id, str(event.id), include_inactive=True)) == 1
        with pytest.raises(PricingUnresolvedError):
            pricing_service.quote_price(org_id, str(event.id))

    def test_deactivate_tier_other_organization(self, pricing_service, make_event, make_tier):
        tier = make_tier(make_event())
        with pytest.raises(PricingTierNotFoundError):
            pricing_service.deactivate_tier(str(uuid.uuid4()), str(tier.id))

    def test_update_tier_merges_changes(self, pricing_service, make_event, make_tier, org_id):
        event = make_event(pricing_enabled=True)
        tier = make_tier(event, name="Early", price=5000, capacity_start=1, capacity_end=50)

        updated = pricing_service.update_tier(
            org_id, str(tier.id), {"price": 6000, "audience": "members"}
        )

        assert updated.price == Money(6000, "ARS")
        assert updated.audience is Audience.MEMBERS
        assert updated.name == "Early"
        assert (updated.capacity_start, updated.capacity_end) == (1, 50)
        tier.refresh_from_db()
        assert tier.price == 6000

    def test_update_tier_checks_merged_capacity_range(
        self, pricing_service, make_event, make_tier, org_id
    ):
        tier = make_tier(make_event(), capacity_start=10, capacity_end=20)
        with pytest.raises(InvalidTierError):
            pricing_service.update_tier(org_id, str(tier.id), {"capacity_end": 5})
        tier.refresh_from_db()
        assert tier.capacity_end == 20

    def test_update_tier_rejects_unknown_fields(
        self, pricing_service, make_event, make_tier, org_id
    ):
        tier = make_tier(make_event())
        with pytest.raises(InvalidTierError):
            pricing_service.update_tier(org_id, str(tier.id), {"is_active": False})

    def test_update_tier_other_organization(self, pricing_service, make_event, make_tier):
        tier = make_tier(make_event())
        with pytest.raises(PricingTierNotFoundError):
            pricing_service.update_tier(str(uuid.uuid4()), str(tier.id), {"price": 1})

    def test_quote_uses_next_registration_number(
        self, pricing_service, make_event, make_tier, org_id
    ):
        event = make_event(pricing_enabled=True)
        make_tier(event, name="Regular", price=8000)
        make_tier(event, name="First", price=1000, priority=1, capacity_start=1, capacity_end=1)

        quote = pricing_service.quote_price(org_id, str(event.id))
        assert quote.registration_number == 1
        assert quote.resolved.tier_name == "First"
        assert quote.resolved.price.amount == 1000

    def test_quote_rejects_unknown_audience(self, pricing_service, make_event, org_id):
        event = make_event()
        with pytest.raises(InvalidTierError):
            pricing_service.quote_price(org_id, str(event.id), audience="vip")
