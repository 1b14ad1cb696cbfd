"""Registration service - admission control and cancellation.

Services:
- Depend only on interfaces (stores, notifier)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or raise domain errors

Every operation that changes how many confirmed or waitlisted registrations
an event has locks the event row first. That lock is what makes the
count-then-insert in ``create_registration`` atomic with respect to other
writers for the same event.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from django.utils import timezone

from registrations.conf import get_setting
from registrations.domain import (
    Event,
    EventAvailability,
    EventId,
    NewRegistration,
    OrganizationId,
    Registrant,
    Registration,
    RegistrationId,
    RegistrationStatus,
)
from registrations.domain.errors import (
    CapacityExceededError,
    DuplicateRegistrationError,
    EventNotFoundError,
    InvalidStateError,
    RegistrationClosedError,
    RegistrationNotFoundError,
)
from registrations.domain.waitlist import next_position
from registrations.notifications import RegistrationNotifier
from registrations.services.identifiers import parse_id, parse_organization_id
from registrations.services.pricing_service import PricingService
from registrations.services.waitlist_service import WaitlistService
from registrations.stores.interfaces import (
    Page,
    PageRequest,
    RegistrationFilters,
    RegistrationStore,
)

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = frozenset(
    {
        RegistrationStatus.PENDING,
        RegistrationStatus.CONFIRMED,
        RegistrationStatus.WAITLISTED,
    }
)


@dataclass(frozen=True)
class CancellationResult:
    registration: Registration
    promoted: Registration | None = None


class RegistrationService:
    """Service for registration admission, cancellation and queries."""

    def __init__(
        self,
        store: RegistrationStore,
        notifier: RegistrationNotifier | None = None,
        pricing: PricingService | None = None,
        waitlist: WaitlistService | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._pricing = pricing or PricingService(store)
        self._waitlist = waitlist or WaitlistService(store)

    def create_registration(
        self,
        organization_id: str,
        event_id: str,
        registrant: Registrant,
        requested_at: datetime | None = None,
    ) -> Registration:
        """Admit a registrant as confirmed, or waitlisted when full.

        Raises:
            InvalidIdentifierError: If an ID is not a valid UUID.
            EventNotFoundError: If the event does not exist in the organization.
            RegistrationClosedError: If ``requested_at`` is outside the window.
            DuplicateRegistrationError: If the email already holds a registration.
            PricingUnresolvedError: If no pricing tier covers ``requested_at``.
            CapacityExceededError: If no confirmed or waitlist slot is left.
        """
        org_id = parse_organization_id(organization_id)
        parsed_event_id = parse_id(EventId, event_id, "event")
        requested_at = requested_at or timezone.now()

        with self._store.atomic():
            event = self._store.get_event(org_id, parsed_event_id, for_update=True)
            if event is None:
                raise EventNotFoundError(event_id)
            self._check_window(event, requested_at)
            if self._store.has_active_registration(event.id, registrant.email):
                raise DuplicateRegistrationError(event_id)

            registration_number = self._store.next_registration_number(event.id)
            resolved = self._pricing.resolve_for_event(
                event, requested_at, registrant.audience, registration_number
            )

            status, position = self._admit(event)
            registration = self._store.add_registration(
                NewRegistration(
                    event_id=event.id,
                    registration_number=registration_number,
                    registrant=registrant,
                    status=status,
                    resolved_price=resolved,
                    waitlist_position=position,
                    registered_at=requested_at,
                    confirmed_at=requested_at if status is RegistrationStatus.CONFIRMED else None,
                )
            )
            if self._notifier is not None:
                self._notifier.registration_created(registration)

        logger.info(
            "Registration %s for event %s admitted as %s (position=%s, price=%s)",
            registration.id.value,
            event.id.value,
            registration.status.value,
            registration.waitlist_position,
            registration.price,
        )
        return registration

    def cancel_registration(
        self,
        organization_id: str,
        registration_id: str,
        reason: str = "",
        at: datetime | None = None,
    ) -> CancellationResult:
        """Cancel a registration, promoting the waitlist head if a confirmed
        slot was freed. Never refunds.

        Raises:
            InvalidIdentifierError: If an ID is not a valid UUID.
            RegistrationNotFoundError: If the registration does not exist.
            InvalidStateError: If the registration is already cancelled.
        """
        org_id = parse_organization_id(organization_id)
        parsed_id = parse_id(RegistrationId, registration_id, "registration")
        at = at or timezone.now()

        with self._store.atomic():
            current = self._store.get_registration(org_id, parsed_id)
            if current is None:
                raise RegistrationNotFoundError(registration_id)

            # Lock order: event, then registration.
            event = self._store.get_event(org_id, current.event_id, for_update=True)
            registration = self._store.get_registration(org_id, parsed_id, for_update=True)
            if event is None or registration is None:
                raise RegistrationNotFoundError(registration_id)
            if registration.status not in CANCELLABLE_STATUSES:
                raise InvalidStateError(
                    f"Cannot cancel a registration that is {registration.status.value}",
                    registration_id,
                )

            cancelled = self._store.save_registration(
                replace(
                    registration,
                    status=RegistrationStatus.CANCELLED,
                    waitlist_position=None,
                    cancelled_at=at,
                    cancellation_reason=reason.strip(),
                )
            )

            promoted = None
            if registration.status is RegistrationStatus.CONFIRMED:
                if self._has_free_slot(event):
                    promoted = self._waitlist.promote_head(event.id, at)
            elif registration.status is RegistrationStatus.WAITLISTED:
                self._waitlist.remove_and_compact(registration)

            if self._notifier is not None:
                self._notifier.registration_cancelled(cancelled)
                if promoted is not None:
                    self._notifier.registration_promoted(promoted)

        logger.info(
            "Registration %s cancelled (was %s, promoted=%s)",
            registration_id,
            registration.status.value,
            promoted.id.value if promoted else None,
        )
        return CancellationResult(registration=cancelled, promoted=promoted)

    def get_registration(self, organization_id: str, registration_id: str) -> Registration:
        """Return a registration by ID.

        Raises:
            InvalidIdentifierError: If an ID is not a valid UUID.
            RegistrationNotFoundError: If the registration does not exist.
        """
        org_id = parse_organization_id(organization_id)
        parsed_id = parse_id(RegistrationId, registration_id, "registration")
        registration = self._store.get_registration(org_id, parsed_id)
        if registration is None:
            raise RegistrationNotFoundError(registration_id)
        return registration

    def list_registrations(
        self,
        organization_id: str,
        event_id: str,
        filters: RegistrationFilters | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> Page[Registration]:
        event = self._load_event(parse_organization_id(organization_id), event_id)
        page_size = limit or get_setting("DEFAULT_PAGE_SIZE")
        page = PageRequest(
            limit=max(1, min(page_size, get_setting("MAX_PAGE_SIZE"))),
            offset=max(0, offset),
        )
        return self._store.list_registrations(event.id, filters or RegistrationFilters(), page)

    def get_availability(self, organization_id: str, event_id: str) -> EventAvailability:
        event = self._load_event(parse_organization_id(organization_id), event_id)
        confirmed = self._store.count_registrations(event.id, RegistrationStatus.CONFIRMED)
        waitlisted = self._store.count_registrations(event.id, RegistrationStatus.WAITLISTED)
        capacity = event.max_capacity.value if event.max_capacity is not None else None
        return EventAvailability(
            event_id=event.id,
            max_capacity=capacity,
            confirmed_count=confirmed,
            spots_available=max(capacity - confirmed, 0) if capacity is not None else None,
            waitlist_enabled=event.waitlist_enabled,
            waitlist_count=waitlisted,
            max_waitlist_size=(
                event.max_waitlist_size.value if event.max_waitlist_size is not None else None
            ),
        )

    def _admit(self, event: Event) -> tuple[RegistrationStatus, int | None]:
        """Decide the status of a new registration. Caller holds the event lock."""
        if self._has_free_slot(event):
            return RegistrationStatus.CONFIRMED, None

        if event.waitlist_enabled:
            waitlist = self._store.list_waitlist(event.id)
            limit = event.max_waitlist_size
            if limit is None or len(waitlist) < limit.value:
                return RegistrationStatus.WAITLISTED, next_position(waitlist)

        logger.info("Rejected registration for event %s: capacity exceeded", event.id.value)
        raise CapacityExceededError(str(event.id.value))

    def _has_free_slot(self, event: Event) -> bool:
        if event.max_capacity is None:
            return True
        confirmed = self._store.count_registrations(event.id, RegistrationStatus.CONFIRMED)
        return confirmed < event.max_capacity.value

    def _check_window(self, event: Event, at: datetime) -> None:
        if event.accepts_registrations_at(at):
            return
        event_id = str(event.id.value)
        if event.registration_opens_at is not None and at < event.registration_opens_at:
            raise RegistrationClosedError(event_id, "Registration has not opened yet")
        raise RegistrationClosedError(event_id, "Registration has closed")

    def _load_event(self, organization_id: OrganizationId, event_id: str) -> Event:
        parsed = parse_id(EventId, event_id, "event")
        event = self._store.get_event(organization_id, parsed)
        if event is None:
            raise EventNotFoundError(event_id)
        return event
