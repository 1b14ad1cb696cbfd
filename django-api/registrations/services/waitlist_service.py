"""Waitlist ordering.

Both operations must run inside the caller's transaction, after the caller
has locked the event row, so the renumbering commits together with the
status change that triggered it.
"""

import logging
from dataclasses import replace
from datetime import datetime

from registrations.domain import EventId, Registration, RegistrationStatus
from registrations.domain.waitlist import compaction_moves
from registrations.stores.interfaces import RegistrationStore

logger = logging.getLogger(__name__)


class WaitlistService:
    """Maintains strict FIFO positions ``1..k`` per event."""

    def __init__(self, store: RegistrationStore) -> None:
        self._store = store

    def promote_head(self, event_id: EventId, at: datetime) -> Registration | None:
        """Confirm the registration at position 1 and shift the rest up."""
        waitlist = self._store.list_waitlist(event_id)
        if not waitlist:
            return None

        head, rest = waitlist[0], waitlist[1:]
        promoted = self._store.save_registration(
            replace(
                head,
                status=RegistrationStatus.CONFIRMED,
                waitlist_position=None,
                confirmed_at=at,
            )
        )
        self._apply_moves(rest, head.waitlist_position or 1)
        logger.info(
            "Promoted registration %s from waitlist of event %s",
            promoted.id.value,
            event_id.value,
        )
        return promoted

    def remove_and_compact(self, removed: Registration) -> None:
        """Close the gap left by ``removed``, a waitlisted registration that
        has just been cancelled."""
        if removed.waitlist_position is None:
            return
        waitlist = self._store.list_waitlist(removed.event_id)
        self._apply_moves(waitlist, removed.waitlist_position)

    def _apply_moves(self, waitlist: list[Registration], removed_position: int) -> None:
        for entry, position in compaction_moves(waitlist, removed_position):
            self._store.set_waitlist_position(entry.id, position)
