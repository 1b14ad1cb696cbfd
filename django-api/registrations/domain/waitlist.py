"""FIFO waitlist ordering rules.

Positions among an event's waitlisted registrations are always exactly
``1..k``. Every change is expressed as a list of ``(registration, new
position)`` moves in ascending order of the current position, so applying
them one at a time never produces a duplicate position.
"""

from collections.abc import Sequence

from registrations.domain.models import Registration


def next_position(waitlist: Sequence[Registration]) -> int:
    if not waitlist:
        return 1
    return max(entry.waitlist_position or 0 for entry in waitlist) + 1


def compaction_moves(
    waitlist: Sequence[Registration], removed_position: int
) -> list[tuple[Registration, int]]:
    """Moves that close the gap left at ``removed_position``."""
    ordered = sorted(waitlist, key=lambda entry: entry.waitlist_position or 0)
    return [
        (entry, entry.waitlist_position - 1)
        for entry in ordered
        if entry.waitlist_position is not None
        and entry.waitlist_position > removed_position
    ]
