from collections.abc import Iterable
from datetime import date

from agenda.booking.records import AvailabilityException, CandidateSlot
from agenda.booking.time_model import intervals_overlap, to_minutes_since_midnight


def blocking_exceptions_for(
    target_date: date,
    exceptions: Iterable[AvailabilityException],
) -> list[AvailabilityException]:
    return [
        exception
        for exception in exceptions
        if exception.is_blocked and exception.date == target_date
    ]


def is_date_closed(target_date: date, exceptions: Iterable[AvailabilityException]) -> bool:
    """True when a full-day blocked exception exists for the date."""
    return any(exception.is_full_day for exception in blocking_exceptions_for(target_date, exceptions))


def is_slot_blocked(slot: CandidateSlot, exceptions: Iterable[AvailabilityException]) -> bool:
    """True when any blocked exception covers the slot.

    Blocking is monotonic, so every matching exception is checked and the first
    hit wins; partial ranges from several rows therefore act as their union.
    """
    for exception in blocking_exceptions_for(slot.date, exceptions):
        if exception.is_full_day:
            return True

        blocked_start = to_minutes_since_midnight(exception.start_time)
        blocked_duration = to_minutes_since_midnight(exception.end_time) - blocked_start
        if intervals_overlap(slot.start_minutes, slot.duration_minutes, blocked_start, blocked_duration):
            return True

    return False
