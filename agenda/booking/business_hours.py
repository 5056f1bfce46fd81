from collections import defaultdict
from collections.abc import Iterable, Sequence

from agenda.booking.records import CandidateSlot, WeeklyAvailabilityWindow
from agenda.booking.time_model import day_of_week


def windows_for_day(
    windows: Iterable[WeeklyAvailabilityWindow],
    weekday: int,
) -> list[WeeklyAvailabilityWindow]:
    return [window for window in windows if window.day_of_week == weekday]


def is_within_business_hours(
    slot: CandidateSlot,
    windows: Iterable[WeeklyAvailabilityWindow],
) -> bool:
    """Return True when the slot fits entirely inside one window for its weekday."""
    slot_start = slot.start_minutes
    slot_end = slot_start + slot.duration_minutes

    for window in windows_for_day(windows, day_of_week(slot.date)):
        if window.start_minutes <= slot_start and slot_end <= window.end_minutes:
            return True

    return False


def find_overlapping_windows(
    windows: Sequence[WeeklyAvailabilityWindow],
) -> list[tuple[WeeklyAvailabilityWindow, WeeklyAvailabilityWindow]]:
    """Pairs of same-day windows that overlap each other.

    Adjacent windows (one ending exactly where the next starts) do not overlap.
    """
    by_day: dict[int, list[WeeklyAvailabilityWindow]] = defaultdict(list)
    for window in windows:
        by_day[window.day_of_week].append(window)

    overlapping = []
    for day_windows in by_day.values():
        ordered = sorted(day_windows, key=lambda window: window.start_minutes)
        latest_ending = ordered[0]
        for current in ordered[1:]:
            if current.start_minutes < latest_ending.end_minutes:
                overlapping.append((latest_ending, current))
            if current.end_minutes > latest_ending.end_minutes:
                latest_ending = current

    return overlapping
