"""Slot calculation and booking validation for a single professional.

The engine is pure: callers hand it a data source that returns already-fetched
snapshots and an explicit ``now`` in the professional's local civil time. It
never writes anything; making validate-then-insert atomic is the job of the
persistence layer (see ``agenda.services.appointment_service``).
"""

import heapq
import logging
from collections.abc import Iterator, Sequence
from datetime import date, datetime
from typing import Protocol

from agenda.booking.blocked_dates import is_date_closed, is_slot_blocked
from agenda.booking.business_hours import is_within_business_hours, windows_for_day
from agenda.booking.conflicts import find_conflict, occupying_appointments
from agenda.booking.records import (
    AvailabilityException,
    CandidateSlot,
    ScheduledAppointment,
    WeeklyAvailabilityWindow,
)
from agenda.booking.time_model import combine, day_of_week, minutes_to_time
from agenda.core.errors import BookingError, BookingErrorCode

logger = logging.getLogger(__name__)


class BookingDataSource(Protocol):
    def fetch_weekly_availability(self, professional_id: str) -> Sequence[WeeklyAvailabilityWindow]:
        ...

    def fetch_exceptions(self, professional_id: str, target_date: date) -> Sequence[AvailabilityException]:
        ...

    def fetch_appointments(self, professional_id: str, target_date: date) -> Sequence[ScheduledAppointment]:
        ...


def _window_starts(window: WeeklyAvailabilityWindow, duration_minutes: int) -> Iterator[int]:
    current = window.start_minutes
    while current + duration_minutes <= window.end_minutes:
        yield current
        current += window.slot_interval_minutes


def iter_candidate_starts(
    windows: Sequence[WeeklyAvailabilityWindow],
    duration_minutes: int,
) -> Iterator[int]:
    """Ascending, de-duplicated start minutes across all windows of one day."""
    previous = None
    for start in heapq.merge(*(_window_starts(window, duration_minutes) for window in windows)):
        if start != previous:
            yield start
            previous = start


class BookingRulesEngine:
    def __init__(self, data_source: BookingDataSource):
        self.data_source = data_source

    def iter_available_slots(
        self,
        professional_id: str,
        target_date: date,
        duration_minutes: int,
        now: datetime,
    ) -> Iterator[CandidateSlot]:
        """Lazily yield offerable slots in ascending time order.

        Every call fetches a fresh snapshot; nothing is cached between calls.
        """
        if duration_minutes <= 0:
            raise ValueError('duration_minutes must be a positive number of minutes.')

        if target_date < now.date():
            return

        windows = self.data_source.fetch_weekly_availability(professional_id)
        day_windows = windows_for_day(windows, day_of_week(target_date))
        if not day_windows:
            return

        exceptions = self.data_source.fetch_exceptions(professional_id, target_date)
        if is_date_closed(target_date, exceptions):
            logger.debug('Date %s closed for professional %s', target_date, professional_id)
            return

        appointments = occupying_appointments(
            self.data_source.fetch_appointments(professional_id, target_date)
        )

        for start in iter_candidate_starts(day_windows, duration_minutes):
            slot = CandidateSlot(date=target_date, time=minutes_to_time(start), duration_minutes=duration_minutes)

            if combine(slot.date, slot.time) < now:
                continue
            if not is_within_business_hours(slot, day_windows):
                continue
            if is_slot_blocked(slot, exceptions):
                continue
            if find_conflict(slot, appointments) is not None:
                continue

            yield slot

    def calculate_available_slots(
        self,
        professional_id: str,
        target_date: date,
        duration_minutes: int,
        now: datetime,
    ) -> list[CandidateSlot]:
        return list(self.iter_available_slots(professional_id, target_date, duration_minutes, now))

    def validate_booking(
        self,
        professional_id: str,
        candidate: CandidateSlot,
        now: datetime,
        exclude_appointment_id: str | None = None,
    ) -> BookingError | None:
        """Check a proposed booking against every rule, in order.

        Returns ``None`` when the booking is acceptable, otherwise the first
        rule it breaks. Business-rule failures are values, not exceptions.
        """
        if combine(candidate.date, candidate.time) < now:
            return BookingError.of(BookingErrorCode.PAST_DATE)

        windows = self.data_source.fetch_weekly_availability(professional_id)
        if not is_within_business_hours(candidate, windows):
            return BookingError.of(BookingErrorCode.OUTSIDE_BUSINESS_HOURS)

        exceptions = self.data_source.fetch_exceptions(professional_id, candidate.date)
        if is_slot_blocked(candidate, exceptions):
            return BookingError.of(BookingErrorCode.SLOT_UNAVAILABLE)

        appointments = self.data_source.fetch_appointments(professional_id, candidate.date)
        conflict = find_conflict(candidate, appointments, exclude_appointment_id)
        if conflict is not None:
            logger.debug(
                'Candidate %s %s conflicts with appointment %s',
                candidate.date,
                candidate.time,
                conflict.id,
            )
            return BookingError.of(BookingErrorCode.TIME_CONFLICT)

        return None
