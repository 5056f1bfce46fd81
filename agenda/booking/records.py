"""Typed records the booking engine operates on."""

import enum
from dataclasses import dataclass
from datetime import date

from agenda.booking.time_model import calculate_end_time, to_minutes_since_midnight


class AppointmentStatus(str, enum.Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'
    NO_SHOW = 'no-show'


OCCUPYING_STATUSES = frozenset({
    AppointmentStatus.PENDING,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.COMPLETED,
})

STATUS_TRANSITIONS = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}


def _require_positive(name: str, value: int) -> None:
    if value <= 0:
        raise ValueError(f'{name} must be a positive number of minutes.')


@dataclass(frozen=True)
class WeeklyAvailabilityWindow:
    day_of_week: int
    start_time: str
    end_time: str
    slot_interval_minutes: int

    def __post_init__(self):
        if not 0 <= self.day_of_week <= 6:
            raise ValueError('day_of_week must be between 0 (Sunday) and 6 (Saturday).')
        _require_positive('slot_interval_minutes', self.slot_interval_minutes)
        if self.start_minutes >= self.end_minutes:
            raise ValueError('Window start_time must be before end_time.')

    @property
    def start_minutes(self) -> int:
        return to_minutes_since_midnight(self.start_time)

    @property
    def end_minutes(self) -> int:
        return to_minutes_since_midnight(self.end_time)


@dataclass(frozen=True)
class AvailabilityException:
    """One-off override of the weekly schedule for a single date.

    With no ``start_time``/``end_time`` a blocked exception closes the whole
    date; with both set only that half-open range is closed.
    """

    date: date
    start_time: str | None = None
    end_time: str | None = None
    is_blocked: bool = True
    reason: str | None = None

    def __post_init__(self):
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError('Exception start_time and end_time must be given together.')
        if self.start_time is not None and (
            to_minutes_since_midnight(self.start_time) >= to_minutes_since_midnight(self.end_time)
        ):
            raise ValueError('Exception start_time must be before end_time.')

    @property
    def is_full_day(self) -> bool:
        return self.start_time is None and self.end_time is None


@dataclass(frozen=True)
class ScheduledAppointment:
    id: str
    professional_id: str
    date: date
    time: str
    duration_minutes: int
    status: AppointmentStatus = AppointmentStatus.CONFIRMED

    def __post_init__(self):
        _require_positive('duration_minutes', self.duration_minutes)
        to_minutes_since_midnight(self.time)

    @property
    def is_occupying(self) -> bool:
        return self.status in OCCUPYING_STATUSES


@dataclass(frozen=True)
class CandidateSlot:
    date: date
    time: str
    duration_minutes: int

    def __post_init__(self):
        _require_positive('duration_minutes', self.duration_minutes)
        to_minutes_since_midnight(self.time)

    @property
    def start_minutes(self) -> int:
        return to_minutes_since_midnight(self.time)

    @property
    def end_time(self) -> str:
        return calculate_end_time(self.time, self.duration_minutes)
