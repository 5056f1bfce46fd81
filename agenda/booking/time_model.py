"""Civil date and HH:MM time arithmetic used by the booking rules.

Times are plain ``HH:MM`` strings in the professional's local civil time and
dates are :class:`datetime.date` values. No timezone conversion happens here.
"""

import re
from datetime import date, datetime

from agenda.core.errors import FormatError

MINUTES_PER_DAY = 24 * 60

TIME_PATTERN = re.compile(r'([01][0-9]|2[0-3]):([0-5][0-9])')


def to_minutes_since_midnight(value: str) -> int:
    """Convert a strict 24-hour ``HH:MM`` string to minutes since midnight.

    >>> to_minutes_since_midnight('14:30')
    870
    """
    if not isinstance(value, str):
        raise FormatError(f'Expected an HH:MM string, got {type(value).__name__}.')

    match = TIME_PATTERN.fullmatch(value)
    if match is None:
        raise FormatError(f'Invalid time format: {value!r} (expected HH:MM).')

    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_to_time(minutes: int) -> str:
    if minutes < 0 or minutes >= MINUTES_PER_DAY:
        raise FormatError(f'{minutes} minutes is outside a single day.')
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def intervals_overlap(start_a: int, duration_a: int, start_b: int, duration_b: int) -> bool:
    """Half-open interval overlap test on minute offsets.

    Zero or negative durations never overlap anything; callers are expected to
    reject them before they get here.
    """
    if duration_a <= 0 or duration_b <= 0:
        return False
    return start_a < start_b + duration_b and start_b < start_a + duration_a


def day_of_week(value: date) -> int:
    # 0 = Sunday ... 6 = Saturday, the convention stored in weekly windows
    return (value.weekday() + 1) % 7


def calculate_end_time(start_time: str, duration_minutes: int) -> str:
    end = to_minutes_since_midnight(start_time) + duration_minutes
    return minutes_to_time(end % MINUTES_PER_DAY)


def format_time_range(start_time: str, end_time: str) -> str:
    return f'{start_time} - {end_time}'


def combine(slot_date: date, slot_time: str) -> datetime:
    minutes = to_minutes_since_midnight(slot_time)
    return datetime(slot_date.year, slot_date.month, slot_date.day, minutes // 60, minutes % 60)
