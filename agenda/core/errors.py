"""Error taxonomy shared by the booking engine and the service layer."""

import enum
from dataclasses import dataclass


class FormatError(ValueError):
    """Raised when a time or date value is malformed."""


class BookingErrorCode(str, enum.Enum):
    PAST_DATE = 'BOOKING_001'
    TIME_CONFLICT = 'BOOKING_002'
    OUTSIDE_BUSINESS_HOURS = 'BOOKING_003'
    SLOT_UNAVAILABLE = 'BOOKING_004'


BOOKING_ERROR_MESSAGES = {
    BookingErrorCode.PAST_DATE: 'Appointments cannot be booked in the past.',
    BookingErrorCode.TIME_CONFLICT: 'This time is already booked.',
    BookingErrorCode.OUTSIDE_BUSINESS_HOURS: 'This time is outside business hours.',
    BookingErrorCode.SLOT_UNAVAILABLE: 'This time is blocked.',
}


@dataclass(frozen=True)
class BookingError:
    """Expected, user-facing reason a booking was rejected."""

    code: BookingErrorCode
    message: str

    @classmethod
    def of(cls, code: BookingErrorCode) -> 'BookingError':
        return cls(code=code, message=BOOKING_ERROR_MESSAGES[code])


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""


class BookingRuleViolation(ServiceError):
    def __init__(self, error: BookingError):
        super().__init__(error.message)
        self.error = error


class NotFoundError(ServiceError):
    def __init__(self, resource: str = 'Resource'):
        super().__init__(f'{resource} not found.')
        self.resource = resource


class PermissionDeniedError(ServiceError):
    pass


class InvalidStatusTransition(ServiceError):
    def __init__(self, current: str, requested: str):
        super().__init__(f'Cannot change appointment status from {current} to {requested}.')
        self.current = current
        self.requested = requested


class ScheduleConfigurationError(ServiceError):
    """Raised when weekly windows or exceptions are inconsistent at write time."""


class InactiveServiceError(ServiceError):
    def __init__(self):
        super().__init__('This service is no longer available.')


class NotReschedulableError(ServiceError):
    def __init__(self, status: str):
        super().__init__(f'Appointments with status {status} cannot be rescheduled.')
        self.status = status
