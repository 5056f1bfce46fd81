import logging

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from agenda.core.errors import (
    BookingErrorCode,
    BookingRuleViolation,
    FormatError,
    NotFoundError,
    PermissionDeniedError,
    ScheduleConfigurationError,
    ServiceError,
)
from agenda.database import ensure_appointment_schema, ensure_availability_schema

logger = logging.getLogger(__name__)

BOOKING_ERROR_STATUS = {
    BookingErrorCode.PAST_DATE: status.HTTP_400_BAD_REQUEST,
    BookingErrorCode.OUTSIDE_BUSINESS_HOURS: status.HTTP_400_BAD_REQUEST,
    BookingErrorCode.SLOT_UNAVAILABLE: status.HTTP_409_CONFLICT,
    BookingErrorCode.TIME_CONFLICT: status.HTTP_409_CONFLICT,
}


def database_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail='Database unavailable. Verify DATABASE_URL and Postgres credentials.',
    )


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        logger.exception('Database schema check failed')
        raise database_unavailable() from exc


def to_http_exception(exc: Exception) -> HTTPException:
    if isinstance(exc, BookingRuleViolation):
        return HTTPException(
            status_code=BOOKING_ERROR_STATUS[exc.error.code],
            detail={'code': exc.error.code.value, 'message': exc.error.message},
        )
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, ScheduleConfigurationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, FormatError):
        # Malformed stored data, not something the caller can fix.
        logger.error('Malformed time value: %s', exc)
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid time format.')
    if isinstance(exc, ServiceError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    raise TypeError(f'Unhandled error type: {type(exc).__name__}')
