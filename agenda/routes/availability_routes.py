import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.auth.dependencies import get_current_professional, get_db
from agenda.booking.records import AvailabilityException, WeeklyAvailabilityWindow
from agenda.booking.time_model import to_minutes_since_midnight
from agenda.core import config
from agenda.core.errors import FormatError, ServiceError
from agenda.models.availability import AvailabilityExceptionRow, WeeklyAvailability
from agenda.models.professional import Professional
from agenda.routes.common import database_unavailable, ensure_database_ready, to_http_exception
from agenda.services import availability_service
from agenda.services.booking_repository import format_time

router = APIRouter(tags=['availability'])

logger = logging.getLogger(__name__)


def _validate_hhmm(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    to_minutes_since_midnight(normalized)
    return normalized


class CandidateSlotResponse(BaseModel):
    date: date
    time: str
    end_time: str
    duration_minutes: int


class WeeklyWindowRequest(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str
    slot_interval_minutes: int = Field(default=config.DEFAULT_SLOT_INTERVAL_MINUTES, gt=0)

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        return _validate_hhmm(value)


class ReplaceWeeklyAvailabilityRequest(BaseModel):
    windows: list[WeeklyWindowRequest]


class WeeklyWindowResponse(BaseModel):
    id: str
    day_of_week: int
    start_time: str
    end_time: str
    slot_interval_minutes: int | None = None
    is_active: bool


class CreateExceptionRequest(BaseModel):
    date: date
    start_time: str | None = None
    end_time: str | None = None
    is_blocked: bool = True
    reason: str | None = None

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_time(cls, value: str | None) -> str | None:
        return _validate_hhmm(value)

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None


class ExceptionResponse(BaseModel):
    id: str
    date: date
    start_time: str | None = None
    end_time: str | None = None
    is_blocked: bool
    reason: str | None = None


def to_window_response(row: WeeklyAvailability) -> WeeklyWindowResponse:
    return WeeklyWindowResponse(
        id=row.id,
        day_of_week=row.day_of_week,
        start_time=format_time(row.start_time),
        end_time=format_time(row.end_time),
        slot_interval_minutes=row.interval_minutes,
        is_active=row.is_active is not False,
    )


def to_exception_response(row: AvailabilityExceptionRow) -> ExceptionResponse:
    return ExceptionResponse(
        id=row.id,
        date=row.exception_date,
        start_time=format_time(row.start_time),
        end_time=format_time(row.end_time),
        is_blocked=row.is_blocked is not False,
        reason=row.reason,
    )


@router.get('/{professional_id}/slots', response_model=list[CandidateSlotResponse])
def list_available_slots(
    professional_id: str,
    slot_date: date = Query(..., alias='date'),
    service_id: str = Query(...),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        slots = availability_service.list_available_slots(db, professional_id, slot_date, service_id)
        return [
            CandidateSlotResponse(
                date=slot.date,
                time=slot.time,
                end_time=slot.end_time,
                duration_minutes=slot.duration_minutes,
            )
            for slot in slots
        ]
    except (ServiceError, FormatError) as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        logger.exception('Slot lookup failed for professional %s', professional_id)
        raise database_unavailable() from exc


@router.get('/weekly', response_model=list[WeeklyWindowResponse])
def list_weekly_availability(
    professional: Professional = Depends(get_current_professional),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        rows = availability_service.list_weekly_availability(db, professional.id)
        return [to_window_response(row) for row in rows]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/weekly', response_model=list[WeeklyWindowResponse])
def replace_weekly_availability(
    data: ReplaceWeeklyAvailabilityRequest,
    professional: Professional = Depends(get_current_professional),
    db: Session = Depends(get_db),
):
    try:
        windows = [
            WeeklyAvailabilityWindow(
                day_of_week=window.day_of_week,
                start_time=window.start_time,
                end_time=window.end_time,
                slot_interval_minutes=window.slot_interval_minutes,
            )
            for window in data.windows
        ]
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    ensure_database_ready()

    try:
        rows = availability_service.replace_weekly_availability(db, professional.id, windows)
        return [to_window_response(row) for row in rows]
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        logger.exception('Weekly availability update failed for professional %s', professional.id)
        raise database_unavailable() from exc


@router.get('/exceptions', response_model=list[ExceptionResponse])
def list_exceptions(
    from_date: date | None = Query(default=None),
    professional: Professional = Depends(get_current_professional),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        rows = availability_service.list_exceptions(db, professional.id, from_date)
        return [to_exception_response(row) for row in rows]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('/exceptions', response_model=ExceptionResponse, status_code=status.HTTP_201_CREATED)
def create_exception(
    data: CreateExceptionRequest,
    professional: Professional = Depends(get_current_professional),
    db: Session = Depends(get_db),
):
    try:
        exception = AvailabilityException(
            date=data.date,
            start_time=data.start_time,
            end_time=data.end_time,
            is_blocked=data.is_blocked,
            reason=data.reason,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    ensure_database_ready()

    try:
        row = availability_service.add_exception(db, professional.id, exception)
        return to_exception_response(row)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        logger.exception('Exception creation failed for professional %s', professional.id)
        raise database_unavailable() from exc


@router.delete('/exceptions/{exception_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_exception(
    exception_id: str,
    professional: Professional = Depends(get_current_professional),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        availability_service.remove_exception(db, professional.id, exception_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
