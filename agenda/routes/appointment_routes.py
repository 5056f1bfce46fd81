import logging
import re
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.auth.dependencies import get_current_professional, get_db
from agenda.booking.records import AppointmentStatus
from agenda.booking.time_model import calculate_end_time, to_minutes_since_midnight
from agenda.core import config
from agenda.core.errors import FormatError, ServiceError
from agenda.models.appointment import Appointment
from agenda.models.professional import Professional
from agenda.routes.common import database_unavailable, ensure_database_ready, to_http_exception
from agenda.services import appointment_service
from agenda.services.booking_repository import format_time

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

MIN_CLIENT_NAME_LENGTH = 2
MAX_CLIENT_NAME_LENGTH = 100


def _validate_hhmm(value: str) -> str:
    normalized = value.strip()
    to_minutes_since_midnight(normalized)
    return normalized


def _validate_phone(value: str) -> str:
    normalized = value.strip()
    digits = re.sub(r'\D', '', normalized)
    if len(digits) not in (10, 11):
        raise ValueError('Phone number must have 10 or 11 digits.')
    return normalized


class CreateAppointmentRequest(BaseModel):
    service_id: str
    date: date
    time: str
    client_name: str
    client_phone: str
    client_email: str | None = None
    notes: str | None = None

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        return _validate_hhmm(value)

    @field_validator('client_name')
    @classmethod
    def validate_client_name(cls, value: str) -> str:
        normalized = value.strip()
        if not MIN_CLIENT_NAME_LENGTH <= len(normalized) <= MAX_CLIENT_NAME_LENGTH:
            raise ValueError(
                f'Name must be between {MIN_CLIENT_NAME_LENGTH} and {MAX_CLIENT_NAME_LENGTH} characters.'
            )
        return normalized

    @field_validator('client_phone')
    @classmethod
    def validate_client_phone(cls, value: str) -> str:
        return _validate_phone(value)

    @field_validator('client_email')
    @classmethod
    def validate_client_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if not normalized:
            return None
        if '@' not in normalized:
            raise ValueError('Invalid email address.')
        return normalized

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > config.MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {config.MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized


class RescheduleRequest(BaseModel):
    date: date
    time: str

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        return _validate_hhmm(value)


class ClientRescheduleRequest(RescheduleRequest):
    client_phone: str

    @field_validator('client_phone')
    @classmethod
    def validate_client_phone(cls, value: str) -> str:
        return _validate_phone(value)


class UpdateStatusRequest(BaseModel):
    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    id: str
    professional_id: str
    service_id: str | None = None
    client_name: str
    client_phone: str
    client_email: str | None = None
    date: date
    time: str
    end_time: str
    duration_minutes: int
    status: AppointmentStatus
    notes: str | None = None
    created_at: datetime | None = None


def to_appointment_response(appointment: Appointment) -> AppointmentResponse:
    start = format_time(appointment.appointment_time)
    duration_minutes = appointment.duration_minutes or config.DEFAULT_SERVICE_DURATION_MINUTES
    return AppointmentResponse(
        id=appointment.id,
        professional_id=appointment.professional_id,
        service_id=appointment.service_id,
        client_name=appointment.client_name,
        client_phone=appointment.client_phone,
        client_email=appointment.client_email,
        date=appointment.appointment_date,
        time=start,
        end_time=calculate_end_time(start, duration_minutes),
        duration_minutes=duration_minutes,
        status=AppointmentStatus(appointment.status),
        notes=appointment.notes,
        created_at=appointment.created_at,
    )


@router.post('/{professional_id}', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(professional_id: str, data: CreateAppointmentRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        appointment = appointment_service.create_appointment(
            db,
            professional_id,
            service_id=data.service_id,
            appointment_date=data.date,
            appointment_time=data.time,
            client_name=data.client_name,
            client_phone=data.client_phone,
            client_email=data.client_email,
            notes=data.notes,
        )
        return to_appointment_response(appointment)
    except (ServiceError, FormatError) as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Booking failed for professional %s', professional_id)
        raise database_unavailable() from exc


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    appointment_status: AppointmentStatus | None = Query(default=None, alias='status'),
    professional: Professional = Depends(get_current_professional),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointments = appointment_service.list_appointments(
            db,
            professional.id,
            start_date=start_date,
            end_date=end_date,
            status=appointment_status,
        )
        return [to_appointment_response(appointment) for appointment in appointments]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: str,
    data: UpdateStatusRequest,
    professional: Professional = Depends(get_current_professional),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = appointment_service.update_status(db, professional.id, appointment_id, data.status)
        return to_appointment_response(appointment)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/{appointment_id}/reschedule', response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: str,
    data: RescheduleRequest,
    professional: Professional = Depends(get_current_professional),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = appointment_service.reschedule_appointment(
            db,
            professional.id,
            appointment_id,
            appointment_date=data.date,
            appointment_time=data.time,
        )
        return to_appointment_response(appointment)
    except (ServiceError, FormatError) as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/{appointment_id}/client-reschedule', response_model=AppointmentResponse)
def reschedule_by_client(appointment_id: str, data: ClientRescheduleRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        appointment = appointment_service.reschedule_by_client(
            db,
            appointment_id,
            client_phone=data.client_phone,
            appointment_date=data.date,
            appointment_time=data.time,
        )
        return to_appointment_response(appointment)
    except (ServiceError, FormatError) as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: str,
    professional: Professional = Depends(get_current_professional),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment_service.delete_appointment(db, professional.id, appointment_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
