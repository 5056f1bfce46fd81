"""Booking use cases: create, reschedule, change status and delete appointments.

Validation and insert run inside one transaction that holds a row lock on the
professional, so two bookings for the same calendar are serialized. The partial
unique index on ``appointments`` catches anything that still slips through
(for example on databases that ignore ``FOR UPDATE``).
"""

import logging
import re
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agenda.booking.engine import BookingRulesEngine
from agenda.booking.records import (
    STATUS_TRANSITIONS,
    AppointmentStatus,
    CandidateSlot,
)
from agenda.booking.time_model import combine, to_minutes_since_midnight
from agenda.core import config
from agenda.core.errors import (
    BookingError,
    BookingErrorCode,
    BookingRuleViolation,
    InactiveServiceError,
    InvalidStatusTransition,
    NotFoundError,
    NotReschedulableError,
    PermissionDeniedError,
)
from agenda.models.appointment import Appointment
from agenda.models.professional import Professional
from agenda.models.service import Service
from agenda.services.booking_repository import SqlAlchemyBookingRepository, format_time

logger = logging.getLogger(__name__)

RESCHEDULABLE_STATUSES = {AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value}


def professional_now(professional: Professional) -> datetime:
    """Current wall-clock time in the professional's civil timezone, naive."""
    tz_name = professional.timezone or config.DEFAULT_TIMEZONE
    try:
        tz = ZoneInfo(tz_name)
    except ZoneInfoNotFoundError:
        logger.warning('Unknown timezone %r for professional %s', tz_name, professional.id)
        tz = ZoneInfo(config.DEFAULT_TIMEZONE)
    return datetime.now(tz).replace(tzinfo=None)


def parse_time(value: str) -> time:
    minutes = to_minutes_since_midnight(value)
    return time(minutes // 60, minutes % 60)


def normalize_phone(value: str) -> str:
    return re.sub(r'\D', '', value or '')


def get_professional(db: Session, professional_id: str, lock: bool = False) -> Professional:
    query = db.query(Professional).filter(Professional.id == professional_id)
    if lock:
        query = query.with_for_update()

    professional = query.first()
    if professional is None:
        raise NotFoundError('Professional')
    return professional


def get_active_service(db: Session, professional_id: str, service_id: str) -> Service:
    service = db.query(Service).filter(
        Service.id == service_id,
        Service.professional_id == professional_id,
    ).first()
    if service is None:
        raise NotFoundError('Service')
    if service.is_active is False:
        raise InactiveServiceError()
    return service


def get_owned_appointment(db: Session, professional_id: str, appointment_id: str, lock: bool = False) -> Appointment:
    query = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.professional_id == professional_id,
    )
    if lock:
        query = query.with_for_update()

    appointment = query.first()
    if appointment is None:
        raise NotFoundError('Appointment')
    return appointment


@contextmanager
def booking_transaction(db: Session):
    try:
        yield
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning('Concurrent booking rejected by the database: %s', exc.orig)
        raise BookingRuleViolation(BookingError.of(BookingErrorCode.TIME_CONFLICT)) from exc
    except Exception:
        db.rollback()
        raise


def enforce_booking_rules(
    db: Session,
    professional_id: str,
    candidate: CandidateSlot,
    now: datetime,
    exclude_appointment_id: str | None = None,
) -> None:
    engine = BookingRulesEngine(SqlAlchemyBookingRepository(db))
    error = engine.validate_booking(professional_id, candidate, now, exclude_appointment_id)
    if error is not None:
        logger.info(
            'Booking rejected for professional %s on %s %s: %s',
            professional_id,
            candidate.date,
            candidate.time,
            error.code.value,
        )
        raise BookingRuleViolation(error)


def create_appointment(
    db: Session,
    professional_id: str,
    *,
    service_id: str,
    appointment_date: date,
    appointment_time: str,
    client_name: str,
    client_phone: str,
    client_email: str | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> Appointment:
    logger.info('Creating appointment for professional %s on %s', professional_id, appointment_date)

    with booking_transaction(db):
        professional = get_professional(db, professional_id, lock=True)
        service = get_active_service(db, professional_id, service_id)
        candidate = CandidateSlot(
            date=appointment_date,
            time=appointment_time,
            duration_minutes=service.duration_minutes,
        )
        enforce_booking_rules(db, professional_id, candidate, now or professional_now(professional))

        appointment = Appointment(
            professional_id=professional_id,
            service_id=service.id,
            client_name=client_name,
            client_phone=client_phone,
            client_email=client_email,
            appointment_date=appointment_date,
            appointment_time=parse_time(appointment_time),
            duration_minutes=service.duration_minutes,
            status=AppointmentStatus.PENDING.value,
            notes=notes,
        )
        db.add(appointment)

    db.refresh(appointment)
    logger.info('Appointment %s created', appointment.id)
    return appointment


def _move_appointment(
    db: Session,
    appointment: Appointment,
    appointment_date: date,
    appointment_time: str,
    now: datetime,
) -> None:
    if appointment.status not in RESCHEDULABLE_STATUSES:
        raise NotReschedulableError(appointment.status)

    candidate = CandidateSlot(
        date=appointment_date,
        time=appointment_time,
        duration_minutes=appointment.duration_minutes or config.DEFAULT_SERVICE_DURATION_MINUTES,
    )
    enforce_booking_rules(db, appointment.professional_id, candidate, now, exclude_appointment_id=appointment.id)

    appointment.appointment_date = appointment_date
    appointment.appointment_time = parse_time(appointment_time)


def reschedule_appointment(
    db: Session,
    professional_id: str,
    appointment_id: str,
    *,
    appointment_date: date,
    appointment_time: str,
    now: datetime | None = None,
) -> Appointment:
    with booking_transaction(db):
        professional = get_professional(db, professional_id, lock=True)
        appointment = get_owned_appointment(db, professional_id, appointment_id, lock=True)
        _move_appointment(db, appointment, appointment_date, appointment_time, now or professional_now(professional))

    db.refresh(appointment)
    logger.info('Appointment %s rescheduled to %s %s', appointment.id, appointment_date, appointment_time)
    return appointment


def reschedule_by_client(
    db: Session,
    appointment_id: str,
    *,
    client_phone: str,
    appointment_date: date,
    appointment_time: str,
    now: datetime | None = None,
) -> Appointment:
    """The one path through which a client may move their own appointment.

    The phone number must match the booking and the current start must be at
    least ``reschedule_notice_hours`` away.
    """
    with booking_transaction(db):
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if appointment is None:
            raise NotFoundError('Appointment')

        professional = get_professional(db, appointment.professional_id, lock=True)
        db.refresh(appointment, with_for_update=True)

        if not client_phone or normalize_phone(client_phone) != normalize_phone(appointment.client_phone):
            logger.warning('Client reschedule of %s refused: phone mismatch', appointment_id)
            raise PermissionDeniedError('Only the client who booked this appointment can reschedule it.')

        now = now or professional_now(professional)

        notice_hours = professional.reschedule_notice_hours
        if notice_hours is None:
            notice_hours = config.DEFAULT_RESCHEDULE_NOTICE_HOURS
        current_start = combine(appointment.appointment_date, format_time(appointment.appointment_time))
        if current_start - now < timedelta(hours=notice_hours):
            raise PermissionDeniedError(
                f'Appointments can only be rescheduled at least {notice_hours} hours in advance.'
            )

        _move_appointment(db, appointment, appointment_date, appointment_time, now)

    db.refresh(appointment)
    logger.info('Appointment %s rescheduled by client to %s %s', appointment.id, appointment_date, appointment_time)
    return appointment


def update_status(
    db: Session,
    professional_id: str,
    appointment_id: str,
    status: AppointmentStatus,
) -> Appointment:
    with booking_transaction(db):
        appointment = get_owned_appointment(db, professional_id, appointment_id, lock=True)
        current = AppointmentStatus(appointment.status)

        if status not in STATUS_TRANSITIONS[current]:
            raise InvalidStatusTransition(current.value, status.value)

        appointment.status = status.value

    db.refresh(appointment)
    logger.info('Appointment %s moved from %s to %s', appointment.id, current.value, status.value)
    return appointment


def delete_appointment(db: Session, professional_id: str, appointment_id: str) -> None:
    with booking_transaction(db):
        appointment = get_owned_appointment(db, professional_id, appointment_id)
        db.delete(appointment)

    logger.info('Appointment %s deleted', appointment_id)


def list_appointments(
    db: Session,
    professional_id: str,
    start_date: date | None = None,
    end_date: date | None = None,
    status: AppointmentStatus | None = None,
) -> list[Appointment]:
    query = db.query(Appointment).filter(Appointment.professional_id == professional_id)

    if start_date is not None:
        query = query.filter(Appointment.appointment_date >= start_date)
    if end_date is not None:
        query = query.filter(Appointment.appointment_date <= end_date)
    if status is not None:
        query = query.filter(Appointment.status == status.value)

    return query.order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc()).all()