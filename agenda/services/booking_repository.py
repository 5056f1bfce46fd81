"""SQLAlchemy-backed data source for the booking rules engine.

Rows are converted into the engine's typed records as soon as they are read.
"""

import logging
from datetime import date, time

from sqlalchemy.orm import Session

from agenda.booking.records import (
    OCCUPYING_STATUSES,
    AppointmentStatus,
    AvailabilityException,
    ScheduledAppointment,
    WeeklyAvailabilityWindow,
)
from agenda.core import config
from agenda.models.appointment import Appointment
from agenda.models.availability import AvailabilityExceptionRow, WeeklyAvailability

logger = logging.getLogger(__name__)


def format_time(value: time | None) -> str | None:
    if value is None:
        return None
    return value.strftime('%H:%M')


def to_window(row: WeeklyAvailability) -> WeeklyAvailabilityWindow:
    return WeeklyAvailabilityWindow(
        day_of_week=row.day_of_week,
        start_time=format_time(row.start_time),
        end_time=format_time(row.end_time),
        slot_interval_minutes=row.interval_minutes or config.DEFAULT_SLOT_INTERVAL_MINUTES,
    )


def to_exception(row: AvailabilityExceptionRow) -> AvailabilityException:
    return AvailabilityException(
        date=row.exception_date,
        start_time=format_time(row.start_time),
        end_time=format_time(row.end_time),
        is_blocked=True if row.is_blocked is None else row.is_blocked,
        reason=row.reason,
    )


def to_scheduled_appointment(row: Appointment) -> ScheduledAppointment:
    return ScheduledAppointment(
        id=row.id,
        professional_id=row.professional_id,
        date=row.appointment_date,
        time=format_time(row.appointment_time),
        duration_minutes=row.duration_minutes or config.DEFAULT_SERVICE_DURATION_MINUTES,
        status=AppointmentStatus(row.status),
    )


class SqlAlchemyBookingRepository:
    def __init__(self, db: Session):
        self.db = db

    def fetch_weekly_availability(self, professional_id: str) -> list[WeeklyAvailabilityWindow]:
        rows = self.db.query(WeeklyAvailability).filter(
            WeeklyAvailability.professional_id == professional_id,
            WeeklyAvailability.is_active.is_not(False),
        ).order_by(WeeklyAvailability.day_of_week.asc(), WeeklyAvailability.start_time.asc()).all()

        windows = []
        for row in rows:
            try:
                windows.append(to_window(row))
            except ValueError as exc:
                # Rows written before write-time validation existed.
                logger.warning('Skipping invalid availability row %s: %s', row.id, exc)
        return windows

    def fetch_exceptions(self, professional_id: str, target_date: date) -> list[AvailabilityException]:
        rows = self.db.query(AvailabilityExceptionRow).filter(
            AvailabilityExceptionRow.professional_id == professional_id,
            AvailabilityExceptionRow.exception_date == target_date,
        ).all()

        exceptions = []
        for row in rows:
            try:
                exceptions.append(to_exception(row))
            except ValueError as exc:
                logger.warning('Skipping invalid availability exception %s: %s', row.id, exc)
        return exceptions

    def fetch_appointments(self, professional_id: str, target_date: date) -> list[ScheduledAppointment]:
        rows = self.db.query(Appointment).filter(
            Appointment.professional_id == professional_id,
            Appointment.appointment_date == target_date,
            Appointment.status.in_([status.value for status in OCCUPYING_STATUSES]),
        ).order_by(Appointment.appointment_time.asc()).all()
        return [to_scheduled_appointment(row) for row in rows]
