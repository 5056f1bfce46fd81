"""Weekly schedule and blocked-date management plus public slot lookup."""

import logging
from collections.abc import Sequence
from datetime import date, datetime

from sqlalchemy.orm import Session

from agenda.booking.business_hours import find_overlapping_windows
from agenda.booking.engine import BookingRulesEngine
from agenda.booking.records import AvailabilityException, CandidateSlot, WeeklyAvailabilityWindow
from agenda.booking.time_model import format_time_range
from agenda.core.errors import NotFoundError, ScheduleConfigurationError
from agenda.models.availability import AvailabilityExceptionRow, WeeklyAvailability
from agenda.services.appointment_service import (
    get_active_service,
    get_professional,
    parse_time,
    professional_now,
)
from agenda.services.booking_repository import SqlAlchemyBookingRepository

logger = logging.getLogger(__name__)


def list_available_slots(
    db: Session,
    professional_id: str,
    target_date: date,
    service_id: str,
    now: datetime | None = None,
) -> list[CandidateSlot]:
    professional = get_professional(db, professional_id)
    service = get_active_service(db, professional_id, service_id)

    engine = BookingRulesEngine(SqlAlchemyBookingRepository(db))
    return engine.calculate_available_slots(
        professional_id,
        target_date,
        service.duration_minutes,
        now or professional_now(professional),
    )


def list_weekly_availability(db: Session, professional_id: str) -> list[WeeklyAvailability]:
    return db.query(WeeklyAvailability).filter(
        WeeklyAvailability.professional_id == professional_id,
    ).order_by(WeeklyAvailability.day_of_week.asc(), WeeklyAvailability.start_time.asc()).all()


def replace_weekly_availability(
    db: Session,
    professional_id: str,
    windows: Sequence[WeeklyAvailabilityWindow],
) -> list[WeeklyAvailability]:
    """Swap the professional's whole weekly schedule for ``windows``.

    Overlapping windows on the same day are refused here rather than merged
    when slots are calculated.
    """
    overlapping = find_overlapping_windows(windows)
    if overlapping:
        first, second = overlapping[0]
        raise ScheduleConfigurationError(
            f'Windows {format_time_range(first.start_time, first.end_time)} and '
            f'{format_time_range(second.start_time, second.end_time)} '
            f'overlap on day {first.day_of_week}.'
        )

    get_professional(db, professional_id)

    try:
        db.query(WeeklyAvailability).filter(
            WeeklyAvailability.professional_id == professional_id,
        ).delete(synchronize_session=False)

        for window in windows:
            db.add(
                WeeklyAvailability(
                    professional_id=professional_id,
                    day_of_week=window.day_of_week,
                    start_time=parse_time(window.start_time),
                    end_time=parse_time(window.end_time),
                    interval_minutes=window.slot_interval_minutes,
                    is_active=True,
                )
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info('Weekly availability for professional %s replaced with %d windows', professional_id, len(windows))
    return list_weekly_availability(db, professional_id)


def list_exceptions(
    db: Session,
    professional_id: str,
    from_date: date | None = None,
) -> list[AvailabilityExceptionRow]:
    query = db.query(AvailabilityExceptionRow).filter(
        AvailabilityExceptionRow.professional_id == professional_id,
    )
    if from_date is not None:
        query = query.filter(AvailabilityExceptionRow.exception_date >= from_date)

    return query.order_by(
        AvailabilityExceptionRow.exception_date.asc(),
        AvailabilityExceptionRow.start_time.asc(),
    ).all()


def add_exception(
    db: Session,
    professional_id: str,
    exception: AvailabilityException,
) -> AvailabilityExceptionRow:
    get_professional(db, professional_id)

    row = AvailabilityExceptionRow(
        professional_id=professional_id,
        exception_date=exception.date,
        start_time=parse_time(exception.start_time) if exception.start_time else None,
        end_time=parse_time(exception.end_time) if exception.end_time else None,
        is_blocked=exception.is_blocked,
        reason=exception.reason,
    )
    try:
        db.add(row)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(row)
    logger.info('Exception %s added for professional %s on %s', row.id, professional_id, exception.date)
    return row


def remove_exception(db: Session, professional_id: str, exception_id: str) -> None:
    row = db.query(AvailabilityExceptionRow).filter(
        AvailabilityExceptionRow.id == exception_id,
        AvailabilityExceptionRow.professional_id == professional_id,
    ).first()
    if row is None:
        raise NotFoundError('Exception')

    try:
        db.delete(row)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info('Exception %s removed for professional %s', exception_id, professional_id)
