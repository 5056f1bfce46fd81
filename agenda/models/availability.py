"""Availability model definitions."""

import uuid

from sqlalchemy import Boolean, Column, Date, ForeignKey, Integer, String, Time
from agenda.database import Base


class WeeklyAvailability(Base):
    """Recurring weekly opening window (day_of_week 0 = Sunday)."""
    __tablename__ = "availability"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    professional_id = Column(String(36), ForeignKey("professionals.id"), index=True, nullable=False)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    interval_minutes = Column(Integer)
    is_active = Column(Boolean, default=True)


class AvailabilityExceptionRow(Base):
    """One-off closure of a whole date or of part of it."""
    __tablename__ = "availability_exceptions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    professional_id = Column(String(36), ForeignKey("professionals.id"), index=True, nullable=False)
    exception_date = Column(Date, nullable=False)
    start_time = Column(Time)
    end_time = Column(Time)
    is_blocked = Column(Boolean, default=True)
    reason = Column(String)
