"""Appointment model definitions."""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, Time, text
from agenda.database import Base

OCCUPYING_STATUS_CLAUSE = text("status IN ('pending', 'confirmed', 'completed')")


class Appointment(Base):
    """Represents a booked appointment.

    ``duration_minutes`` is copied from the service when the appointment is
    booked so later edits to the service do not move existing bookings.
    """
    __tablename__ = "appointments"
    __table_args__ = (
        Index(
            "uq_appointments_occupied_start",
            "professional_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            sqlite_where=OCCUPYING_STATUS_CLAUSE,
            postgresql_where=OCCUPYING_STATUS_CLAUSE,
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    professional_id = Column(String(36), ForeignKey("professionals.id"), index=True, nullable=False)
    service_id = Column(String(36), ForeignKey("services.id"))
    client_name = Column(String, nullable=False)
    client_phone = Column(String, nullable=False)
    client_email = Column(String)
    appointment_date = Column(Date, nullable=False)
    appointment_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer)
    status = Column(String, default="pending", nullable=False)
    notes = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)
