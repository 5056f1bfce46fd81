"""Bookable service model definitions."""

import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String
from agenda.database import Base


class Service(Base):
    """A service a professional offers, with its duration in minutes."""
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    professional_id = Column(String(36), ForeignKey("professionals.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2))
    is_active = Column(Boolean, default=True)
