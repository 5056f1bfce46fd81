"""Professional (tenant) model definitions."""

import uuid

from sqlalchemy import Column, Integer, String
from agenda.core import config
from agenda.database import Base


class Professional(Base):
    """Owner of a calendar, its services and its availability."""
    __tablename__ = "professionals"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, index=True)
    name = Column(String)
    timezone = Column(String, default=config.DEFAULT_TIMEZONE)
    reschedule_notice_hours = Column(Integer, default=config.DEFAULT_RESCHEDULE_NOTICE_HOURS)
