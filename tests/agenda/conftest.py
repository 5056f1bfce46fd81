import os
from datetime import time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from agenda.database import Base  # noqa: E402
from agenda.models.appointment import Appointment  # noqa: E402
from agenda.models.availability import AvailabilityExceptionRow, WeeklyAvailability  # noqa: E402
from agenda.models.professional import Professional  # noqa: E402
from agenda.models.service import Service  # noqa: E402

TABLES = [
    Professional.__table__,
    Service.__table__,
    WeeklyAvailability.__table__,
    AvailabilityExceptionRow.__table__,
    Appointment.__table__,
]


@pytest.fixture
def booking_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))


@pytest.fixture
def professional(booking_db):
    """A barber open Mondays 09:00-12:00 every 30 minutes, with two services."""
    barber = Professional(
        id='pro-1',
        email='barber@example.com',
        name='Barber',
        timezone='America/Sao_Paulo',
        reschedule_notice_hours=24,
    )
    booking_db.add(barber)
    booking_db.add_all([
        Service(id='svc-cut', professional_id=barber.id, name='Haircut', duration_minutes=30, is_active=True),
        Service(id='svc-beard', professional_id=barber.id, name='Beard', duration_minutes=60, is_active=True),
        Service(id='svc-old', professional_id=barber.id, name='Retired', duration_minutes=30, is_active=False),
        WeeklyAvailability(
            professional_id=barber.id,
            day_of_week=1,
            start_time=time(9, 0),
            end_time=time(12, 0),
            interval_minutes=30,
            is_active=True,
        ),
    ])
    booking_db.commit()
    return barber
