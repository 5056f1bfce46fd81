from datetime import date, datetime, time

import pytest
from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from agenda.models.availability import WeeklyAvailability
from agenda.routes import availability_routes
from agenda.routes.availability_routes import (
    CreateExceptionRequest,
    ReplaceWeeklyAvailabilityRequest,
    WeeklyWindowRequest,
    create_exception,
    list_exceptions,
    list_weekly_availability,
    remove_exception,
    replace_weekly_availability,
)
from agenda.services import availability_service

MONDAY = date(2026, 1, 5)
NOW = datetime(2026, 1, 1, 8, 0)


@pytest.fixture(autouse=True)
def fixed_clock(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(availability_routes, 'ensure_database_ready', lambda: None)
    monkeypatch.setattr(availability_service, 'professional_now', lambda professional: NOW)


def test_weekly_window_request_defaults_interval_and_trims_times() -> None:
    request = WeeklyWindowRequest(day_of_week=1, start_time=' 09:00 ', end_time='12:00')

    assert request.start_time == '09:00'
    assert request.slot_interval_minutes == 30


@pytest.mark.parametrize(
    'fields',
    [
        {'day_of_week': 7, 'start_time': '09:00', 'end_time': '12:00'},
        {'day_of_week': 1, 'start_time': '9:00', 'end_time': '12:00'},
        {'day_of_week': 1, 'start_time': '09:00', 'end_time': '24:00'},
        {'day_of_week': 1, 'start_time': '09:00', 'end_time': '12:00', 'slot_interval_minutes': 0},
    ],
)
def test_weekly_window_request_rejects_invalid_fields(fields: dict) -> None:
    with pytest.raises(ValidationError):
        WeeklyWindowRequest(**fields)


def test_create_exception_request_blank_reason_becomes_none() -> None:
    request = CreateExceptionRequest(date=MONDAY, reason='   ')

    assert request.reason is None
    assert request.is_blocked is True


def test_list_available_slots_route_returns_end_times(booking_db, professional) -> None:
    slots = availability_routes.list_available_slots('pro-1', slot_date=MONDAY, service_id='svc-beard', db=booking_db)

    assert [(slot.time, slot.end_time) for slot in slots] == [
        ('09:00', '10:00'),
        ('09:30', '10:30'),
        ('10:00', '11:00'),
        ('10:30', '11:30'),
        ('11:00', '12:00'),
    ]


def test_list_available_slots_route_ignores_inverted_stored_window(booking_db, professional) -> None:
    booking_db.add(
        WeeklyAvailability(
            professional_id='pro-1', day_of_week=1, start_time=time(14, 0), end_time=time(13, 0), interval_minutes=30
        )
    )
    booking_db.commit()

    slots = availability_routes.list_available_slots('pro-1', slot_date=MONDAY, service_id='svc-cut', db=booking_db)

    assert [slot.time for slot in slots] == ['09:00', '09:30', '10:00', '10:30', '11:00', '11:30']


def test_list_available_slots_route_for_unknown_professional(booking_db, professional) -> None:
    with pytest.raises(HTTPException) as exception_info:
        availability_routes.list_available_slots('nobody', slot_date=MONDAY, service_id='svc-cut', db=booking_db)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Professional not found.'


def test_list_available_slots_route_reports_database_outage(
    booking_db,
    professional,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def broken_lookup(*args, **kwargs):
        raise OperationalError('SELECT 1', {}, Exception('connection refused'))

    monkeypatch.setattr(availability_service, 'list_available_slots', broken_lookup)

    with pytest.raises(HTTPException) as exception_info:
        availability_routes.list_available_slots('pro-1', slot_date=MONDAY, service_id='svc-cut', db=booking_db)

    assert exception_info.value.status_code == 503


def test_replace_weekly_availability_route(booking_db, professional) -> None:
    data = ReplaceWeeklyAvailabilityRequest(
        windows=[
            WeeklyWindowRequest(day_of_week=2, start_time='13:00', end_time='17:00', slot_interval_minutes=60),
            WeeklyWindowRequest(day_of_week=1, start_time='08:00', end_time='10:00'),
        ]
    )

    windows = replace_weekly_availability(data, professional=professional, db=booking_db)

    assert [(window.day_of_week, window.start_time, window.end_time) for window in windows] == [
        (1, '08:00', '10:00'),
        (2, '13:00', '17:00'),
    ]
    assert [window.day_of_week for window in list_weekly_availability(professional=professional, db=booking_db)] == [1, 2]


def test_replace_weekly_availability_route_rejects_inverted_window(booking_db, professional) -> None:
    data = ReplaceWeeklyAvailabilityRequest(
        windows=[WeeklyWindowRequest(day_of_week=1, start_time='12:00', end_time='09:00')]
    )

    with pytest.raises(HTTPException) as exception_info:
        replace_weekly_availability(data, professional=professional, db=booking_db)

    assert exception_info.value.status_code == 422


def test_replace_weekly_availability_route_rejects_overlap(booking_db, professional) -> None:
    data = ReplaceWeeklyAvailabilityRequest(
        windows=[
            WeeklyWindowRequest(day_of_week=3, start_time='09:00', end_time='12:00'),
            WeeklyWindowRequest(day_of_week=3, start_time='10:00', end_time='11:00'),
        ]
    )

    with pytest.raises(HTTPException) as exception_info:
        replace_weekly_availability(data, professional=professional, db=booking_db)

    assert exception_info.value.status_code == 422
    assert 'overlap' in exception_info.value.detail


def test_exception_routes_create_list_and_remove(booking_db, professional) -> None:
    created = create_exception(
        CreateExceptionRequest(date=MONDAY, start_time='10:00', end_time='11:00', reason=' Dentist '),
        professional=professional,
        db=booking_db,
    )

    assert created.start_time == '10:00'
    assert created.reason == 'Dentist'
    assert [row.id for row in list_exceptions(from_date=MONDAY, professional=professional, db=booking_db)] == [created.id]

    slots = availability_routes.list_available_slots('pro-1', slot_date=MONDAY, service_id='svc-cut', db=booking_db)
    assert [slot.time for slot in slots] == ['09:00', '09:30', '11:00', '11:30']

    remove_exception(created.id, professional=professional, db=booking_db)

    assert list_exceptions(from_date=None, professional=professional, db=booking_db) == []


def test_create_exception_route_requires_both_bounds(booking_db, professional) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_exception(CreateExceptionRequest(date=MONDAY, start_time='10:00'), professional=professional, db=booking_db)

    assert exception_info.value.status_code == 422


def test_remove_exception_route_unknown_id(booking_db, professional) -> None:
    with pytest.raises(HTTPException) as exception_info:
        remove_exception('missing', professional=professional, db=booking_db)

    assert exception_info.value.status_code == 404
