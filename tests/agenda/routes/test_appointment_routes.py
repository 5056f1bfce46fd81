from datetime import date, datetime

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from agenda.booking.records import AppointmentStatus, AvailabilityException
from agenda.routes import appointment_routes
from agenda.routes.appointment_routes import (
    ClientRescheduleRequest,
    CreateAppointmentRequest,
    RescheduleRequest,
    UpdateStatusRequest,
    create_appointment,
    delete_appointment,
    list_appointments,
    reschedule_appointment,
    reschedule_by_client,
    update_appointment_status,
)
from agenda.services import appointment_service, availability_service

MONDAY = date(2026, 1, 5)
NOW = datetime(2026, 1, 1, 8, 0)


@pytest.fixture(autouse=True)
def fixed_clock(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(appointment_routes, 'ensure_database_ready', lambda: None)
    monkeypatch.setattr(appointment_service, 'professional_now', lambda professional: NOW)


def _request(**overrides) -> CreateAppointmentRequest:
    fields = {
        'service_id': 'svc-cut',
        'date': MONDAY,
        'time': '10:00',
        'client_name': ' Ana Souza ',
        'client_phone': '(11) 98765-4321',
    }
    fields.update(overrides)
    return CreateAppointmentRequest(**fields)


def test_create_appointment_request_normalizes_fields() -> None:
    request = _request(client_email=' ANA@EXAMPLE.COM ', notes='   ')

    assert request.client_name == 'Ana Souza'
    assert request.client_email == 'ana@example.com'
    assert request.notes is None


@pytest.mark.parametrize(
    'overrides',
    [
        {'time': '10:5'},
        {'time': '25:00'},
        {'client_name': 'A'},
        {'client_phone': '12345'},
        {'client_email': 'not-an-email'},
        {'notes': 'x' * 501},
    ],
)
def test_create_appointment_request_rejects_invalid_fields(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        _request(**overrides)


def test_client_reschedule_request_validates_phone() -> None:
    with pytest.raises(ValidationError):
        ClientRescheduleRequest(date=MONDAY, time='11:00', client_phone='999')


def test_create_appointment_route_returns_pending_booking(booking_db, professional) -> None:
    response = create_appointment('pro-1', _request(service_id='svc-beard'), db=booking_db)

    assert response.status == AppointmentStatus.PENDING
    assert response.time == '10:00'
    assert response.end_time == '11:00'
    assert response.duration_minutes == 60


def test_create_appointment_route_maps_conflict_to_409(booking_db, professional) -> None:
    create_appointment('pro-1', _request(time='10:00'), db=booking_db)

    with pytest.raises(HTTPException) as exception_info:
        create_appointment('pro-1', _request(time='10:00'), db=booking_db)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == {'code': 'BOOKING_002', 'message': 'This time is already booked.'}


@pytest.mark.parametrize(
    ('overrides', 'status_code', 'code'),
    [
        ({'date': date(2025, 12, 29)}, 400, 'BOOKING_001'),
        ({'time': '13:00'}, 400, 'BOOKING_003'),
    ],
)
def test_create_appointment_route_maps_rule_violations(
    booking_db,
    professional,
    overrides: dict,
    status_code: int,
    code: str,
) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_appointment('pro-1', _request(**overrides), db=booking_db)

    assert exception_info.value.status_code == status_code
    assert exception_info.value.detail['code'] == code


def test_create_appointment_route_maps_blocked_slot_to_409(booking_db, professional) -> None:
    availability_service.add_exception(
        booking_db,
        'pro-1',
        AvailabilityException(date=MONDAY, start_time='10:00', end_time='10:30'),
    )

    with pytest.raises(HTTPException) as exception_info:
        create_appointment('pro-1', _request(time='10:00'), db=booking_db)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail['code'] == 'BOOKING_004'


def test_create_appointment_route_for_inactive_service(booking_db, professional) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_appointment('pro-1', _request(service_id='svc-old'), db=booking_db)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'This service is no longer available.'


def test_update_status_route_rejects_invalid_transition(booking_db, professional) -> None:
    created = create_appointment('pro-1', _request(), db=booking_db)

    confirmed = update_appointment_status(
        created.id,
        UpdateStatusRequest(status='confirmed'),
        professional=professional,
        db=booking_db,
    )
    assert confirmed.status == AppointmentStatus.CONFIRMED

    with pytest.raises(HTTPException) as exception_info:
        update_appointment_status(
            created.id,
            UpdateStatusRequest(status='pending'),
            professional=professional,
            db=booking_db,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Cannot change appointment status from confirmed to pending.'


def test_update_status_request_rejects_unknown_status() -> None:
    with pytest.raises(ValidationError):
        UpdateStatusRequest(status='archived')


def test_reschedule_route_moves_appointment(booking_db, professional) -> None:
    created = create_appointment('pro-1', _request(time='09:00'), db=booking_db)

    moved = reschedule_appointment(
        created.id,
        RescheduleRequest(date=MONDAY, time='11:30'),
        professional=professional,
        db=booking_db,
    )

    assert moved.time == '11:30'
    assert moved.end_time == '12:00'


def test_client_reschedule_route_maps_permission_error_to_403(booking_db, professional) -> None:
    created = create_appointment('pro-1', _request(), db=booking_db)

    with pytest.raises(HTTPException) as exception_info:
        reschedule_by_client(
            created.id,
            ClientRescheduleRequest(date=MONDAY, time='11:00', client_phone='(21) 99999-0000'),
            db=booking_db,
        )

    assert exception_info.value.status_code == 403


def test_client_reschedule_route_moves_appointment(booking_db, professional) -> None:
    created = create_appointment('pro-1', _request(), db=booking_db)

    moved = reschedule_by_client(
        created.id,
        ClientRescheduleRequest(date=MONDAY, time='11:00', client_phone='11987654321'),
        db=booking_db,
    )

    assert moved.time == '11:00'


def test_list_and_delete_routes(booking_db, professional) -> None:
    first = create_appointment('pro-1', _request(time='11:00'), db=booking_db)
    second = create_appointment('pro-1', _request(time='09:00'), db=booking_db)

    listed = list_appointments(
        start_date=MONDAY,
        end_date=MONDAY,
        appointment_status=None,
        professional=professional,
        db=booking_db,
    )
    assert [appointment.id for appointment in listed] == [second.id, first.id]

    delete_appointment(first.id, professional=professional, db=booking_db)

    with pytest.raises(HTTPException) as exception_info:
        delete_appointment(first.id, professional=professional, db=booking_db)
    assert exception_info.value.status_code == 404
