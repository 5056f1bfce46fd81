from collections.abc import Iterable

from agenda.booking.records import CandidateSlot, ScheduledAppointment
from agenda.booking.time_model import intervals_overlap, to_minutes_since_midnight


def occupying_appointments(
    appointments: Iterable[ScheduledAppointment],
) -> list[ScheduledAppointment]:
    return [appointment for appointment in appointments if appointment.is_occupying]


def find_conflict(
    slot: CandidateSlot,
    appointments: Iterable[ScheduledAppointment],
    exclude_appointment_id: str | None = None,
) -> ScheduledAppointment | None:
    """Return the first occupying appointment on the slot's date that overlaps it."""
    for appointment in appointments:
        if exclude_appointment_id is not None and appointment.id == exclude_appointment_id:
            continue
        if appointment.date != slot.date or not appointment.is_occupying:
            continue

        if intervals_overlap(
            slot.start_minutes,
            slot.duration_minutes,
            to_minutes_since_midnight(appointment.time),
            appointment.duration_minutes,
        ):
            return appointment

    return None


def has_conflict(
    slot: CandidateSlot,
    appointments: Iterable[ScheduledAppointment],
    exclude_appointment_id: str | None = None,
) -> bool:
    return find_conflict(slot, appointments, exclude_appointment_id) is not None
