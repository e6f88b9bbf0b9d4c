import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from clinic.core.errors import AlreadyBooked, ClinicError, NotFound, StorageFailure
from clinic.models.appointment import (
    ACTIVE_STATUSES,
    Appointment,
    AppointmentStatus,
    AppointmentWithSlotPublic,
)
from clinic.models.availability_slot import AvailabilitySlot
from clinic.models.specialization import Specialization
from clinic.models.user import User
from clinic.services.slot_service import lock_slot_for_update, mark_free

logger = logging.getLogger(__name__)


def _to_naive_utc(dt: datetime) -> datetime:
    """Convert to naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    if dt.tzinfo is not None:
        return dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


@dataclass
class BookingResult:
    """Outcome of booking or cancelling; `error` is the failure kind, if any."""

    appointment: Appointment | None = None
    error: type[ClinicError] | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AppointmentReminder:
    appointment_id: int
    slot_start: datetime
    slot_end: datetime
    patient_email: str
    patient_name: str
    doctor_name: str
    specialization_name: str


async def book_slot(
    session: AsyncSession, slot_id: int, patient_id: int, symptoms: str | None = None
) -> BookingResult:
    """Reserve a free slot and create a confirmed appointment for it.

    The conditional UPDATE (is_booked false -> true) is the only double-booking
    guard: it locks the row, and a concurrent booking re-evaluates the predicate
    after the winner commits and matches nothing. The appointment row is only
    inserted when that UPDATE reserved the slot, inside the same transaction.
    A missing slot and a booked slot both come back as AlreadyBooked.
    """
    try:
        reserved = await session.execute(
            update(AvailabilitySlot)
            .where(
                AvailabilitySlot.id == slot_id,
                AvailabilitySlot.is_booked == False,  # noqa: E712
            )
            .values(is_booked=True)
            .returning(AvailabilitySlot.id)
        )
        if reserved.scalar_one_or_none() is None:
            logger.info("Booking refused: slot %s is not free (patient %s)", slot_id, patient_id)
            return BookingResult(error=AlreadyBooked)
        appointment = Appointment(
            availability_slot_id=slot_id,
            patient_id=patient_id,
            status=AppointmentStatus.CONFIRMED.value,
            symptoms=symptoms,
            booked_at=_utc_naive_now(),
        )
        session.add(appointment)
        await session.flush()
        await session.refresh(appointment)
    except SQLAlchemyError as e:
        raise StorageFailure(f"Booking failed: {type(e).__name__}") from e
    logger.info("Booked slot %s as appointment %s for patient %s", slot_id, appointment.id, patient_id)
    return BookingResult(appointment=appointment)


async def cancel_appointment(
    session: AsyncSession, appointment_id: int, patient_id: int
) -> BookingResult:
    """Cancel the patient's active appointment and free its slot.

    Missing, someone else's, and already canceled/completed appointments all
    report NotFound, so callers cannot probe other patients' appointments.
    """
    try:
        result = await session.execute(
            update(Appointment)
            .where(
                Appointment.id == appointment_id,
                Appointment.patient_id == patient_id,
                Appointment.status.in_(ACTIVE_STATUSES),
            )
            .values(status=AppointmentStatus.CANCELED.value, cancelled_at=_utc_naive_now())
            .returning(Appointment.availability_slot_id)
        )
        slot_id = result.scalar_one_or_none()
        if slot_id is None:
            return BookingResult(error=NotFound)
        await lock_slot_for_update(session, slot_id)
        await mark_free(session, slot_id)
        await session.flush()
    except SQLAlchemyError as e:
        raise StorageFailure(f"Cancellation failed: {type(e).__name__}") from e
    logger.info("Canceled appointment %s, slot %s is free again", appointment_id, slot_id)
    return BookingResult()


def _with_slot(a: Appointment, s: AvailabilitySlot) -> AppointmentWithSlotPublic:
    return AppointmentWithSlotPublic(
        id=a.id,
        availability_slot_id=a.availability_slot_id,
        patient_id=a.patient_id,
        status=a.status,
        symptoms=a.symptoms,
        notes=a.notes,
        booked_at=a.booked_at,
        cancelled_at=a.cancelled_at,
        start_time=s.start_time,
        end_time=s.end_time,
        doctor_id=s.doctor_id,
        specialization_id=s.specialization_id,
    )


async def _list_with_slot(
    session: AsyncSession,
    condition,
    from_time: datetime | None,
    to_time: datetime | None,
) -> list[AppointmentWithSlotPublic]:
    q = (
        select(Appointment, AvailabilitySlot)
        .join(AvailabilitySlot, AvailabilitySlot.id == Appointment.availability_slot_id)
        .where(condition)
        .order_by(AvailabilitySlot.start_time, Appointment.id)
    )
    if from_time:
        q = q.where(AvailabilitySlot.start_time >= _to_naive_utc(from_time))
    if to_time:
        q = q.where(AvailabilitySlot.start_time < _to_naive_utc(to_time))
    result = await session.execute(q)
    return [_with_slot(a, s) for a, s in result.all()]


async def list_appointments_for_patient(
    session: AsyncSession,
    patient_id: int,
    from_time: datetime | None = None,
    to_time: datetime | None = None,
) -> list[AppointmentWithSlotPublic]:
    return await _list_with_slot(session, Appointment.patient_id == patient_id, from_time, to_time)


async def list_appointments_for_doctor(
    session: AsyncSession,
    doctor_id: int,
    from_time: datetime | None = None,
    to_time: datetime | None = None,
) -> list[AppointmentWithSlotPublic]:
    return await _list_with_slot(session, AvailabilitySlot.doctor_id == doctor_id, from_time, to_time)


async def list_due_reminders(
    session: AsyncSession, window_start: datetime, window_end: datetime
) -> list[AppointmentReminder]:
    """Active appointments whose slot starts in [window_start, window_end)."""
    start = _to_naive_utc(window_start)
    end = _to_naive_utc(window_end)
    patient = aliased(User)
    doctor = aliased(User)
    result = await session.execute(
        select(Appointment, AvailabilitySlot, patient, doctor, Specialization)
        .join(AvailabilitySlot, AvailabilitySlot.id == Appointment.availability_slot_id)
        .join(patient, patient.id == Appointment.patient_id)
        .join(doctor, doctor.id == AvailabilitySlot.doctor_id)
        .join(Specialization, Specialization.id == AvailabilitySlot.specialization_id)
        .where(
            Appointment.status.in_(ACTIVE_STATUSES),
            AvailabilitySlot.start_time >= start,
            AvailabilitySlot.start_time < end,
        )
        .order_by(AvailabilitySlot.start_time)
    )
    return [
        AppointmentReminder(
            appointment_id=a.id,
            slot_start=s.start_time,
            slot_end=s.end_time,
            patient_email=p.email,
            patient_name=p.full_name or "Patient",
            doctor_name=d.full_name or "Doctor",
            specialization_name=spec.name,
        )
        for a, s, p, d, spec in result.all()
    ]
