from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import DateTime, Index, text
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class AppointmentStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELED = "canceled"
    COMPLETED = "completed"


ACTIVE_STATUSES = (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value)

_ACTIVE_PREDICATE = text("status IN ('pending', 'confirmed')")


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        # at most one active appointment per slot; canceled rows stay as history
        Index(
            "uq_appointments_active_slot",
            "availability_slot_id",
            unique=True,
            postgresql_where=_ACTIVE_PREDICATE,
            sqlite_where=_ACTIVE_PREDICATE,
        ),
    )
    id: int | None = Field(default=None, primary_key=True)
    availability_slot_id: int = Field(foreign_key="availability_slots.id", index=True)
    patient_id: int = Field(foreign_key="users.id", index=True)
    status: str = AppointmentStatus.CONFIRMED.value
    symptoms: str | None = None
    notes: str | None = None
    booked_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())
    cancelled_at: datetime | None = Field(default=None, sa_type=DateTime())


class AppointmentPublic(SQLModel):
    id: int
    availability_slot_id: int
    patient_id: int
    status: str
    symptoms: str | None = None
    notes: str | None = None
    booked_at: datetime
    cancelled_at: datetime | None = None


class AppointmentWithSlotPublic(AppointmentPublic):
    """Appointment joined with its slot, for patient and doctor listings."""

    start_time: datetime
    end_time: datetime
    doctor_id: int
    specialization_id: int
