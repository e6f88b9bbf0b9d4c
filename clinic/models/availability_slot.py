from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import DateTime, Index, UniqueConstraint
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class SlotSource(StrEnum):
    GENERATED = "generated"
    MANUAL = "manual"


class AvailabilitySlot(SQLModel, table=True):
    __tablename__ = "availability_slots"
    __table_args__ = (
        # natural key used by regeneration's insert-or-ignore
        UniqueConstraint("doctor_id", "start_time", name="uq_availability_slots_doctor_start"),
        Index("ix_availability_slots_search", "specialization_id", "is_booked", "start_time"),
    )
    id: int | None = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="users.id", index=True)
    specialization_id: int = Field(foreign_key="specializations.id")
    start_time: datetime = Field(sa_type=DateTime())  # naive UTC
    end_time: datetime = Field(sa_type=DateTime())  # naive UTC
    duration_mins: int
    is_booked: bool = False
    source: str = SlotSource.GENERATED.value
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())


class AvailabilitySlotPublic(SQLModel):
    id: int
    doctor_id: int
    specialization_id: int
    start_time: datetime
    end_time: datetime
    duration_mins: int
    is_booked: bool
    source: str


class SlotSearchPage(SQLModel):
    items: list[AvailabilitySlotPublic]
    total: int
    limit: int
    offset: int
