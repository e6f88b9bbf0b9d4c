from datetime import UTC, datetime

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class Specialization(SQLModel, table=True):
    __tablename__ = "specializations"
    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True)
    description: str | None = None


class DoctorSpecialization(SQLModel, table=True):
    """Links a doctor to a specialization their slots can be tagged with."""

    __tablename__ = "doctor_specializations"
    __table_args__ = (
        UniqueConstraint("doctor_id", "specialization_id", name="uq_doctor_specializations_pair"),
    )
    id: int | None = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="users.id", index=True)
    specialization_id: int = Field(foreign_key="specializations.id", index=True)
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())


class SpecializationCreate(SQLModel):
    name: str
    description: str | None = None


class DoctorSpecializationPublic(SQLModel):
    id: int
    doctor_id: int
    specialization_id: int
    name: str
    description: str | None = None
    created_at: datetime
