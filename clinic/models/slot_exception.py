from datetime import date, time

from sqlmodel import Field, SQLModel


class SlotException(SQLModel, table=True):
    """Date-specific block for a doctor: the whole day, or a local time window."""

    __tablename__ = "slot_exceptions"
    id: int | None = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="users.id", index=True)
    day: date = Field(index=True)
    full_day: bool = False
    start_time: time | None = None
    end_time: time | None = None
    reason: str | None = None


class SlotExceptionPublic(SQLModel):
    id: int
    doctor_id: int
    day: date
    full_day: bool
    start_time: time | None = None
    end_time: time | None = None
    reason: str | None = None
