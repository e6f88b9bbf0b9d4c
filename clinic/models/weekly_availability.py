from datetime import time

from sqlmodel import Field, SQLModel


class WeeklyAvailability(SQLModel, table=True):
    """Recurring weekly rule: local [start_time, end_time) on a weekday, cut into slots."""

    __tablename__ = "weekly_availability"
    id: int | None = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="users.id", index=True)
    weekday: int  # 0=Sunday .. 6=Saturday
    start_time: time
    end_time: time
    slot_duration_mins: int
    timezone: str  # IANA name, e.g. "Europe/Istanbul"


class WeeklyAvailabilityPublic(SQLModel):
    id: int
    doctor_id: int
    weekday: int
    start_time: time
    end_time: time
    slot_duration_mins: int
    timezone: str
