import re
from datetime import date, time

from pydantic import BaseModel, Field, field_validator, model_validator

from clinic.core.config import settings
from clinic.models.weekly_availability import WeeklyAvailabilityPublic
from clinic.services.slot_generation import resolve_zone

_TIME_OF_DAY = re.compile(r"^\d{2}:\d{2}(:\d{2})?$")
_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _check_time_of_day(value: object) -> object:
    if isinstance(value, str) and not _TIME_OF_DAY.match(value):
        raise ValueError("time must be HH:MM or HH:MM:SS")
    return value


class WeeklyAvailabilityItem(BaseModel):
    weekday: int = Field(ge=0, le=6)  # 0=Sunday
    start_time: time
    end_time: time
    slot_duration_mins: int = Field(ge=5, le=480)
    timezone: str = Field(min_length=1)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def time_of_day_format(cls, v: object) -> object:
        return _check_time_of_day(v)

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, v: str) -> str:
        if resolve_zone(v) is None:
            raise ValueError(f"unknown timezone {v!r}")
        return v

    @model_validator(mode="after")
    def end_after_start(self) -> "WeeklyAvailabilityItem":
        if self.start_time >= self.end_time:
            raise ValueError("end_time must be > start_time")
        return self


class WeeklyAvailabilityReplace(BaseModel):
    items: list[WeeklyAvailabilityItem]

    @field_validator("items")
    @classmethod
    def at_most_cap(cls, v: list[WeeklyAvailabilityItem]) -> list[WeeklyAvailabilityItem]:
        if len(v) > settings.max_weekly_templates:
            raise ValueError(f"at most {settings.max_weekly_templates} items")
        return v


class WeeklyAvailabilitySaved(BaseModel):
    saved: int
    items: list[WeeklyAvailabilityPublic]


class SlotExceptionCreate(BaseModel):
    day: date
    full_day: bool
    start_time: time | None = None
    end_time: time | None = None
    reason: str | None = Field(default=None, max_length=300)

    @field_validator("day", mode="before")
    @classmethod
    def day_format(cls, v: object) -> object:
        if isinstance(v, str) and not _DAY.match(v):
            raise ValueError("day must be YYYY-MM-DD")
        return v

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def time_of_day_format(cls, v: object) -> object:
        return _check_time_of_day(v)

    @model_validator(mode="after")
    def window_matches_kind(self) -> "SlotExceptionCreate":
        if self.full_day:
            if self.start_time is not None or self.end_time is not None:
                raise ValueError("Provide start/end for partial; none for full_day")
        elif self.start_time is None or self.end_time is None or self.start_time >= self.end_time:
            raise ValueError("Provide start/end for partial; none for full_day")
        return self


class RegenerateResponse(BaseModel):
    inserted: int
