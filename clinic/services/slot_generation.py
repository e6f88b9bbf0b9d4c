"""
Pure interval math behind slot regeneration.

Turns weekly templates and date exceptions into candidate slots:

  for each calendar day in [today 00:00 UTC, now + weeks):
    templates matching the day's weekday (0 = Sunday)
    -> local [start, end) in the template's timezone, converted to UTC
    -> minus exceptions for that day (full-day removes everything,
       partial windows are subtracted in the template's timezone)
    -> tiled into fixed-duration slots, trailing remainder dropped

Nothing here touches the database; slot_service persists the result.
All datetimes returned are naive UTC, matching the storage convention.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from clinic.models.slot_exception import SlotException
from clinic.models.weekly_availability import WeeklyAvailability

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class TimeInterval:
    """Half-open interval [start, end)."""

    start: datetime
    end: datetime

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    def difference(self, block: "TimeInterval") -> list["TimeInterval"]:
        """Remove `block` from this interval; yields zero, one or two pieces."""
        if self.is_empty:
            return []
        if block.is_empty or block.end <= self.start or block.start >= self.end:
            return [self]
        pieces: list[TimeInterval] = []
        if block.start > self.start:
            pieces.append(TimeInterval(self.start, block.start))
        if block.end < self.end:
            pieces.append(TimeInterval(block.end, self.end))
        return pieces

    def tile(self, minutes: int) -> list["TimeInterval"]:
        """Consecutive sub-intervals of exactly `minutes`, starting at `start`."""
        if minutes <= 0:
            return []
        step = timedelta(minutes=minutes)
        tiles: list[TimeInterval] = []
        cursor = self.start
        while cursor + step <= self.end:
            tiles.append(TimeInterval(cursor, cursor + step))
            cursor += step
        return tiles


@dataclass(frozen=True)
class CandidateSlot:
    start_time: datetime
    end_time: datetime
    duration_mins: int


def subtract_all(intervals: Iterable[TimeInterval], block: TimeInterval) -> list[TimeInterval]:
    return [piece for interval in intervals for piece in interval.difference(block)]


def sunday_based_weekday(day: date) -> int:
    """Weekday index with Sunday=0 .. Saturday=6 (date.weekday() is Monday=0)."""
    return (day.weekday() + 1) % 7


def _to_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def window_days(now: datetime, weeks: int) -> list[date]:
    """Calendar days from today (UTC) while the day starts before now + weeks."""
    now = _to_naive_utc(now)
    end = now + timedelta(weeks=weeks)
    days: list[date] = []
    cursor = datetime.combine(now.date(), time.min)
    while cursor < end:
        days.append(cursor.date())
        cursor += timedelta(days=1)
    return days


def resolve_zone(name: str) -> ZoneInfo | None:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def local_interval_to_utc(day: date, start: time, end: time, zone: ZoneInfo) -> TimeInterval:
    """Interpret [start, end) as civil time on `day` in `zone`; return naive UTC."""
    start_utc = datetime.combine(day, start, tzinfo=zone).astimezone(UTC)
    end_utc = datetime.combine(day, end, tzinfo=zone).astimezone(UTC)
    return TimeInterval(start_utc.replace(tzinfo=None), end_utc.replace(tzinfo=None))


def template_intervals(
    template: WeeklyAvailability,
    day: date,
    exceptions: Sequence[SlotException],
) -> list[TimeInterval]:
    """Free UTC intervals of one template on one day after applying exceptions."""
    zone = resolve_zone(template.timezone)
    if zone is None:
        logger.warning(
            "Skipping template %s: unknown timezone %r", template.id, template.timezone
        )
        return []
    base = local_interval_to_utc(day, template.start_time, template.end_time, zone)
    if base.is_empty:
        return []

    intervals = [base]
    for exc in exceptions:
        if exc.full_day:
            return []
        if exc.start_time is not None and exc.end_time is not None:
            block = local_interval_to_utc(day, exc.start_time, exc.end_time, zone)
            intervals = subtract_all(intervals, block)
    return intervals


def build_candidate_slots(
    templates: Sequence[WeeklyAvailability],
    exceptions: Sequence[SlotException],
    now: datetime,
    weeks: int,
) -> list[CandidateSlot]:
    """Every slot the templates produce over the window, ordered by start.

    Deterministic for the same inputs; a start instant produced twice (by
    overlapping templates) is kept once.
    """
    by_weekday: dict[int, list[WeeklyAvailability]] = {}
    for t in templates:
        by_weekday.setdefault(t.weekday, []).append(t)
    by_day: dict[date, list[SlotException]] = {}
    for e in exceptions:
        by_day.setdefault(e.day, []).append(e)

    seen: set[datetime] = set()
    slots: list[CandidateSlot] = []
    for day in window_days(now, weeks):
        day_templates = by_weekday.get(sunday_based_weekday(day))
        if not day_templates:
            continue
        day_exceptions = by_day.get(day, [])
        for t in day_templates:
            for interval in template_intervals(t, day, day_exceptions):
                for piece in interval.tile(t.slot_duration_mins):
                    if piece.start in seen:
                        continue
                    seen.add(piece.start)
                    slots.append(CandidateSlot(piece.start, piece.end, t.slot_duration_mins))
    slots.sort(key=lambda s: s.start_time)
    return slots
