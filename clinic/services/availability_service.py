from datetime import date, time

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.models.slot_exception import SlotException
from clinic.models.weekly_availability import WeeklyAvailability


async def list_weekly_availability(
    session: AsyncSession, doctor_id: int
) -> list[WeeklyAvailability]:
    result = await session.execute(
        select(WeeklyAvailability)
        .where(WeeklyAvailability.doctor_id == doctor_id)
        .order_by(WeeklyAvailability.weekday, WeeklyAvailability.start_time)
    )
    return list(result.scalars().all())


async def replace_weekly_availability(
    session: AsyncSession, doctor_id: int, items: list[dict]
) -> list[WeeklyAvailability]:
    """Delete every template of the doctor, then insert `items`. Empty clears."""
    await session.execute(
        delete(WeeklyAvailability).where(WeeklyAvailability.doctor_id == doctor_id)
    )
    rows = [WeeklyAvailability(doctor_id=doctor_id, **item) for item in items]
    session.add_all(rows)
    await session.flush()
    return sorted(rows, key=lambda r: (r.weekday, r.start_time))


async def list_slot_exceptions(session: AsyncSession, doctor_id: int) -> list[SlotException]:
    result = await session.execute(
        select(SlotException)
        .where(SlotException.doctor_id == doctor_id)
        .order_by(SlotException.day.desc(), SlotException.start_time.asc().nulls_first())
    )
    return list(result.scalars().all())


async def create_slot_exception(
    session: AsyncSession,
    doctor_id: int,
    day: date,
    full_day: bool,
    start_time: time | None = None,
    end_time: time | None = None,
    reason: str | None = None,
) -> SlotException:
    exc = SlotException(
        doctor_id=doctor_id,
        day=day,
        full_day=full_day,
        start_time=None if full_day else start_time,
        end_time=None if full_day else end_time,
        reason=reason,
    )
    session.add(exc)
    await session.flush()
    await session.refresh(exc)
    return exc


async def remove_slot_exception(session: AsyncSession, doctor_id: int, exception_id: int) -> bool:
    result = await session.execute(
        delete(SlotException).where(
            SlotException.id == exception_id,
            SlotException.doctor_id == doctor_id,
        )
    )
    await session.flush()
    return bool(result.rowcount)
