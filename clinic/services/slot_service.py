import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from sqlalchemy import distinct, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.config import settings
from clinic.core.errors import SpecializationRequired, StorageFailure
from clinic.models.availability_slot import (
    AvailabilitySlot,
    AvailabilitySlotPublic,
    SlotSearchPage,
    SlotSource,
)
from clinic.models.weekly_availability import WeeklyAvailability
from clinic.services.availability_service import list_slot_exceptions, list_weekly_availability
from clinic.services.slot_generation import CandidateSlot, build_candidate_slots
from clinic.services.specialization_service import resolve_specialization_id

logger = logging.getLogger(__name__)

# Keeps each multi-row INSERT well under SQLite's bound-parameter limit
INSERT_BATCH_SIZE = 500

_CONFLICT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _to_naive_utc(dt: datetime) -> datetime:
    """Convert to naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    if dt.tzinfo is not None:
        return dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def clamp_page(limit: int | None, offset: int | None) -> tuple[int, int]:
    limit = settings.search_default_limit if limit is None else limit
    limit = max(1, min(limit, settings.search_max_limit))
    offset = max(0, offset or 0)
    return limit, offset


async def bulk_insert_generated(
    session: AsyncSession,
    doctor_id: int,
    specialization_id: int,
    slots: Sequence[CandidateSlot],
) -> int:
    """Insert slots, skipping any (doctor_id, start_time) that already exists.

    Returns how many rows were actually inserted. No statement is issued for
    an empty list.
    """
    if not slots:
        return 0
    dialect = session.get_bind().dialect.name
    insert = _CONFLICT_INSERTS.get(dialect)
    if insert is None:
        raise StorageFailure(f"Insert-or-ignore is not supported on {dialect}")

    table = AvailabilitySlot.__table__
    created_at = _to_naive_utc(datetime.now(UTC))
    inserted = 0
    try:
        for i in range(0, len(slots), INSERT_BATCH_SIZE):
            batch = slots[i : i + INSERT_BATCH_SIZE]
            stmt = (
                insert(table)
                .values(
                    [
                        {
                            "doctor_id": doctor_id,
                            "specialization_id": specialization_id,
                            "start_time": _to_naive_utc(s.start_time),
                            "end_time": _to_naive_utc(s.end_time),
                            "duration_mins": s.duration_mins,
                            "is_booked": False,
                            "source": SlotSource.GENERATED.value,
                            "created_at": created_at,
                        }
                        for s in batch
                    ]
                )
                .on_conflict_do_nothing(index_elements=["doctor_id", "start_time"])
                .returning(table.c.id)
            )
            result = await session.execute(stmt)
            inserted += len(result.all())
    except SQLAlchemyError as e:
        raise StorageFailure(f"Slot insert failed: {type(e).__name__}") from e
    return inserted


async def regenerate_slots_for_doctor(
    session: AsyncSession,
    doctor_id: int,
    weeks: int | None = None,
    specialization_id: int | None = None,
    now: datetime | None = None,
) -> int:
    """Materialize the doctor's templates into slots for the coming `weeks`.

    Idempotent: existing slots (booked or not) are never touched, so calling
    it again only adds what is missing. Raises SpecializationRequired when
    the specialization cannot be determined unambiguously.
    """
    weeks = settings.default_regeneration_weeks if weeks is None else weeks
    spec_id = await resolve_specialization_id(session, doctor_id, specialization_id)

    templates = await list_weekly_availability(session, doctor_id)
    if not templates:
        logger.debug("Doctor %s has no weekly templates, nothing to generate", doctor_id)
        return 0
    exceptions = await list_slot_exceptions(session, doctor_id)

    candidates = build_candidate_slots(templates, exceptions, now or datetime.now(UTC), weeks)
    inserted = await bulk_insert_generated(session, doctor_id, spec_id, candidates)
    logger.info(
        "Regenerated slots doctor=%s specialization=%s weeks=%d candidates=%d inserted=%d",
        doctor_id,
        spec_id,
        weeks,
        len(candidates),
        inserted,
    )
    return inserted


async def regenerate_all_doctors(
    session: AsyncSession, weeks: int | None = None, now: datetime | None = None
) -> dict[int, int]:
    """Regenerate every doctor with templates; ambiguous doctors are skipped."""
    result = await session.execute(select(distinct(WeeklyAvailability.doctor_id)))
    doctor_ids = sorted(result.scalars().all())
    inserted: dict[int, int] = {}
    for doctor_id in doctor_ids:
        try:
            inserted[doctor_id] = await regenerate_slots_for_doctor(
                session, doctor_id, weeks=weeks, now=now
            )
        except SpecializationRequired:
            logger.warning(
                "Skipping slot regeneration for doctor %s: specialization is ambiguous", doctor_id
            )
    return inserted


async def search_slots(
    session: AsyncSession,
    specialization_id: int,
    from_time: datetime,
    to_time: datetime,
    limit: int | None = None,
    offset: int | None = None,
) -> SlotSearchPage:
    """Free slots of a specialization starting in [from_time, to_time), earliest first."""
    limit, offset = clamp_page(limit, offset)
    conditions = (
        AvailabilitySlot.specialization_id == specialization_id,
        AvailabilitySlot.is_booked == False,  # noqa: E712
        AvailabilitySlot.start_time >= _to_naive_utc(from_time),
        AvailabilitySlot.start_time < _to_naive_utc(to_time),
    )
    items = await session.execute(
        select(AvailabilitySlot)
        .where(*conditions)
        .order_by(AvailabilitySlot.start_time, AvailabilitySlot.id)
        .limit(limit)
        .offset(offset)
    )
    total = await session.execute(
        select(func.count()).select_from(AvailabilitySlot).where(*conditions)
    )
    return SlotSearchPage(
        items=[
            AvailabilitySlotPublic.model_validate(slot, from_attributes=True)
            for slot in items.scalars().all()
        ],
        total=total.scalar_one(),
        limit=limit,
        offset=offset,
    )


async def get_slot(session: AsyncSession, slot_id: int) -> AvailabilitySlot | None:
    result = await session.execute(select(AvailabilitySlot).where(AvailabilitySlot.id == slot_id))
    return result.scalar_one_or_none()


async def lock_slot_for_update(session: AsyncSession, slot_id: int) -> AvailabilitySlot | None:
    """SELECT ... FOR UPDATE; the row stays locked until the transaction ends."""
    result = await session.execute(
        select(AvailabilitySlot)
        .where(AvailabilitySlot.id == slot_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def mark_booked(session: AsyncSession, slot_id: int) -> None:
    await session.execute(
        update(AvailabilitySlot).where(AvailabilitySlot.id == slot_id).values(is_booked=True)
    )


async def mark_free(session: AsyncSession, slot_id: int) -> None:
    await session.execute(
        update(AvailabilitySlot).where(AvailabilitySlot.id == slot_id).values(is_booked=False)
    )
