import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.errors import SpecializationRequired
from clinic.models.specialization import (
    DoctorSpecialization,
    DoctorSpecializationPublic,
    Specialization,
)

logger = logging.getLogger(__name__)


async def list_specializations(session: AsyncSession) -> list[Specialization]:
    result = await session.execute(select(Specialization).order_by(Specialization.name))
    return list(result.scalars().all())


async def create_specialization(
    session: AsyncSession, name: str, description: str | None = None
) -> Specialization:
    spec = Specialization(name=name.strip(), description=description)
    session.add(spec)
    await session.flush()
    await session.refresh(spec)
    return spec


async def remove_specialization(session: AsyncSession, specialization_id: int) -> bool:
    result = await session.execute(
        delete(Specialization).where(Specialization.id == specialization_id)
    )
    await session.flush()
    return bool(result.rowcount)


async def list_doctor_specializations(
    session: AsyncSession, doctor_id: int
) -> list[DoctorSpecializationPublic]:
    result = await session.execute(
        select(DoctorSpecialization, Specialization)
        .join(Specialization, Specialization.id == DoctorSpecialization.specialization_id)
        .where(DoctorSpecialization.doctor_id == doctor_id)
        .order_by(Specialization.name)
    )
    return [
        DoctorSpecializationPublic(
            id=link.id,
            doctor_id=link.doctor_id,
            specialization_id=link.specialization_id,
            name=spec.name,
            description=spec.description,
            created_at=link.created_at,
        )
        for link, spec in result.all()
    ]


async def replace_doctor_specializations(
    session: AsyncSession, doctor_id: int, specialization_ids: list[int]
) -> list[DoctorSpecialization]:
    await session.execute(
        delete(DoctorSpecialization).where(DoctorSpecialization.doctor_id == doctor_id)
    )
    links = [
        DoctorSpecialization(doctor_id=doctor_id, specialization_id=spec_id)
        for spec_id in dict.fromkeys(specialization_ids)
    ]
    session.add_all(links)
    await session.flush()
    return links


async def remove_doctor_specialization(
    session: AsyncSession, doctor_id: int, specialization_id: int
) -> bool:
    result = await session.execute(
        delete(DoctorSpecialization).where(
            DoctorSpecialization.doctor_id == doctor_id,
            DoctorSpecialization.specialization_id == specialization_id,
        )
    )
    await session.flush()
    return bool(result.rowcount)


async def resolve_specialization_id(
    session: AsyncSession, doctor_id: int, specialization_id: int | None = None
) -> int:
    """Pick the specialization generated slots are tagged with.

    An explicit id must be one of the doctor's links. Without one, the doctor
    must have exactly one link; zero or several raise SpecializationRequired.
    """
    result = await session.execute(
        select(DoctorSpecialization.specialization_id).where(
            DoctorSpecialization.doctor_id == doctor_id
        )
    )
    linked = list(result.scalars().all())
    if specialization_id is not None:
        if specialization_id not in linked:
            raise SpecializationRequired(
                f"Specialization {specialization_id} is not linked to this doctor"
            )
        return specialization_id
    if len(linked) != 1:
        logger.debug("Doctor %s has %d specializations linked", doctor_id, len(linked))
        raise SpecializationRequired()
    return linked[0]
