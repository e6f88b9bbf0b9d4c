import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.api.deps import get_session, require_role
from clinic.api.schemas.availability import (
    RegenerateResponse,
    SlotExceptionCreate,
    WeeklyAvailabilityReplace,
    WeeklyAvailabilitySaved,
)
from clinic.api.schemas.specialization import (
    DoctorSpecializationsReplace,
    DoctorSpecializationsSaved,
)
from clinic.core.config import settings
from clinic.core.security import Identity
from clinic.models.appointment import AppointmentWithSlotPublic
from clinic.models.slot_exception import SlotExceptionPublic
from clinic.models.specialization import DoctorSpecializationPublic
from clinic.models.weekly_availability import WeeklyAvailabilityPublic
from clinic.services.appointment_service import list_appointments_for_doctor
from clinic.services.availability_service import (
    create_slot_exception,
    list_slot_exceptions,
    list_weekly_availability,
    remove_slot_exception,
    replace_weekly_availability,
)
from clinic.services.slot_service import regenerate_slots_for_doctor
from clinic.services.specialization_service import (
    list_doctor_specializations,
    remove_doctor_specialization,
    replace_doctor_specializations,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/doctors/me", tags=["doctors"])

doctor_only = require_role("doctor")


@router.get("/weekly-availability", response_model=list[WeeklyAvailabilityPublic])
async def get_weekly_availability(
    session: AsyncSession = Depends(get_session),
    doctor: Identity = Depends(doctor_only),
) -> list[WeeklyAvailabilityPublic]:
    rows = await list_weekly_availability(session, doctor.user_id)
    return [WeeklyAvailabilityPublic.model_validate(r, from_attributes=True) for r in rows]


@router.put("/weekly-availability", response_model=WeeklyAvailabilitySaved)
async def put_weekly_availability(
    body: WeeklyAvailabilityReplace,
    session: AsyncSession = Depends(get_session),
    doctor: Identity = Depends(doctor_only),
) -> WeeklyAvailabilitySaved:
    """Replace the whole weekly schedule; an empty list clears it."""
    rows = await replace_weekly_availability(
        session, doctor.user_id, [item.model_dump() for item in body.items]
    )
    return WeeklyAvailabilitySaved(
        saved=len(rows),
        items=[WeeklyAvailabilityPublic.model_validate(r, from_attributes=True) for r in rows],
    )


@router.get("/slot-exceptions", response_model=list[SlotExceptionPublic])
async def get_slot_exceptions(
    session: AsyncSession = Depends(get_session),
    doctor: Identity = Depends(doctor_only),
) -> list[SlotExceptionPublic]:
    rows = await list_slot_exceptions(session, doctor.user_id)
    return [SlotExceptionPublic.model_validate(r, from_attributes=True) for r in rows]


@router.post(
    "/slot-exceptions", response_model=SlotExceptionPublic, status_code=status.HTTP_201_CREATED
)
async def post_slot_exception(
    body: SlotExceptionCreate,
    session: AsyncSession = Depends(get_session),
    doctor: Identity = Depends(doctor_only),
) -> SlotExceptionPublic:
    exc = await create_slot_exception(
        session,
        doctor.user_id,
        day=body.day,
        full_day=body.full_day,
        start_time=body.start_time,
        end_time=body.end_time,
        reason=body.reason,
    )
    return SlotExceptionPublic.model_validate(exc, from_attributes=True)


@router.delete("/slot-exceptions/{exception_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_slot_exception(
    exception_id: int,
    session: AsyncSession = Depends(get_session),
    doctor: Identity = Depends(doctor_only),
) -> None:
    ok = await remove_slot_exception(session, doctor.user_id, exception_id)
    if not ok:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")


@router.get("/specializations", response_model=list[DoctorSpecializationPublic])
async def get_my_specializations(
    session: AsyncSession = Depends(get_session),
    doctor: Identity = Depends(doctor_only),
) -> list[DoctorSpecializationPublic]:
    return await list_doctor_specializations(session, doctor.user_id)


@router.put("/specializations", response_model=DoctorSpecializationsSaved)
async def put_my_specializations(
    body: DoctorSpecializationsReplace,
    session: AsyncSession = Depends(get_session),
    doctor: Identity = Depends(doctor_only),
) -> DoctorSpecializationsSaved:
    links = await replace_doctor_specializations(session, doctor.user_id, body.specialization_ids)
    items = await list_doctor_specializations(session, doctor.user_id)
    return DoctorSpecializationsSaved(assigned=len(links), items=items)


@router.delete("/specializations/{specialization_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_my_specialization(
    specialization_id: int,
    session: AsyncSession = Depends(get_session),
    doctor: Identity = Depends(doctor_only),
) -> None:
    ok = await remove_doctor_specialization(session, doctor.user_id, specialization_id)
    if not ok:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pair not found")


@router.get("/appointments", response_model=list[AppointmentWithSlotPublic])
async def get_my_schedule(
    from_time: datetime | None = Query(None, alias="from"),
    to_time: datetime | None = Query(None, alias="to"),
    session: AsyncSession = Depends(get_session),
    doctor: Identity = Depends(doctor_only),
) -> list[AppointmentWithSlotPublic]:
    return await list_appointments_for_doctor(session, doctor.user_id, from_time, to_time)


@router.post("/slots/regenerate", response_model=RegenerateResponse)
async def regenerate_my_slots(
    weeks: int = Query(settings.default_regeneration_weeks, ge=1, le=settings.max_regeneration_weeks),
    specialization_id: int | None = Query(None, alias="specializationId"),
    session: AsyncSession = Depends(get_session),
    doctor: Identity = Depends(doctor_only),
) -> RegenerateResponse:
    """Materialize weekly availability into bookable slots; safe to repeat.

    SpecializationRequired propagates to the app's ClinicError handler (400).
    """
    inserted = await regenerate_slots_for_doctor(
        session, doctor.user_id, weeks=weeks, specialization_id=specialization_id
    )
    return RegenerateResponse(inserted=inserted)
