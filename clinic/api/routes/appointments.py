import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.api.deps import get_session, require_role
from clinic.api.schemas.appointment import BookAppointmentRequest
from clinic.core.security import Identity
from clinic.models.appointment import AppointmentPublic, AppointmentWithSlotPublic
from clinic.models.user import User
from clinic.services.appointment_service import (
    book_slot,
    cancel_appointment,
    list_appointments_for_patient,
)
from clinic.services.email_service import send_booking_confirmation_email
from clinic.services.slot_service import get_slot

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])

patient_only = require_role("patient")


@router.post("", response_model=AppointmentPublic, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    body: BookAppointmentRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    patient: Identity = Depends(patient_only),
) -> AppointmentPublic:
    result = await book_slot(session, body.slot_id, patient.user_id, body.symptoms)
    slot = await get_slot(session, body.slot_id)
    if not result.ok:
        # the booking itself does not tell a missing slot from a taken one
        if slot is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Slot not found")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Slot already booked")

    user = await session.get(User, patient.user_id)
    if user and user.email and slot is not None:
        # Send confirmation email in background (uses sync SMTP)
        background_tasks.add_task(
            send_booking_confirmation_email,
            to_email=user.email,
            recipient_name=user.full_name,
            slot_start_utc=slot.start_time,
            slot_end_utc=slot.end_time,
        )
    return AppointmentPublic.model_validate(result.appointment, from_attributes=True)


@router.get("", response_model=list[AppointmentWithSlotPublic])
async def list_my_appointments(
    from_time: datetime | None = Query(None, alias="from"),
    to_time: datetime | None = Query(None, alias="to"),
    session: AsyncSession = Depends(get_session),
    patient: Identity = Depends(patient_only),
) -> list[AppointmentWithSlotPublic]:
    return await list_appointments_for_patient(session, patient.user_id, from_time, to_time)


@router.patch("/{appointment_id}/cancel", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_my_appointment(
    appointment_id: int,
    session: AsyncSession = Depends(get_session),
    patient: Identity = Depends(patient_only),
) -> None:
    result = await cancel_appointment(session, appointment_id, patient.user_id)
    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Appointment not found",
        )
