from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.api.deps import get_session, require_role
from clinic.core.security import Identity
from clinic.models.availability_slot import SlotSearchPage
from clinic.services.slot_service import search_slots

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/search", response_model=SlotSearchPage)
async def search_free_slots(
    specialization_id: int = Query(..., alias="specializationId"),
    from_time: datetime = Query(..., alias="from"),
    to_time: datetime = Query(..., alias="to"),
    limit: int | None = Query(None),
    offset: int | None = Query(None),
    session: AsyncSession = Depends(get_session),
    _patient: Identity = Depends(require_role("patient")),
) -> SlotSearchPage:
    """Free slots of a specialization starting in [from, to). limit/offset are clamped, not rejected."""
    return await search_slots(session, specialization_id, from_time, to_time, limit, offset)
