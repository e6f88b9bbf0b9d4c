from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.api.deps import get_current_identity, get_session, require_role
from clinic.core.security import Identity
from clinic.models.specialization import Specialization, SpecializationCreate
from clinic.services.specialization_service import (
    create_specialization,
    list_specializations,
    remove_specialization,
)

router = APIRouter(prefix="/specializations", tags=["specializations"])

admin_only = require_role("admin")


@router.get("", response_model=list[Specialization])
async def get_specializations(
    session: AsyncSession = Depends(get_session),
    _identity: Identity = Depends(get_current_identity),
) -> list[Specialization]:
    return await list_specializations(session)


@router.post("", response_model=Specialization, status_code=status.HTTP_201_CREATED)
async def post_specialization(
    body: SpecializationCreate,
    session: AsyncSession = Depends(get_session),
    _admin: Identity = Depends(admin_only),
) -> Specialization:
    try:
        return await create_specialization(session, body.name, body.description)
    except IntegrityError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Specialization name already exists",
        ) from e


@router.delete("/{specialization_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_specialization(
    specialization_id: int,
    session: AsyncSession = Depends(get_session),
    _admin: Identity = Depends(admin_only),
) -> None:
    ok = await remove_specialization(session, specialization_id)
    if not ok:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
