from fastapi import APIRouter, Depends
from gowra.schemas import (
    RegistrationCreate, RegistrationOut, RegistrationDetail, RegistrationStatusUpdate,
    RegistrationStats, MessageResponse, TokenData,
)
from gowra.db.session import get_session
from gowra.db.models import RoleEnum
from gowra.services.registration_service import RegistrationService
from gowra.auth import get_current_user, role_required
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

router = APIRouter(prefix="/registrations", tags=["registrations"])

def get_registration_service(session: AsyncSession = Depends(get_session)) -> RegistrationService:
    return RegistrationService(session)

@router.post("/", response_model=RegistrationOut, status_code=201)
async def create_registration_endpoint(
    payload: RegistrationCreate,
    user: TokenData = Depends(get_current_user),
    registration_service: RegistrationService = Depends(get_registration_service)
):
    r = await registration_service.register(payload.event_id, user.id)
    return r

@router.get("/my-registrations", response_model=List[RegistrationOut])
async def get_my_registrations(
    user: TokenData = Depends(get_current_user),
    registration_service: RegistrationService = Depends(get_registration_service)
):
    return await registration_service.list_for_user(user.id)

# Fixed paths must be declared before /{registration_id}
@router.get("/stats/overview", response_model=RegistrationStats)
async def get_registration_stats(
    user: TokenData = Depends(role_required(RoleEnum.admin)),
    registration_service: RegistrationService = Depends(get_registration_service)
):
    """Totals per payment status and the ten most registered events."""
    return await registration_service.stats_overview()

@router.get("/{registration_id}", response_model=RegistrationDetail)
async def get_registration_endpoint(
    registration_id: UUID,
    user: TokenData = Depends(get_current_user),
    registration_service: RegistrationService = Depends(get_registration_service)
):
    return await registration_service.get_detail(registration_id, user)

@router.put("/{registration_id}/status", response_model=RegistrationOut)
async def update_registration_status_endpoint(
    registration_id: UUID,
    payload: RegistrationStatusUpdate,
    user: TokenData = Depends(role_required(RoleEnum.admin)),
    registration_service: RegistrationService = Depends(get_registration_service)
):
    return await registration_service.update_status(registration_id, payload.payment_status)

@router.delete("/{registration_id}", response_model=MessageResponse)
async def cancel_registration_endpoint(
    registration_id: UUID,
    user: TokenData = Depends(get_current_user),
    registration_service: RegistrationService = Depends(get_registration_service)
):
    await registration_service.cancel(registration_id, user.id)
    return MessageResponse(message="Registration cancelled successfully")
