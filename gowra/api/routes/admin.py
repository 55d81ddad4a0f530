from fastapi import APIRouter, Depends
from gowra.schemas import (
    AdminStats, AdminEventOut, EventCreate, EventUpdate, EventOut, MessageResponse,
    RegistrationDetail, TokenData, UserOut,
)
from gowra.db.session import get_session
from gowra.db.models import RoleEnum
from gowra.services.admin_service import AdminService
from gowra.auth import role_required
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

router = APIRouter(prefix="/admin", tags=["admin"])

def get_admin_service(session: AsyncSession = Depends(get_session)) -> AdminService:
    return AdminService(session)

@router.get("/stats", response_model=AdminStats)
async def get_stats(
    user: TokenData = Depends(role_required(RoleEnum.admin)),
    admin_service: AdminService = Depends(get_admin_service)
):
    """Site totals; revenue counts paid registrations only."""
    return await admin_service.stats()

@router.get("/users", response_model=List[UserOut])
async def get_users(
    user: TokenData = Depends(role_required(RoleEnum.admin)),
    admin_service: AdminService = Depends(get_admin_service)
):
    return await admin_service.list_users()

@router.get("/events", response_model=List[AdminEventOut])
async def get_all_events(
    user: TokenData = Depends(role_required(RoleEnum.admin)),
    admin_service: AdminService = Depends(get_admin_service)
):
    """Every event in any status, with its registration count."""
    return await admin_service.list_events()

@router.get("/registrations", response_model=List[RegistrationDetail])
async def get_all_registrations(
    user: TokenData = Depends(role_required(RoleEnum.admin)),
    admin_service: AdminService = Depends(get_admin_service)
):
    return await admin_service.list_registrations()

@router.post("/events", response_model=EventOut, status_code=201)
async def create_event_as_admin(
    payload: EventCreate,
    user: TokenData = Depends(role_required(RoleEnum.admin)),
    admin_service: AdminService = Depends(get_admin_service)
):
    return await admin_service.create_event(payload, user.id)

@router.put("/events/{event_id}", response_model=EventOut)
async def update_event_as_admin(
    event_id: UUID,
    payload: EventUpdate,
    user: TokenData = Depends(role_required(RoleEnum.admin)),
    admin_service: AdminService = Depends(get_admin_service)
):
    return await admin_service.update_event(event_id, payload)

@router.delete("/events/{event_id}", response_model=MessageResponse)
async def delete_event_as_admin(
    event_id: UUID,
    user: TokenData = Depends(role_required(RoleEnum.admin)),
    admin_service: AdminService = Depends(get_admin_service)
):
    await admin_service.delete_event(event_id)
    return MessageResponse(message="Event deleted successfully")
