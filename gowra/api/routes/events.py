from fastapi import APIRouter, Depends, Query
from gowra.schemas import (
    EventCreate, EventUpdate, EventOut, DashboardAnalytics, EventAnalytics, MessageResponse,
    PaginatedResponse, PaginationMetadata, TokenData,
)
from gowra.db.session import get_session
from gowra.db.models import RoleEnum
from gowra.services.event_service import EventService
from gowra.auth import role_required
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

router = APIRouter(prefix="/events", tags=["events"])

def get_event_service(session: AsyncSession = Depends(get_session)) -> EventService:
    return EventService(session)

@router.post("/", response_model=EventOut, status_code=201)
async def create_event_endpoint(
    payload: EventCreate,
    user: TokenData = Depends(role_required(RoleEnum.organizer)),
    event_service: EventService = Depends(get_event_service)
):
    ev = await event_service.create_event(payload, user.id)
    return ev

@router.get("/", response_model=PaginatedResponse[EventOut])
async def get_events(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    per_page: int = Query(20, ge=1, le=100, description="Number of items per page"),
    search: Optional[str] = Query(None, description="Search in event name and venue"),
    event_service: EventService = Depends(get_event_service)
):
    """
    List published events with pagination and search support.
    - page: Page number, 1-indexed (default: 1)
    - per_page: Number of items per page (default: 20, max: 100)
    - search: Case-insensitive match on event name or venue
    """
    skip = (page - 1) * per_page

    total_count, events = await event_service.list_events_paginated(
        skip=skip,
        limit=per_page,
        search=search,
    )

    total_pages = (total_count + per_page - 1) // per_page  # Ceiling division

    return PaginatedResponse(
        items=events,
        pagination=PaginationMetadata(
            total=total_count,
            page=page,
            per_page=per_page,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1
        )
    )

# Fixed paths must be declared before /{event_id}
@router.get("/my-events", response_model=List[EventOut])
async def get_my_events(
    user: TokenData = Depends(role_required(RoleEnum.organizer)),
    event_service: EventService = Depends(get_event_service)
):
    """Every event the calling organizer created, drafts included."""
    return await event_service.list_my_events(user.id)

@router.get("/dashboard-analytics", response_model=DashboardAnalytics)
async def get_dashboard_analytics(
    user: TokenData = Depends(role_required(RoleEnum.organizer)),
    event_service: EventService = Depends(get_event_service)
):
    return await event_service.dashboard_analytics(user.id)

@router.get("/{event_id}", response_model=EventOut)
async def get_event_detail(
    event_id: UUID,
    event_service: EventService = Depends(get_event_service)
):
    return await event_service.get_event(event_id)

@router.put("/{event_id}", response_model=EventOut)
async def update_event_endpoint(
    event_id: UUID,
    payload: EventUpdate,
    user: TokenData = Depends(role_required(RoleEnum.organizer)),
    event_service: EventService = Depends(get_event_service)
):
    return await event_service.update_event(event_id, payload, user.id)

@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event_endpoint(
    event_id: UUID,
    user: TokenData = Depends(role_required(RoleEnum.organizer)),
    event_service: EventService = Depends(get_event_service)
):
    await event_service.delete_event(event_id, user.id)
    return MessageResponse(message="Event deleted successfully")

@router.get("/{event_id}/analytics", response_model=EventAnalytics)
async def get_event_analytics(
    event_id: UUID,
    user: TokenData = Depends(role_required(RoleEnum.organizer)),
    event_service: EventService = Depends(get_event_service)
):
    """Registration breakdown for one of the caller's own events."""
    return await event_service.event_analytics(event_id, user.id)
