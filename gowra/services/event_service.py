import uuid
from sqlalchemy.ext.asyncio import AsyncSession
from gowra.schemas import (
    EventCreate, EventUpdate, DashboardAnalytics, EventAnalytics, RegistrationBreakdown, RecentRegistration,
)
from gowra.db.models import Event, EventStatusEnum, PaymentStatusEnum
from gowra.db.repositories import (
    create_event as db_create_event,
    get_event as db_get_event,
    get_event_model as db_get_event_model,
    list_events as db_list_events,
    count_events as db_count_events,
    list_events_by_organizer as db_list_events_by_organizer,
    update_event as db_update_event,
    delete_event as db_delete_event,
    count_registrations_for_events as db_count_registrations_for_events,
    list_registration_details as db_list_registration_details,
)
from gowra.core.errors import AuthorizationError, NotFoundError
from gowra.core.logging import logger
from typing import List, Optional, Tuple


class EventService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_event(self, payload: EventCreate, organizer_id: uuid.UUID) -> Event:
        event = await db_create_event(self.session, payload, organizer_id)
        logger.info(f"Event {event.id} created by organizer {organizer_id}")
        return event

    async def get_event(self, event_id: uuid.UUID) -> dict:
        event = await db_get_event(self.session, event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return event

    async def list_events_paginated(
        self, skip: int, limit: int, search: Optional[str]
    ) -> Tuple[int, List[dict]]:
        """
        Published events for the public listing.
        Returns tuple of (total_count, events).
        """
        total = await db_count_events(self.session, search=search)
        events = await db_list_events(self.session, limit=limit, offset=skip, search=search)
        return total, events

    async def list_my_events(self, organizer_id: uuid.UUID) -> List[Event]:
        return await db_list_events_by_organizer(self.session, organizer_id)

    async def dashboard_analytics(self, organizer_id: uuid.UUID) -> DashboardAnalytics:
        events = await db_list_events_by_organizer(self.session, organizer_id)
        attendees = await db_count_registrations_for_events(self.session, [e.id for e in events])

        total_capacity = sum(e.capacity or 0 for e in events)
        avg_attendance = round(attendees / total_capacity * 100) if total_capacity else 0

        return DashboardAnalytics(
            total_events=len(events),
            total_attendees=attendees,
            avg_attendance=avg_attendance,
            active_events=sum(1 for e in events if e.status == EventStatusEnum.published),
        )

    async def event_analytics(self, event_id: uuid.UUID, organizer_id: uuid.UUID) -> EventAnalytics:
        """
        Registration figures for one of the organizer's events.

        Paid registrations count as confirmed; failed and refunded ones
        count as cancelled.
        """
        event = await self._owned_event(event_id, organizer_id, "view analytics for")
        registrations = await db_list_registration_details(self.session, event_id=event.id)

        total = len(registrations)
        statuses = [r["payment_status"] for r in registrations]
        utilization = round(total / event.capacity * 100) if event.capacity else 0

        return EventAnalytics(
            total_registrations=total,
            capacity_utilization=utilization,
            registration_breakdown=RegistrationBreakdown(
                confirmed=statuses.count(PaymentStatusEnum.paid.value),
                pending=statuses.count(PaymentStatusEnum.pending.value),
                cancelled=statuses.count(PaymentStatusEnum.failed.value)
                + statuses.count(PaymentStatusEnum.refunded.value),
            ),
            recent_registrations=[
                RecentRegistration(
                    id=r["id"],
                    attendee_name=r["user_name"] or "Unknown",
                    email=r["user_email"],
                    status=r["payment_status"],
                    registered_at=r["registration_date"],
                )
                for r in registrations[:10]
            ],
        )

    async def update_event(self, event_id: uuid.UUID, payload: EventUpdate, organizer_id: uuid.UUID) -> Event:
        event = await self._owned_event(event_id, organizer_id, "edit")
        return await db_update_event(self.session, event, payload)

    async def delete_event(self, event_id: uuid.UUID, organizer_id: uuid.UUID) -> None:
        event = await self._owned_event(event_id, organizer_id, "delete")
        await db_delete_event(self.session, event)
        logger.info(f"Event {event_id} deleted by organizer {organizer_id}")

    async def _owned_event(self, event_id: uuid.UUID, organizer_id: uuid.UUID, action: str) -> Event:
        event = await db_get_event_model(self.session, event_id)
        if event is None:
            raise NotFoundError("Event not found")
        if event.organizer_id != organizer_id:
            raise AuthorizationError(f"You can only {action} your own events")
        return event
