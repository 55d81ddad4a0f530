"""Site-wide administration: totals, listings and event management."""
import uuid
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession
from gowra.schemas import AdminStats, EventCreate, EventUpdate
from gowra.db.models import Event, RoleEnum, User
from gowra.db.repositories import (
    get_user_by_email as db_get_user_by_email,
    create_admin_user as db_create_admin_user,
    promote_to_admin as db_promote_to_admin,
    list_users as db_list_users,
    count_users as db_count_users,
    count_all_events as db_count_all_events,
    list_all_events_with_counts as db_list_all_events_with_counts,
    create_event as db_create_event,
    get_event_model as db_get_event_model,
    update_event as db_update_event,
    delete_event as db_delete_event,
    count_registrations_for_event as db_count_registrations_for_event,
    list_registration_details as db_list_registration_details,
    registration_overview as db_registration_overview,
)
from gowra.core.errors import NotFoundError, ValidationError
from gowra.core.logging import logger


async def ensure_admin_account(session: AsyncSession, email: str, password: str) -> User:
    """
    Make sure an admin account exists for ``email``.

    An existing account is promoted and keeps its password; otherwise a new
    admin is created with ``password``.
    """
    user = await db_get_user_by_email(session, email)
    if user is None:
        user = await db_create_admin_user(session, email, password)
        logger.info(f"Admin account {email} created")
    elif user.role != RoleEnum.admin:
        user = await db_promote_to_admin(session, user)
        logger.info(f"User {user.id} promoted to admin")
    return user


class AdminService:
    """Admin dashboard operations. Callers are checked by the router."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def stats(self) -> AdminStats:
        overview = await db_registration_overview(self.session)
        return AdminStats(
            total_users=await db_count_users(self.session),
            total_events=await db_count_all_events(self.session),
            total_registrations=overview["total_registrations"],
            total_revenue=overview["total_revenue"],
        )

    async def list_users(self) -> List[User]:
        return await db_list_users(self.session)

    async def list_events(self) -> List[dict]:
        return await db_list_all_events_with_counts(self.session)

    async def list_registrations(self) -> List[dict]:
        return await db_list_registration_details(self.session)

    async def create_event(self, payload: EventCreate, admin_id: uuid.UUID) -> Event:
        event = await db_create_event(self.session, payload, admin_id)
        logger.info(f"Event {event.id} created by admin {admin_id}")
        return event

    async def update_event(self, event_id: uuid.UUID, payload: EventUpdate) -> Event:
        event = await db_get_event_model(self.session, event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return await db_update_event(self.session, event, payload)

    async def delete_event(self, event_id: uuid.UUID) -> None:
        """
        Delete an event nobody has registered for.

        Raises:
            NotFoundError: If the event does not exist
            ValidationError: If the event has registrations
        """
        event = await db_get_event_model(self.session, event_id)
        if event is None:
            raise NotFoundError("Event not found")
        if await db_count_registrations_for_event(self.session, event_id):
            raise ValidationError("Cannot delete event with existing registrations")
        await db_delete_event(self.session, event)
        logger.info(f"Event {event_id} deleted by admin")
