import uuid
from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from gowra.db.models import EventStatusEnum, PaymentStatusEnum, Registration
from gowra.db.repositories import (
    get_event_model as db_get_event_model,
    get_user_registration_for_event as db_get_user_registration_for_event,
    count_registrations_for_event as db_count_registrations_for_event,
    create_registration as db_create_registration,
    get_registration as db_get_registration,
    list_registrations_for_user as db_list_registrations_for_user,
    delete_registration as db_delete_registration,
    get_registration_detail as db_get_registration_detail,
    update_registration_status as db_update_registration_status,
    registration_overview as db_registration_overview,
    top_events_by_registrations as db_top_events_by_registrations,
)
from gowra.core.errors import ConflictError, NotFoundError, ValidationError
from gowra.core.logging import logger
from gowra.schemas import (
    PaymentStatus, Role, TokenData,
    RegistrationDetail, RegistrationStats, RegistrationOverview, EventRegistrationTotals,
)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RegistrationService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def register(self, event_id: uuid.UUID, user_id: uuid.UUID) -> Registration:
        """
        Register a user for an event.

        Raises:
            NotFoundError: If the event does not exist
            ValidationError: If the event is not published, has already
                started, or its registration deadline has passed
            ConflictError: If the user is already registered or the event is full
        """
        event = await db_get_event_model(self.session, event_id)
        if event is None:
            raise NotFoundError("Event not found")

        now = datetime.now(timezone.utc)
        if event.status != EventStatusEnum.published:
            raise ValidationError("This event is not currently available for registration")
        if _as_utc(event.date) <= now:
            raise ValidationError("Cannot register for past events")
        deadline = _as_utc(event.registration_deadline)
        if deadline is not None and deadline <= now:
            raise ValidationError("The registration deadline for this event has passed")

        if await db_get_user_registration_for_event(self.session, user_id, event_id):
            raise ConflictError("You are already registered for this event")

        if event.capacity:
            taken = await db_count_registrations_for_event(self.session, event_id)
            if taken >= event.capacity:
                raise ConflictError("This event has reached its maximum capacity")

        registration = await db_create_registration(self.session, user_id, event)
        logger.info(f"Registration {registration.id} created for user {user_id} on event {event_id}")
        return registration

    async def list_for_user(self, user_id: uuid.UUID) -> List[Registration]:
        return await db_list_registrations_for_user(self.session, user_id)

    async def cancel(self, registration_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """
        Cancel one of the user's own registrations.

        Raises:
            NotFoundError: If the registration does not exist or belongs to
                someone else
            ValidationError: If the event has started or the registration
                is already paid
        """
        registration = await db_get_registration(self.session, registration_id)
        if registration is None or registration.user_id != user_id:
            raise NotFoundError("Registration not found")

        event = await db_get_event_model(self.session, registration.event_id)
        if event is not None and _as_utc(event.date) <= datetime.now(timezone.utc):
            raise ValidationError("Cannot cancel registration for past events")
        if registration.payment_status == PaymentStatusEnum.paid:
            raise ValidationError("Paid registrations cannot be cancelled")

        await db_delete_registration(self.session, registration)
        logger.info(f"Registration {registration_id} cancelled by user {user_id}")

    async def get_detail(self, registration_id: uuid.UUID, user: TokenData) -> RegistrationDetail:
        """
        A registration with its event and attendee.

        Admins may read any registration; everyone else only their own.
        Someone else's registration is reported as missing.
        """
        detail = await db_get_registration_detail(self.session, registration_id)
        if detail is None:
            raise NotFoundError("Registration not found")
        if detail["user_id"] != user.id and user.role != Role.admin:
            raise NotFoundError("Registration not found")
        return RegistrationDetail(**detail)

    async def update_status(self, registration_id: uuid.UUID, status: PaymentStatus) -> Registration:
        registration = await db_get_registration(self.session, registration_id)
        if registration is None:
            raise NotFoundError("Registration not found")
        registration = await db_update_registration_status(
            self.session, registration, PaymentStatusEnum(status.value)
        )
        logger.info(f"Registration {registration_id} payment status set to {status.value}")
        return registration

    async def stats_overview(self) -> RegistrationStats:
        overview = await db_registration_overview(self.session)
        top_events = await db_top_events_by_registrations(self.session, limit=10)
        return RegistrationStats(
            overview=RegistrationOverview(**overview),
            top_events=[EventRegistrationTotals(**row) for row in top_events],
        )
