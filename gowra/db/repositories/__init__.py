"""
Repository layer for database operations.

Async functions for User, RefreshToken, Event and Registration rows. Each
write is a single-row transaction committed here. Public event reads are
cached in Redis and invalidated on every write that changes them.
"""
from sqlalchemy import select, delete, func, or_, case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from gowra.db.models import (
    User, RoleEnum, RefreshToken, Event, EventStatusEnum, Registration, PaymentStatusEnum,
)
from gowra.schemas import RegisterRequest, UpgradeRequest, EventCreate, EventUpdate
from typing import Optional, List
from gowra.cache.cache_decorators import cached, cache_key_for
from gowra.cache.redis_client import cache
from gowra.core.errors import ConflictError
from gowra.core.security import hash_password
from datetime import datetime, timezone
import uuid


def _now() -> datetime:
    return datetime.now(timezone.utc)


# --- users ----------------------------------------------------------------

async def create_user(db: AsyncSession, user_in: RegisterRequest) -> User:
    """
    Create a new regular user with a hashed password.

    Raises:
        ConflictError: If the email is already taken (including a concurrent
            insert that lost the race on the unique index)
    """
    user = User(
        email=user_in.email,
        hashed_password=hash_password(user_in.password),
        name=user_in.name,
        role=RoleEnum.regular,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Email already exists")
    await db.refresh(user)
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    q = select(User).where(User.email == email)
    res = await db.execute(q)
    return res.scalars().first()


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
    q = select(User).where(User.id == user_id)
    res = await db.execute(q)
    return res.scalars().first()


async def upgrade_user_to_organizer(db: AsyncSession, user: User, profile: UpgradeRequest) -> User:
    """
    Set the organizer role and overwrite the organizer profile.

    Repeating the upgrade keeps the role and the original ``organizer_since``
    and only replaces the profile fields. Admins keep their role.
    """
    if user.role == RoleEnum.regular:
        user.role = RoleEnum.organizer
        user.organizer_since = _now()
    user.organization_name = profile.organization_name.strip()
    user.organization_type = profile.organization_type
    user.event_types = list(profile.event_types)
    user.organization_description = profile.organization_description
    user.organization_website = profile.organization_website
    user.updated_at = _now()
    await db.commit()
    await db.refresh(user)
    return user


async def update_user_name(db: AsyncSession, user: User, name: Optional[str]) -> User:
    if name:
        user.name = name
    user.updated_at = _now()
    await db.commit()
    await db.refresh(user)
    return user


async def promote_to_admin(db: AsyncSession, user: User) -> User:
    user.role = RoleEnum.admin
    user.updated_at = _now()
    await db.commit()
    await db.refresh(user)
    return user


async def create_admin_user(db: AsyncSession, email: str, password: str) -> User:
    user = User(email=email, hashed_password=hash_password(password), name="Admin", role=RoleEnum.admin)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def list_users(db: AsyncSession) -> List[User]:
    q = select(User).order_by(User.created_at.desc())
    res = await db.execute(q)
    return list(res.scalars().all())


async def count_users(db: AsyncSession) -> int:
    res = await db.execute(select(func.count(User.id)))
    return res.scalar() or 0


# --- refresh tokens -------------------------------------------------------

async def create_refresh_token(
    db: AsyncSession, user_id: uuid.UUID, token_hash: str, expires_at: datetime
) -> RefreshToken:
    row = RefreshToken(user_id=user_id, token_hash=token_hash, expires_at=expires_at)
    db.add(row)
    await db.commit()
    await db.refresh(row)
    return row


async def get_active_refresh_token(db: AsyncSession, token_hash: str) -> Optional[RefreshToken]:
    """Return the stored refresh token with this hash unless it has expired."""
    q = select(RefreshToken).where(
        RefreshToken.token_hash == token_hash,
        RefreshToken.expires_at > _now(),
    )
    res = await db.execute(q)
    return res.scalars().first()


async def delete_refresh_token(db: AsyncSession, token_hash: str) -> int:
    """Revoke one refresh token. Other sessions of the same user survive."""
    res = await db.execute(delete(RefreshToken).where(RefreshToken.token_hash == token_hash))
    await db.commit()
    return res.rowcount or 0


# --- events ---------------------------------------------------------------

# Columns an update may explicitly set back to NULL
_CLEARABLE_EVENT_FIELDS = {"details", "image_url", "capacity", "registration_deadline"}


def _event_to_dict(ev: Event, registration_count: int) -> dict:
    available_spots = None
    if ev.capacity:
        available_spots = max(0, ev.capacity - registration_count)
    return {
        'id': str(ev.id),
        'name': ev.name,
        'details': ev.details,
        'date': ev.date.isoformat(),
        'venue': ev.venue,
        'image_url': ev.image_url,
        'status': ev.status.value,
        'price': float(ev.price),
        'capacity': ev.capacity,
        'registration_deadline': ev.registration_deadline.isoformat() if ev.registration_deadline else None,
        'organizer_id': str(ev.organizer_id),
        'created_at': ev.created_at.isoformat() if ev.created_at else None,
        'available_spots': available_spots,
    }


async def _invalidate_event_cache(event_id: Optional[uuid.UUID] = None) -> None:
    await cache.delete_pattern("events:list:*")
    await cache.delete_pattern("events:count:*")
    if event_id is not None:
        await cache.delete(cache_key_for("events:detail", event_id))


async def create_event(db: AsyncSession, payload: EventCreate, organizer_id: uuid.UUID) -> Event:
    data = payload.model_dump()
    data["status"] = EventStatusEnum(data["status"].value)
    ev = Event(**data, organizer_id=organizer_id)
    db.add(ev)
    await db.commit()
    await db.refresh(ev)
    await _invalidate_event_cache()
    return ev


async def get_event_model(db: AsyncSession, event_id: uuid.UUID) -> Optional[Event]:
    """Uncached lookup for code paths that need the ORM row."""
    q = select(Event).where(Event.id == event_id)
    res = await db.execute(q)
    return res.scalars().first()


async def update_event(db: AsyncSession, ev: Event, payload: EventUpdate) -> Event:
    changes = {
        field: value
        for field, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or field in _CLEARABLE_EVENT_FIELDS
    }
    if "status" in changes:
        changes["status"] = EventStatusEnum(changes["status"].value)
    for field, value in changes.items():
        setattr(ev, field, value)
    ev.updated_at = _now()
    await db.commit()
    await db.refresh(ev)
    await _invalidate_event_cache(ev.id)
    return ev


async def delete_event(db: AsyncSession, ev: Event) -> None:
    """Delete an event together with its registrations."""
    event_id = ev.id
    await db.execute(delete(Registration).where(Registration.event_id == event_id))
    await db.delete(ev)
    await db.commit()
    await _invalidate_event_cache(event_id)


def _published_events_query(q, search: Optional[str]):
    q = q.where(Event.status == EventStatusEnum.published)
    if search:
        pattern = f"%{search}%"
        q = q.where(or_(Event.name.ilike(pattern), Event.venue.ilike(pattern)))
    return q


def _events_with_registration_counts():
    """``(Event, registration_count)`` rows in one grouped query."""
    counts = (
        select(Registration.event_id, func.count(Registration.id).label("registration_count"))
        .group_by(Registration.event_id)
        .subquery()
    )
    return (
        select(Event, func.coalesce(counts.c.registration_count, 0))
        .outerjoin(counts, counts.c.event_id == Event.id)
    )


@cached('events:list', expire=300)
async def list_events(
    db: AsyncSession,
    limit: int = 20,
    offset: int = 0,
    search: Optional[str] = None,
) -> List[dict]:
    """Published events, soonest first, as cacheable dicts."""
    q = _published_events_query(_events_with_registration_counts(), search)
    q = q.order_by(Event.date.asc()).limit(limit).offset(offset)
    res = await db.execute(q)
    return [_event_to_dict(ev, count) for ev, count in res.all()]


@cached('events:count', expire=300)
async def count_events(db: AsyncSession, search: Optional[str] = None) -> int:
    q = _published_events_query(select(func.count(Event.id)), search)
    res = await db.execute(q)
    return res.scalar() or 0


@cached('events:detail', expire=300)
async def get_event(db: AsyncSession, event_id: uuid.UUID) -> Optional[dict]:
    ev = await get_event_model(db, event_id)
    if ev is None:
        return None
    return _event_to_dict(ev, await count_registrations_for_event(db, ev.id))


async def list_events_by_organizer(db: AsyncSession, organizer_id: uuid.UUID) -> List[Event]:
    q = select(Event).where(Event.organizer_id == organizer_id).order_by(Event.created_at.desc())
    res = await db.execute(q)
    return list(res.scalars().all())


async def list_all_events_with_counts(db: AsyncSession) -> List[dict]:
    """Every event in any status, newest first, with its registration count."""
    q = _events_with_registration_counts().order_by(Event.created_at.desc())
    res = await db.execute(q)
    return [
        {**_event_to_dict(ev, count), 'registration_count': count}
        for ev, count in res.all()
    ]


async def count_all_events(db: AsyncSession) -> int:
    res = await db.execute(select(func.count(Event.id)))
    return res.scalar() or 0


# --- registrations --------------------------------------------------------

async def count_registrations_for_event(db: AsyncSession, event_id: uuid.UUID) -> int:
    q = select(func.count(Registration.id)).where(Registration.event_id == event_id)
    res = await db.execute(q)
    return res.scalar() or 0


async def count_registrations_for_events(db: AsyncSession, event_ids: List[uuid.UUID]) -> int:
    if not event_ids:
        return 0
    q = select(func.count(Registration.id)).where(Registration.event_id.in_(event_ids))
    res = await db.execute(q)
    return res.scalar() or 0


async def get_user_registration_for_event(
    db: AsyncSession, user_id: uuid.UUID, event_id: uuid.UUID
) -> Optional[Registration]:
    q = select(Registration).where(
        Registration.user_id == user_id,
        Registration.event_id == event_id,
    )
    res = await db.execute(q)
    return res.scalars().first()


async def create_registration(db: AsyncSession, user_id: uuid.UUID, ev: Event) -> Registration:
    """
    Insert a pending registration priced at the event's current price.

    Raises:
        ConflictError: If the user already holds a registration for the event
    """
    reference = f"REG_{int(_now().timestamp() * 1000)}_{user_id.hex[-6:]}"
    r = Registration(
        user_id=user_id,
        event_id=ev.id,
        payment_status=PaymentStatusEnum.pending,
        payment_reference=reference,
        payment_amount=ev.price,
    )
    db.add(r)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("You are already registered for this event")
    await db.refresh(r)
    await _invalidate_event_cache(ev.id)
    return r


async def get_registration(db: AsyncSession, registration_id: uuid.UUID) -> Optional[Registration]:
    q = select(Registration).where(Registration.id == registration_id)
    res = await db.execute(q)
    return res.scalars().first()


async def list_registrations_for_user(db: AsyncSession, user_id: uuid.UUID) -> List[Registration]:
    q = (
        select(Registration)
        .where(Registration.user_id == user_id)
        .order_by(Registration.registration_date.desc())
    )
    res = await db.execute(q)
    return list(res.scalars().all())


async def delete_registration(db: AsyncSession, registration: Registration) -> None:
    event_id = registration.event_id
    await db.delete(registration)
    await db.commit()
    await _invalidate_event_cache(event_id)


async def update_registration_status(
    db: AsyncSession, registration: Registration, status: PaymentStatusEnum
) -> Registration:
    registration.payment_status = status
    await db.commit()
    await db.refresh(registration)
    return registration


def _registration_details_query():
    return (
        select(
            Registration, Event.name, Event.date, Event.venue, Event.image_url,
            User.email, User.name,
        )
        .join(Event, Registration.event_id == Event.id)
        .join(User, Registration.user_id == User.id)
    )


def _registration_detail_to_dict(row) -> dict:
    r, event_name, event_date, event_venue, event_image_url, user_email, user_name = row
    return {
        'id': r.id,
        'user_id': r.user_id,
        'event_id': r.event_id,
        'payment_status': r.payment_status.value,
        'payment_reference': r.payment_reference,
        'payment_amount': r.payment_amount,
        'registration_date': r.registration_date,
        'event_name': event_name,
        'event_date': event_date,
        'event_venue': event_venue,
        'event_image_url': event_image_url,
        'user_email': user_email,
        'user_name': user_name,
    }


async def get_registration_detail(db: AsyncSession, registration_id: uuid.UUID) -> Optional[dict]:
    """A registration joined with its event and attendee."""
    q = _registration_details_query().where(Registration.id == registration_id)
    res = await db.execute(q)
    row = res.first()
    return _registration_detail_to_dict(row) if row else None


async def list_registration_details(
    db: AsyncSession,
    event_id: Optional[uuid.UUID] = None,
    limit: Optional[int] = None,
) -> List[dict]:
    """Joined registrations, newest first, optionally for one event."""
    q = _registration_details_query()
    if event_id is not None:
        q = q.where(Registration.event_id == event_id)
    q = q.order_by(Registration.registration_date.desc())
    if limit is not None:
        q = q.limit(limit)
    res = await db.execute(q)
    return [_registration_detail_to_dict(row) for row in res.all()]


def _paid_amount():
    return case(
        (Registration.payment_status == PaymentStatusEnum.paid, Registration.payment_amount),
        else_=0,
    )


def _status_count(status: PaymentStatusEnum):
    return func.count(case((Registration.payment_status == status, 1)))


async def registration_overview(db: AsyncSession) -> dict:
    """Registration counts per payment status and revenue from paid ones."""
    q = select(
        func.count(Registration.id),
        _status_count(PaymentStatusEnum.paid),
        _status_count(PaymentStatusEnum.pending),
        _status_count(PaymentStatusEnum.failed),
        func.coalesce(func.sum(_paid_amount()), 0),
    )
    total, paid, pending, failed, revenue = (await db.execute(q)).one()
    return {
        'total_registrations': total or 0,
        'paid_registrations': paid or 0,
        'pending_registrations': pending or 0,
        'failed_registrations': failed or 0,
        'total_revenue': float(revenue or 0),
    }


async def top_events_by_registrations(db: AsyncSession, limit: int = 10) -> List[dict]:
    registration_count = func.count(Registration.id).label("registration_count")
    q = (
        select(Event.id, Event.name, registration_count, func.coalesce(func.sum(_paid_amount()), 0))
        .select_from(Registration)
        .join(Event, Registration.event_id == Event.id)
        .group_by(Event.id, Event.name)
        .order_by(registration_count.desc())
        .limit(limit)
    )
    res = await db.execute(q)
    return [
        {
            'event_id': event_id,
            'event_name': name,
            'registration_count': count,
            'event_revenue': float(revenue or 0),
        }
        for event_id, name, count, revenue in res.all()
    ]
