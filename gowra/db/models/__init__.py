"""Database models package."""
from gowra.db.models.user import User, RoleEnum, ROLE_RANK
from gowra.db.models.event import Event, EventStatusEnum
from gowra.db.models.registration import Registration, PaymentStatusEnum
from gowra.db.models.refresh_token import RefreshToken

__all__ = [
    "User", "RoleEnum", "ROLE_RANK",
    "Event", "EventStatusEnum",
    "Registration", "PaymentStatusEnum",
    "RefreshToken",
]
