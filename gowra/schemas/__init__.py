from pydantic import AfterValidator, BaseModel, EmailStr, Field, field_validator
from typing import Annotated, Generic, List, Optional, TypeVar
from uuid import UUID
from datetime import datetime, timezone
from enum import Enum

T = TypeVar("T")


class Role(str, Enum):
    regular = "regular"
    organizer = "organizer"
    admin = "admin"


class EventStatus(str, Enum):
    draft = "draft"
    published = "published"
    cancelled = "cancelled"
    completed = "completed"


class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    failed = "failed"
    refunded = "refunded"


def _utc(value: datetime) -> datetime:
    """Naive datetimes from clients are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UTCDatetime = Annotated[datetime, AfterValidator(_utc)]


# --- auth -----------------------------------------------------------------

class TokenData(BaseModel):
    """Identity carried by a verified access token."""
    id: UUID
    email: str
    role: Role


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    name: Optional[str] = None


class LoginRequest(BaseModel):
    """Schema for user login request."""
    email: EmailStr
    password: str


class RefreshTokenRequest(BaseModel):
    """Request carrying an opaque refresh token."""
    refresh_token: str = Field(alias="refreshToken")

    class Config:
        populate_by_name = True


class UpgradeRequest(BaseModel):
    # organization_name is checked by the service so a missing name is a 400
    organization_name: Optional[str] = None
    organization_type: Optional[str] = None
    event_types: List[str] = []
    organization_description: Optional[str] = None
    organization_website: Optional[str] = None

    @field_validator("event_types", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return value or []


class ProfileUpdate(BaseModel):
    name: Optional[str] = None


class UserOut(BaseModel):
    id: UUID
    email: EmailStr
    name: Optional[str] = None
    role: Role
    organization_name: Optional[str] = None
    organization_type: Optional[str] = None
    event_types: List[str] = []
    organization_description: Optional[str] = None
    organization_website: Optional[str] = None
    organizer_since: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("event_types", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return value or []

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    """Returned by register and login."""
    success: bool = True
    user: UserOut
    token: str
    refresh_token: str = Field(alias="refreshToken")

    class Config:
        populate_by_name = True


class RefreshResponse(BaseModel):
    success: bool = True
    token: str
    user: UserOut
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")

    class Config:
        populate_by_name = True


class UpgradeResponse(BaseModel):
    success: bool = True
    message: str = "Successfully upgraded to organizer"
    user: UserOut
    token: str


class UserResponse(BaseModel):
    success: bool = True
    user: UserOut


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# --- events ---------------------------------------------------------------

class EventCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    details: Optional[str] = None
    date: UTCDatetime
    venue: str = Field(min_length=1, max_length=255)
    image_url: Optional[str] = None
    status: EventStatus = EventStatus.published
    price: float = Field(default=0, ge=0)
    capacity: Optional[int] = Field(default=None, ge=1)
    registration_deadline: Optional[UTCDatetime] = None


class EventUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    details: Optional[str] = None
    date: Optional[UTCDatetime] = None
    venue: Optional[str] = Field(default=None, min_length=1, max_length=255)
    image_url: Optional[str] = None
    status: Optional[EventStatus] = None
    price: Optional[float] = Field(default=None, ge=0)
    capacity: Optional[int] = Field(default=None, ge=1)
    registration_deadline: Optional[UTCDatetime] = None


class EventOut(BaseModel):
    id: UUID
    name: str
    details: Optional[str] = None
    date: datetime
    venue: str
    image_url: Optional[str] = None
    status: EventStatus
    price: float
    capacity: Optional[int] = None
    registration_deadline: Optional[datetime] = None
    organizer_id: UUID
    created_at: Optional[datetime] = None
    available_spots: Optional[int] = None

    class Config:
        from_attributes = True


class PaginationMetadata(BaseModel):
    total: int
    page: int
    per_page: int
    total_pages: int
    has_next: bool
    has_prev: bool


class PaginatedResponse(BaseModel, Generic[T]):
    items: List[T]
    pagination: PaginationMetadata


class DashboardAnalytics(BaseModel):
    total_events: int
    total_attendees: int
    avg_attendance: int
    active_events: int


# --- registrations --------------------------------------------------------

class RegistrationCreate(BaseModel):
    event_id: UUID = Field(alias="eventId")

    class Config:
        populate_by_name = True


class RegistrationOut(BaseModel):
    id: UUID
    user_id: UUID
    event_id: UUID
    payment_status: PaymentStatus
    payment_reference: Optional[str] = None
    payment_amount: float
    registration_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class RegistrationDetail(RegistrationOut):
    """A registration with the event and attendee it links."""
    event_name: str
    event_date: datetime
    event_venue: str
    event_image_url: Optional[str] = None
    user_email: EmailStr
    user_name: Optional[str] = None


class RegistrationStatusUpdate(BaseModel):
    payment_status: PaymentStatus = Field(alias="paymentStatus")

    class Config:
        populate_by_name = True


class RegistrationOverview(BaseModel):
    total_registrations: int
    paid_registrations: int
    pending_registrations: int
    failed_registrations: int
    total_revenue: float


class EventRegistrationTotals(BaseModel):
    event_id: UUID
    event_name: str
    registration_count: int
    event_revenue: float


class RegistrationStats(BaseModel):
    overview: RegistrationOverview
    top_events: List[EventRegistrationTotals]


# --- per-event analytics --------------------------------------------------

class RegistrationBreakdown(BaseModel):
    confirmed: int
    pending: int
    cancelled: int


class RecentRegistration(BaseModel):
    id: UUID
    attendee_name: str
    email: str
    status: PaymentStatus
    registered_at: Optional[datetime] = None


class EventAnalytics(BaseModel):
    total_registrations: int
    capacity_utilization: int
    registration_breakdown: RegistrationBreakdown
    recent_registrations: List[RecentRegistration]


# --- admin ----------------------------------------------------------------

class AdminStats(BaseModel):
    total_users: int
    total_events: int
    total_registrations: int
    total_revenue: float


class AdminEventOut(EventOut):
    registration_count: int = 0
