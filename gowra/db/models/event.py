from sqlalchemy import Column, Integer, Numeric, String, Text, DateTime, ForeignKey, Uuid, func, Enum, Index
import uuid
from gowra.db.session import Base
import enum


class EventStatusEnum(str, enum.Enum):
    draft = "draft"
    published = "published"
    cancelled = "cancelled"
    completed = "completed"


class Event(Base):
    __tablename__ = "events"
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    details = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), nullable=False)
    venue = Column(String(255), nullable=False)
    image_url = Column(String(500), nullable=True)
    status = Column(Enum(EventStatusEnum), default=EventStatusEnum.published, nullable=False)
    price = Column(Numeric(10, 2), default=0, nullable=False)
    capacity = Column(Integer, nullable=True)
    registration_deadline = Column(DateTime(timezone=True), nullable=True)
    organizer_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('idx_event_date', 'date'),
        Index('idx_event_organizer', 'organizer_id'),
        Index('idx_event_status', 'status'),
        Index('idx_event_created_at', 'created_at'),
    )
