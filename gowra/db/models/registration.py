from sqlalchemy import Column, Numeric, String, DateTime, ForeignKey, Uuid, func, Enum, Index, UniqueConstraint
import uuid
from gowra.db.session import Base
import enum


class PaymentStatusEnum(str, enum.Enum):
    pending = "pending"
    paid = "paid"
    failed = "failed"
    refunded = "refunded"


class Registration(Base):
    __tablename__ = "registrations"
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    event_id = Column(Uuid(as_uuid=True), ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    payment_status = Column(Enum(PaymentStatusEnum), default=PaymentStatusEnum.pending, nullable=False)
    payment_reference = Column(String(255), nullable=True)
    payment_amount = Column(Numeric(10, 2), nullable=False)
    registration_date = Column(DateTime(timezone=True), server_default=func.now())

    # One registration per user per event
    __table_args__ = (
        UniqueConstraint('user_id', 'event_id', name='uq_user_event_registration'),
        Index('idx_registration_user', 'user_id'),
        Index('idx_registration_event', 'event_id'),
    )
