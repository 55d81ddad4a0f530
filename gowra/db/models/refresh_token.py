from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid, func, Index
import uuid
from gowra.db.session import Base


class RefreshToken(Base):
    """A persisted refresh session. The plaintext token is never stored."""

    __tablename__ = "refresh_tokens"
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token_hash = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('idx_refresh_token_user', 'user_id'),
        Index('idx_refresh_token_expires', 'expires_at'),
    )
