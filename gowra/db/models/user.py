from sqlalchemy import Column, String, Text, DateTime, JSON, Uuid, func, Enum
import uuid
from gowra.db.session import Base
import enum


class RoleEnum(str, enum.Enum):
    regular = "regular"
    organizer = "organizer"
    # Never reached through the upgrade flow; provisioned from settings
    admin = "admin"


# Higher rank satisfies any lower requirement
ROLE_RANK = {RoleEnum.regular: 0, RoleEnum.organizer: 1, RoleEnum.admin: 2}


class User(Base):
    __tablename__ = "users"
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(Enum(RoleEnum), default=RoleEnum.regular, nullable=False)

    # Organizer profile, filled in by the upgrade flow
    organization_name = Column(String(255), nullable=True)
    organization_type = Column(String(100), nullable=True)
    event_types = Column(JSON, nullable=True)
    organization_description = Column(Text, nullable=True)
    organization_website = Column(String(255), nullable=True)
    organizer_since = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
