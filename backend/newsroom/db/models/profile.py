"""Profile model holding the caller's role."""
import enum
import uuid as uuid_pkg
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Uuid

from newsroom.db.base import Base


class UserRole(str, enum.Enum):
    READER = "reader"
    AUTHOR = "author"
    EDITOR = "editor"
    ADMIN = "admin"


class Profile(Base):
    """User profile. The id matches the `sub` claim of the auth provider's tokens."""

    __tablename__ = "profiles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid_pkg.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.READER.value)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<Profile {self.email} ({self.role})>"
