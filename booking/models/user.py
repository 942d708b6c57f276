"""User account and session model definitions."""

from sqlalchemy import JSON, Column, ForeignKey, String

from booking.database import Base, UTCDateTime, utcnow


class User(Base):
    """Represents a registered account."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    user_metadata = Column(JSON, default=dict)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)


class AuthSession(Base):
    """A login session; its id is embedded in the session token."""
    __tablename__ = "auth_sessions"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    revoked_at = Column(UTCDateTime, nullable=True)
