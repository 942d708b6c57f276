"""Profile model definitions."""

from sqlalchemy import Column, ForeignKey, String

from booking.database import Base, UTCDateTime, utcnow

USER_ROLE = 'user'
ADMIN_ROLE = 'admin'


class Profile(Base):
    """Holds the role and display name of an account."""
    __tablename__ = "profiles"

    id = Column(String(36), ForeignKey("users.id"), primary_key=True)
    role = Column(String, nullable=False, default=USER_ROLE)  # user/admin
    first_name = Column(String)
    last_name = Column(String)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
