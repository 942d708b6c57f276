"""Appointment model definitions."""

from sqlalchemy import Column, Index, String, text

from booking.database import Base, UTCDateTime, utcnow

FREE_INTRO_TYPE = 'free_intro'
SESSION_TYPE = 'session'
APPOINTMENT_TYPES = (FREE_INTRO_TYPE, SESSION_TYPE)

BOOKED_STATUS = 'booked'
CANCELLED_STATUS = 'cancelled'


class Appointment(Base):
    """Represents a booked or cancelled appointment."""
    __tablename__ = "appointments"
    __table_args__ = (
        # At most one booked appointment per start instant.
        Index(
            'uq_appointments_booked_starts_at',
            'starts_at',
            unique=True,
            sqlite_where=text("status = 'booked'"),
            postgresql_where=text("status = 'booked'"),
        ),
        Index('idx_appointments_user_starts_at', 'user_id', 'starts_at'),
    )

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), nullable=False)
    type = Column(String, nullable=False)
    starts_at = Column(UTCDateTime, nullable=False)
    status = Column(String, nullable=False, default=BOOKED_STATUS)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
