"""Row storage for appointments.

Every method opens its own session and returns detached ``AppointmentRecord``
values, so callers never hold a database session between operations.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from booking.errors import SlotAlreadyBooked, StoreError
from booking.models.appointment import BOOKED_STATUS, Appointment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppointmentRecord:
    id: str
    user_id: str
    type: str
    starts_at: datetime
    status: str
    created_at: datetime


def to_record(appointment: Appointment) -> AppointmentRecord:
    return AppointmentRecord(
        id=appointment.id,
        user_id=appointment.user_id,
        type=appointment.type,
        starts_at=appointment.starts_at,
        status=appointment.status,
        created_at=appointment.created_at,
    )


class AppointmentStore:

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def insert(self, user_id: str, appointment_type: str, starts_at: datetime) -> AppointmentRecord:
        """Insert a booked appointment.

        Raises ``SlotAlreadyBooked`` when another booked appointment already
        holds ``starts_at``; the unique index decides, not a prior read.
        """
        db = self._session_factory()
        try:
            appointment = Appointment(
                id=str(uuid.uuid4()),
                user_id=user_id,
                type=appointment_type,
                starts_at=starts_at,
                status=BOOKED_STATUS,
            )
            db.add(appointment)
            db.commit()
            db.refresh(appointment)
            return to_record(appointment)
        except IntegrityError as exc:
            db.rollback()
            raise SlotAlreadyBooked() from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception('Could not create appointment.')
            raise StoreError('Could not create appointment.') from exc
        finally:
            db.close()

    def find_by_id(self, appointment_id: str) -> AppointmentRecord | None:
        db = self._session_factory()
        try:
            appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
            return to_record(appointment) if appointment else None
        except SQLAlchemyError as exc:
            logger.exception('Could not load appointment %s.', appointment_id)
            raise StoreError('Could not load appointment.') from exc
        finally:
            db.close()

    def find_by_owner_from_now(self, user_id: str, now: datetime) -> list[AppointmentRecord]:
        db = self._session_factory()
        try:
            appointments = db.query(Appointment).filter(
                Appointment.user_id == user_id,
                Appointment.starts_at >= now,
            ).order_by(Appointment.starts_at.asc()).all()
            return [to_record(appointment) for appointment in appointments]
        except SQLAlchemyError as exc:
            logger.exception('Could not load appointments for user %s.', user_id)
            raise StoreError('Could not load appointments.') from exc
        finally:
            db.close()

    def find_by_exact_start(self, starts_at: datetime, status: str) -> AppointmentRecord | None:
        db = self._session_factory()
        try:
            appointment = db.query(Appointment).filter(
                Appointment.starts_at == starts_at,
                Appointment.status == status,
            ).first()
            return to_record(appointment) if appointment else None
        except SQLAlchemyError as exc:
            logger.exception('Could not check availability.')
            raise StoreError('Could not check availability.') from exc
        finally:
            db.close()

    def find_in_range(self, start: datetime, end: datetime) -> list[AppointmentRecord]:
        """All appointments with ``start <= starts_at <= end``, earliest first."""
        db = self._session_factory()
        try:
            appointments = db.query(Appointment).filter(
                Appointment.starts_at >= start,
                Appointment.starts_at <= end,
            ).order_by(Appointment.starts_at.asc()).all()
            return [to_record(appointment) for appointment in appointments]
        except SQLAlchemyError as exc:
            logger.exception('Could not load appointments in range.')
            raise StoreError('Could not load appointments.') from exc
        finally:
            db.close()

    def update_status(self, appointment_id: str, status: str) -> AppointmentRecord | None:
        db = self._session_factory()
        try:
            appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
            if appointment is None:
                return None

            appointment.status = status
            db.commit()
            db.refresh(appointment)
            return to_record(appointment)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception('Could not update appointment %s.', appointment_id)
            raise StoreError('Could not update appointment.') from exc
        finally:
            db.close()

    def delete(self, appointment_id: str) -> bool:
        db = self._session_factory()
        try:
            deleted = db.query(Appointment).filter(Appointment.id == appointment_id).delete(
                synchronize_session=False,
            )
            db.commit()
            return deleted > 0
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception('Could not delete appointment %s.', appointment_id)
            raise StoreError('Could not delete appointment.') from exc
        finally:
            db.close()
