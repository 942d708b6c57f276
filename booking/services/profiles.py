import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from booking.errors import ProfileNotFound, StoreError
from booking.models.profile import Profile

logger = logging.getLogger(__name__)


class ProfileStore:
    """Roles and display names keyed by user id."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_role(self, user_id: str) -> str:
        db = self._session_factory()
        try:
            row = db.query(Profile.role).filter(Profile.id == user_id).first()
        except SQLAlchemyError as exc:
            logger.exception('Could not load profile for user %s.', user_id)
            raise StoreError('Could not load profile.') from exc
        finally:
            db.close()

        if row is None or not row.role:
            raise ProfileNotFound()
        return row.role

    def create_profile(self, user_id: str, role: str, first_name: str, last_name: str) -> None:
        db = self._session_factory()
        try:
            db.add(Profile(id=user_id, role=role, first_name=first_name, last_name=last_name))
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception('Could not create profile for user %s.', user_id)
            raise StoreError('Profile creation failed.') from exc
        finally:
            db.close()

    def set_role(self, user_id: str, role: str) -> None:
        db = self._session_factory()
        try:
            updated = db.query(Profile).filter(Profile.id == user_id).update(
                {Profile.role: role},
                synchronize_session=False,
            )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception('Could not update role for user %s.', user_id)
            raise StoreError('Could not update role.') from exc
        finally:
            db.close()

        if not updated:
            raise ProfileNotFound()
