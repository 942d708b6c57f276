"""Account and session management backed by the ``users`` and ``auth_sessions`` tables."""

import logging
import uuid
from dataclasses import dataclass

import jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from booking.auth import jwt_handler
from booking.database import utcnow
from booking.errors import AccountError, InvalidCredentials, InvalidToken, StoreError
from booking.models.user import AuthSession, User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

MIN_PASSWORD_LENGTH = 8


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str


@dataclass(frozen=True)
class SignIn:
    user_id: str
    email: str
    token: str


def normalize_email(email: str) -> str:
    return email.strip().lower()


class IdentityService:
    """Creates accounts, issues session tokens and resolves them back to identities."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def create_account(self, email: str, password: str, metadata: dict | None = None) -> str:
        normalized_email = normalize_email(email)
        if '@' not in normalized_email:
            raise AccountError('A valid email address is required.')
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AccountError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters.')

        db = self._session_factory()
        try:
            existing = db.query(User.id).filter(User.email == normalized_email).first()
            if existing:
                raise AccountError('User already registered.')

            user = User(
                id=str(uuid.uuid4()),
                email=normalized_email,
                hashed_password=pwd_context.hash(password),
                user_metadata=metadata or {},
            )
            db.add(user)
            db.commit()
            return user.id
        except IntegrityError as exc:
            db.rollback()
            raise AccountError('User already registered.') from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception('Could not create account.')
            raise StoreError('Could not create account.') from exc
        finally:
            db.close()

    def get_user_id_by_email(self, email: str) -> str | None:
        db = self._session_factory()
        try:
            row = db.query(User.id).filter(User.email == normalize_email(email)).first()
            return row.id if row else None
        except SQLAlchemyError as exc:
            logger.exception('Could not look up account.')
            raise StoreError('Could not look up account.') from exc
        finally:
            db.close()

    def delete_account(self, user_id: str) -> None:
        db = self._session_factory()
        try:
            db.query(AuthSession).filter(AuthSession.user_id == user_id).delete(synchronize_session=False)
            db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception('Could not delete account %s.', user_id)
            raise StoreError('Could not delete account.') from exc
        finally:
            db.close()

    def sign_in_with_password(self, email: str, password: str) -> SignIn:
        db = self._session_factory()
        try:
            user = db.query(User).filter(User.email == normalize_email(email)).first()
            if user is None or not pwd_context.verify(password, user.hashed_password):
                raise InvalidCredentials()

            auth_session = AuthSession(id=str(uuid.uuid4()), user_id=user.id)
            db.add(auth_session)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception('Could not start session.')
            raise StoreError('Could not start session.') from exc
        finally:
            db.close()

        token = jwt_handler.create_session_token(user.id, user.email, auth_session.id)
        return SignIn(user_id=user.id, email=user.email, token=token)

    def resolve_session(self, token: str) -> Identity:
        """Exchange a session token for the identity it was issued to.

        Raises ``InvalidToken`` when the token does not verify, has expired, or
        its session was revoked. The token is never refreshed here.
        """
        try:
            payload = jwt_handler.decode_session_token(token)
        except jwt.InvalidTokenError as exc:
            raise InvalidToken() from exc

        db = self._session_factory()
        try:
            row = (
                db.query(AuthSession.id, User.id.label('user_id'), User.email)
                .join(User, User.id == AuthSession.user_id)
                .filter(
                    AuthSession.id == payload['sid'],
                    AuthSession.user_id == payload['sub'],
                    AuthSession.revoked_at.is_(None),
                )
                .first()
            )
        except SQLAlchemyError as exc:
            logger.exception('Could not resolve session.')
            raise StoreError('Could not resolve session.') from exc
        finally:
            db.close()

        if row is None:
            raise InvalidToken()
        return Identity(user_id=row.user_id, email=row.email)

    def sign_out(self, token: str) -> None:
        try:
            payload = jwt_handler.decode_session_token(token)
        except jwt.InvalidTokenError:
            logger.info('Ignoring sign-out for a token that does not verify.')
            return

        db = self._session_factory()
        try:
            db.query(AuthSession).filter(
                AuthSession.id == payload['sid'],
                AuthSession.revoked_at.is_(None),
            ).update({AuthSession.revoked_at: utcnow()}, synchronize_session=False)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception('Could not revoke session.')
            raise StoreError('Could not revoke session.') from exc
        finally:
            db.close()
