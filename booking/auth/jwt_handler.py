from datetime import datetime, timedelta, timezone

import jwt

from booking.core import config

REQUIRED_CLAIMS = ["sub", "sid", "exp"]


def create_session_token(user_id: str, email: str, session_id: str, expires_minutes: int | None = None) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "sid": session_id,
        "exp": issued_at + timedelta(minutes=expire_minutes),
        "iat": issued_at,
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_session_token(token: str) -> dict:
    return jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        options={"require": REQUIRED_CLAIMS},
    )
