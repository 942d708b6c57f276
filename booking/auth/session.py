"""Session resolution: cookie header in, authenticated identity out.

Every protected handler goes through ``resolve_session``. It only looks the
token up; it never refreshes or rotates it.
"""

import json
import logging
from typing import Protocol
from urllib.parse import unquote

from booking.core import config
from booking.errors import InvalidSession, InvalidToken, NotAuthenticated
from booking.services.identity import Identity

logger = logging.getLogger(__name__)


class SessionLookup(Protocol):
    def resolve_session(self, token: str) -> Identity: ...


def parse_cookies(header_value: str | None) -> dict[str, str]:
    if not header_value:
        return {}

    cookies: dict[str, str] = {}
    for part in header_value.split(';'):
        name, _, value = part.partition('=')
        name = name.strip()
        if name:
            cookies[name] = value.strip()
    return cookies


def _token_from_structured_cookie(raw_value: str) -> str | None:
    try:
        parsed = json.loads(unquote(raw_value))
    except ValueError:
        return None

    if isinstance(parsed, list) and parsed and isinstance(parsed[0], str):
        return parsed[0]
    return None


def extract_access_token(header_value: str | None) -> str | None:
    cookies = parse_cookies(header_value)

    token = cookies.get(config.SESSION_COOKIE_NAME)
    if token:
        return token

    for name, value in cookies.items():
        if name.startswith(config.SESSION_COOKIE_PREFIX) and name.endswith(config.SESSION_COOKIE_SUFFIX):
            return _token_from_structured_cookie(value)

    return None


def resolve_session(header_value: str | None, identity_service: SessionLookup) -> Identity:
    token = extract_access_token(header_value)
    if not token:
        raise NotAuthenticated()

    try:
        return identity_service.resolve_session(token)
    except InvalidToken as exc:
        logger.info('Rejected request with an invalid or expired session token.')
        raise InvalidSession() from exc
