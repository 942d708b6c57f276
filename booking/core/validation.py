"""Input parsing shared by the request handlers."""

import re
from datetime import datetime, timezone

UUID_PATTERN = re.compile(
    r'[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}'
)


def is_uuid(value: str | None) -> bool:
    return bool(value) and UUID_PATTERN.fullmatch(value) is not None


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 string into an aware UTC datetime.

    A trailing ``Z`` is accepted as UTC and a value without an offset is read
    as UTC. Returns ``None`` when the value cannot be parsed.
    """
    if not isinstance(value, str):
        return None

    candidate = value.strip()
    if not candidate:
        return None
    if candidate[-1] in 'zZ':
        candidate = f'{candidate[:-1]}+00:00'

    try:
        parsed = datetime.fromisoformat(candidate)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None
