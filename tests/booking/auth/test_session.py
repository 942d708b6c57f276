import json
from urllib.parse import quote

import pytest

from booking.auth.session import extract_access_token, parse_cookies, resolve_session
from booking.errors import InvalidSession, InvalidToken, NotAuthenticated
from booking.services.identity import Identity


class _FakeIdentityService:
    def __init__(self, *, valid_token: str = 'good-token'):
        self.valid_token = valid_token
        self.seen_tokens: list[str] = []

    def resolve_session(self, token: str) -> Identity:
        self.seen_tokens.append(token)
        if token != self.valid_token:
            raise InvalidToken()
        return Identity(user_id='user-1', email='user@example.com')


def test_parse_cookies_splits_on_first_equals_and_trims() -> None:
    cookies = parse_cookies(' theme=dark ; sb-access-token = a=b=c ;empty=; flag')

    assert cookies == {
        'theme': 'dark',
        'sb-access-token': 'a=b=c',
        'empty': '',
        'flag': '',
    }


@pytest.mark.parametrize('header', [None, '', ' ; ; '])
def test_parse_cookies_handles_missing_header(header) -> None:
    assert parse_cookies(header) == {}


def test_extract_access_token_prefers_well_known_cookie() -> None:
    header = f'sb-project-auth-token={quote(json.dumps(["structured", "refresh"]))}; sb-access-token=plain'

    assert extract_access_token(header) == 'plain'


def test_extract_access_token_reads_first_string_of_structured_cookie() -> None:
    header = f'other=1; sb-project-auth-token={quote(json.dumps(["structured", "refresh"]))}'

    assert extract_access_token(header) == 'structured'


def test_extract_access_token_accepts_unencoded_structured_cookie() -> None:
    assert extract_access_token('sb-abc-auth-token=["raw-token",null]') == 'raw-token'


@pytest.mark.parametrize(
    'header',
    [
        'sb-abc-auth-token=not-json',
        'sb-abc-auth-token={"token": "x"}',
        'sb-abc-auth-token=[1, 2]',
        'sb-abc-auth-token=[]',
        'session=abc',
        'sb-access-token=',
    ],
)
def test_extract_access_token_returns_none_without_usable_token(header: str) -> None:
    assert extract_access_token(header) is None


def test_resolve_session_rejects_missing_token_without_calling_identity_service() -> None:
    identity_service = _FakeIdentityService()

    with pytest.raises(NotAuthenticated) as exception_info:
        resolve_session('theme=dark', identity_service)

    assert exception_info.value.message == 'Not authenticated.'
    assert identity_service.seen_tokens == []


def test_resolve_session_maps_rejected_token_to_invalid_session() -> None:
    identity_service = _FakeIdentityService()

    with pytest.raises(InvalidSession) as exception_info:
        resolve_session('sb-access-token=expired', identity_service)

    assert exception_info.value.message == 'Invalid session.'
    assert identity_service.seen_tokens == ['expired']


def test_resolve_session_returns_identity_for_valid_token() -> None:
    identity = resolve_session('sb-access-token=good-token', _FakeIdentityService())

    assert identity == Identity(user_id='user-1', email='user@example.com')
