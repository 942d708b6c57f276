from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from booking.auth.dependencies import Principal, get_current_identity, require_admin
from booking.errors import InvalidToken, ProfileNotFound, StoreError
from booking.services.identity import Identity

IDENTITY = Identity(user_id='user-1', email='user@example.com')


class _FakeProfiles:
    def __init__(self, role=None, error: Exception | None = None):
        self.role = role
        self.error = error

    def get_role(self, user_id: str) -> str:
        if self.error is not None:
            raise self.error
        return self.role


class _FakeIdentityService:
    def __init__(self, error: Exception | None = None):
        self.error = error

    def resolve_session(self, token: str) -> Identity:
        if self.error is not None:
            raise self.error
        return IDENTITY


def _request(cookie: str | None = None):
    headers = {'cookie': cookie} if cookie is not None else {}
    return SimpleNamespace(headers=headers)


def test_get_current_identity_returns_resolved_identity() -> None:
    backend = SimpleNamespace(identity=_FakeIdentityService())

    assert get_current_identity(_request('sb-access-token=abc'), backend) == IDENTITY


def test_get_current_identity_rejects_missing_cookie() -> None:
    backend = SimpleNamespace(identity=_FakeIdentityService())

    with pytest.raises(HTTPException) as exception_info:
        get_current_identity(_request(), backend)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Not authenticated.'


def test_get_current_identity_rejects_invalid_token() -> None:
    backend = SimpleNamespace(identity=_FakeIdentityService(error=InvalidToken()))

    with pytest.raises(HTTPException) as exception_info:
        get_current_identity(_request('sb-access-token=abc'), backend)

    assert exception_info.value.status_code == 401
    assert exception_info.value.detail == 'Invalid session.'


def test_get_current_identity_reports_store_failure() -> None:
    backend = SimpleNamespace(identity=_FakeIdentityService(error=StoreError()))

    with pytest.raises(HTTPException) as exception_info:
        get_current_identity(_request('sb-access-token=abc'), backend)

    assert exception_info.value.status_code == 500


def test_require_admin_returns_principal_for_admin() -> None:
    backend = SimpleNamespace(profiles=_FakeProfiles(role='admin'))

    assert require_admin(IDENTITY, backend) == Principal(user_id='user-1', role='admin')


@pytest.mark.parametrize(
    'profiles',
    [
        _FakeProfiles(role='user'),
        _FakeProfiles(role='superuser'),
        _FakeProfiles(error=ProfileNotFound()),
        _FakeProfiles(error=StoreError()),
    ],
)
def test_require_admin_rejects_everything_else(profiles: _FakeProfiles) -> None:
    backend = SimpleNamespace(profiles=profiles)

    with pytest.raises(HTTPException) as exception_info:
        require_admin(IDENTITY, backend)

    assert exception_info.value.status_code == 403
    assert exception_info.value.detail == 'Admin role required.'
