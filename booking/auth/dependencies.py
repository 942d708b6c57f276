from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status

from booking.auth import session
from booking.errors import ProfileNotFound, SessionError, StoreError
from booking.models.profile import ADMIN_ROLE
from booking.services.backend import BackendClient
from booking.services.identity import Identity


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: str


def get_backend(request: Request) -> BackendClient:
    return request.app.state.backend


def get_current_identity(
    request: Request,
    backend: BackendClient = Depends(get_backend),
) -> Identity:
    try:
        return session.resolve_session(request.headers.get('cookie'), backend.identity)
    except SessionError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=exc.message) from exc
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Could not verify session.',
        ) from exc


def require_admin(
    identity: Identity = Depends(get_current_identity),
    backend: BackendClient = Depends(get_backend),
) -> Principal:
    try:
        role = backend.profiles.get_role(identity.user_id)
    except (ProfileNotFound, StoreError) as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Admin role required.') from exc

    if role != ADMIN_ROLE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Admin role required.')

    return Principal(user_id=identity.user_id, role=ADMIN_ROLE)
