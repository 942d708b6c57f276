import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, ConfigDict, Field, model_validator

from booking.auth.dependencies import get_backend, get_current_identity
from booking.auth.session import extract_access_token
from booking.core import config
from booking.errors import AccountError, InvalidCredentials, ProfileNotFound, StoreError
from booking.models.profile import USER_ROLE
from booking.services.backend import BackendClient
from booking.services.identity import Identity

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)


def _clean(value: str | None) -> str:
    return value.strip() if value else ''


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str | None = None
    password: str | None = None
    first_name: str | None = Field(default=None, alias='firstName')
    last_name: str | None = Field(default=None, alias='lastName')

    @model_validator(mode='after')
    def require_all_fields(self) -> 'RegisterRequest':
        self.email = _clean(self.email)
        self.first_name = _clean(self.first_name)
        self.last_name = _clean(self.last_name)
        if not (self.email and self.password and self.first_name and self.last_name):
            raise ValueError('Email, password, first name and last name are required.')
        return self


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None

    @model_validator(mode='after')
    def require_credentials(self) -> 'LoginRequest':
        self.email = _clean(self.email)
        if not (self.email and self.password):
            raise ValueError('Email and password are required.')
        return self


@router.post('/register', status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, backend: BackendClient = Depends(get_backend)):
    try:
        user_id = backend.identity.create_account(
            data.email,
            data.password,
            metadata={'first_name': data.first_name, 'last_name': data.last_name},
        )
    except AccountError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message) from exc
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Unexpected server error.',
        ) from exc

    try:
        backend.profiles.create_profile(user_id, USER_ROLE, data.first_name, data.last_name)
    except StoreError as exc:
        # Registration leaves both rows or neither.
        try:
            backend.identity.delete_account(user_id)
        except StoreError:
            logger.exception('Could not roll back account %s after profile failure.', user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Profile creation failed.',
        ) from exc

    logger.info('Registered user %s.', user_id)
    return {'success': True, 'id': user_id, 'role': USER_ROLE}


@router.post('/login')
def login(data: LoginRequest, response: Response, backend: BackendClient = Depends(get_backend)):
    try:
        sign_in = backend.identity.sign_in_with_password(data.email, data.password)
    except InvalidCredentials as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid credentials.') from exc
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Unexpected server error.',
        ) from exc

    try:
        role = backend.profiles.get_role(sign_in.user_id)
    except ProfileNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='User role not found.') from exc
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Could not fetch user role.',
        ) from exc

    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=sign_in.token,
        max_age=config.JWT_EXPIRES_MINUTES * 60,
        path='/',
        httponly=True,
        samesite='lax',
        secure=config.SESSION_COOKIE_SECURE,
    )
    return {'id': sign_in.user_id, 'role': role}


@router.post('/logout')
def logout(request: Request, response: Response, backend: BackendClient = Depends(get_backend)):
    token = extract_access_token(request.headers.get('cookie'))
    if token:
        try:
            backend.identity.sign_out(token)
        except StoreError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail='Logout failed.',
            ) from exc

    response.delete_cookie(config.SESSION_COOKIE_NAME, path='/')
    return {'success': True}


@router.get('/me')
def me(
    identity: Identity = Depends(get_current_identity),
    backend: BackendClient = Depends(get_backend),
):
    try:
        role = backend.profiles.get_role(identity.user_id)
    except ProfileNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='User role not found.') from exc
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Could not fetch user role.',
        ) from exc

    return {'id': identity.user_id, 'email': identity.email, 'role': role}
