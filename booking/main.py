import logging
from contextlib import asynccontextmanager

import anyio
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from booking.core import config
from booking.routes import admin_routes, appointment_routes, auth_routes
from booking.services.backend import BackendClient

logger = logging.getLogger(__name__)

INVALID_BODY_MESSAGE = 'Invalid request body.'


def configure_logging() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def validation_message(exc: RequestValidationError) -> str:
    for error in exc.errors():
        if error.get('type') != 'value_error':
            continue
        reason = error.get('ctx', {}).get('error')
        if reason is not None:
            return str(reason)
    return INVALID_BODY_MESSAGE


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        message = 'Method not allowed.'
    else:
        message = exc.detail if isinstance(exc.detail, str) else 'Request failed.'
    return JSONResponse(status_code=exc.status_code, content={'message': message}, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={'message': validation_message(exc)})


async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception('Unhandled error on %s %s.', request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={'message': 'Unexpected server error.'},
    )


def create_app(backend: BackendClient | None = None) -> FastAPI:
    """Build the web application around an explicitly constructed backend client.

    When no client is given one is built from ``DATABASE_URL`` and disposed on
    shutdown; an injected client stays owned by the caller.
    """
    configure_logging()
    config.validate_runtime_config()

    owns_backend = backend is None
    if backend is None:
        backend = BackendClient.from_url(config.DATABASE_URL, config.STORE_TIMEOUT_SECONDS)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            backend.create_schema()
        except SQLAlchemyError:
            logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')
        yield
        if owns_backend:
            backend.close()

    app = FastAPI(title='Appointment Booking API', lifespan=lifespan)
    app.state.backend = backend

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    @app.middleware('http')
    async def enforce_request_timeout(request: Request, call_next):
        try:
            with anyio.fail_after(config.REQUEST_TIMEOUT_SECONDS):
                return await call_next(request)
        except TimeoutError:
            logger.error('Request %s %s timed out.', request.method, request.url.path)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={'message': 'Request timed out.'},
            )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unexpected_exception_handler)

    @app.get('/')
    def root():
        return {'status': 'Appointment Booking API Running'}

    app.include_router(auth_routes.router, prefix='/auth')
    app.include_router(appointment_routes.router, prefix='/appointments')
    app.include_router(admin_routes.router, prefix='/admin')

    return app


app = create_app()
