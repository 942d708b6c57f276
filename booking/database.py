from datetime import datetime, timezone
from threading import Lock

from sqlalchemy import DateTime, create_engine, inspect, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator


Base = declarative_base()

_schema_lock = Lock()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Stores instants in UTC and always reads them back timezone-aware."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == 'sqlite':
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def build_engine(database_url: str, timeout_seconds: float) -> Engine:
    url = make_url(database_url)
    backend_name = url.get_backend_name()

    if backend_name == 'sqlite':
        connect_args = {'check_same_thread': False, 'timeout': timeout_seconds}
        if url.database in (None, '', ':memory:'):
            return create_engine(url, connect_args=connect_args, poolclass=StaticPool)
        return create_engine(url, connect_args=connect_args)

    connect_args = {}
    if backend_name == 'postgresql':
        connect_args = {
            'connect_timeout': max(1, int(timeout_seconds)),
            'options': f'-c statement_timeout={int(timeout_seconds * 1000)}',
        }

    return create_engine(
        url,
        connect_args=connect_args,
        pool_timeout=timeout_seconds,
        pool_pre_ping=True,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


def ensure_appointment_schema(engine: Engine) -> None:
    """Add the booking indexes to an ``appointments`` table created before they existed."""
    with _schema_lock:
        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            return

        with engine.begin() as connection:
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_booked_starts_at '
                    "ON appointments(starts_at) WHERE status = 'booked'"
                )
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_user_starts_at ON appointments(user_id, starts_at)')
            )
