"""The backend client handed to the web application.

It owns one engine and one session factory and exposes the three stores the
request handlers talk to. Construct it explicitly and pass it to
``booking.main.create_app``; nothing in the package keeps a process-wide
instance.
"""

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from booking.core import config
from booking.database import Base, build_engine, build_session_factory, ensure_appointment_schema
from booking.models import appointment, profile, user  # noqa: F401  (registers tables on Base)
from booking.services.appointments import AppointmentStore
from booking.services.identity import IdentityService
from booking.services.profiles import ProfileStore


@dataclass
class BackendClient:
    engine: Engine
    identity: IdentityService
    profiles: ProfileStore
    appointments: AppointmentStore

    @classmethod
    def from_engine(cls, engine: Engine) -> 'BackendClient':
        session_factory = build_session_factory(engine)
        return cls(
            engine=engine,
            identity=IdentityService(session_factory),
            profiles=ProfileStore(session_factory),
            appointments=AppointmentStore(session_factory),
        )

    @classmethod
    def from_url(cls, database_url: str | None = None, timeout_seconds: float | None = None) -> 'BackendClient':
        engine = build_engine(
            database_url or config.DATABASE_URL,
            timeout_seconds or config.STORE_TIMEOUT_SECONDS,
        )
        return cls.from_engine(engine)

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)
        ensure_appointment_schema(self.engine)

    def close(self) -> None:
        self.engine.dispose()
