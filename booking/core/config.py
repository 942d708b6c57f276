import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./booking.db")
STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "5"))
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "15"))

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

# The session cookie is looked up by name first, then by the sb-<ref>-auth-token pattern.
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "sb-access-token")
SESSION_COOKIE_PREFIX = os.getenv("SESSION_COOKIE_PREFIX", "sb-")
SESSION_COOKIE_SUFFIX = os.getenv("SESSION_COOKIE_SUFFIX", "-auth-token")
SESSION_COOKIE_SECURE = _get_bool(os.getenv("SESSION_COOKIE_SECURE"), default=APP_ENV.lower() == "production")

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), ["http://localhost:3000"])


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if STORE_TIMEOUT_SECONDS <= 0 or REQUEST_TIMEOUT_SECONDS <= 0:
        raise RuntimeError("STORE_TIMEOUT_SECONDS and REQUEST_TIMEOUT_SECONDS must be positive.")
