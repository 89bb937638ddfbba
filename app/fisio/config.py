import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    log_level: str

    session_lifetime_hours: int
    registration_enabled: bool


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).")


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///fichas.db"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        session_lifetime_hours=_getenv_int("SESSION_LIFETIME_HOURS", 168),
        registration_enabled=_getenv("REGISTRATION_ENABLED", "1") not in ("0", "false", "no"),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "LOG_LEVEL": s.log_level,
        "SESSION_LIFETIME_HOURS": s.session_lifetime_hours,
        "REGISTRATION_ENABLED": s.registration_enabled,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # signatures and the pain map travel as base64 data URLs
        "MAX_CONTENT_LENGTH": 10 * 1024 * 1024,
    }
