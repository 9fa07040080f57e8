"""
Configuration for the timesheet portal Flask app.
Production (Railway/Render): uses DATABASE_URL only; fails if missing.
Local: DATABASE_URL or a SQLite file under instance/.
"""
import os
from pathlib import Path
from datetime import timedelta

BASE_DIR = Path(__file__).parent
INSTANCE_DIR = BASE_DIR / "instance"


def _is_production():
    """True when running on Railway, Render, or explicit production."""
    return (
        os.environ.get("RENDER") == "true"
        or os.environ.get("RAILWAY_ENVIRONMENT") is not None
        or os.environ.get("FLASK_ENV") == "production"
    )


def _env_flag(name, default="false"):
    return os.environ.get(name, default).lower() in ("true", "on", "1")


def _normalize_database_url(url):
    """Convert postgres:// to postgresql+psycopg2:// for SQLAlchemy/psycopg2."""
    if not url:
        return url
    url = url.strip()
    if url.startswith("postgres://"):
        return "postgresql+psycopg2://" + url[11:]
    if url.startswith("postgresql://") and "psycopg2" not in url:
        return "postgresql+psycopg2://" + url[13:]
    return url


def _get_database_uri():
    """Database URI: production = DATABASE_URL only; local = DATABASE_URL or SQLite file."""
    url = os.environ.get("DATABASE_URL")
    if _is_production():
        if not url or not url.strip():
            raise RuntimeError(
                "DATABASE_URL is required in production (Railway/Render). "
                "Set it in your service environment variables."
            )
        return _normalize_database_url(url.strip())

    if url and url.strip():
        return _normalize_database_url(url.strip())

    try:
        INSTANCE_DIR.mkdir(exist_ok=True)
    except OSError:
        pass
    return f"sqlite:///{INSTANCE_DIR / 'timesheets.db'}"


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get("SECRET_KEY") or "dev-secret-key-change-in-production"

    PERMANENT_SESSION_LIFETIME = timedelta(hours=8)
    SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE")
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    SQLALCHEMY_DATABASE_URI = _get_database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    MAIL_SERVER = os.environ.get("MAIL_SERVER")
    MAIL_PORT = int(os.environ.get("MAIL_PORT") or 587)
    MAIL_USE_TLS = _env_flag("MAIL_USE_TLS", "true")
    MAIL_USE_SSL = _env_flag("MAIL_USE_SSL")
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER") or os.environ.get("MAIL_USERNAME") or "noreply@timesheets.local"

    # Login codes: "memory" keeps codes in this process, "database" shares them via LoginCode rows
    LOGIN_CODE_BACKEND = os.environ.get("LOGIN_CODE_BACKEND", "memory").strip().lower()
    LOGIN_CODE_TTL_MINUTES = int(os.environ.get("LOGIN_CODE_TTL_MINUTES") or 10)
    LOGIN_CODE_MAX_ATTEMPTS = int(os.environ.get("LOGIN_CODE_MAX_ATTEMPTS") or 5)
    LOGIN_CODE_SWEEP_THRESHOLD = int(os.environ.get("LOGIN_CODE_SWEEP_THRESHOLD") or 10000)
    LOGIN_CODE_SWEEP_GRACE_MINUTES = int(os.environ.get("LOGIN_CODE_SWEEP_GRACE_MINUTES") or 60)

    # Directory account created on boot when missing
    SEED_USER_EMAIL = os.environ.get("SEED_USER_EMAIL", "registrar@ces-schools.com")
    SEED_USER_NAME = os.environ.get("SEED_USER_NAME", "Simone")
    SEED_USER_HOURLY_RATE = os.environ.get("SEED_USER_HOURLY_RATE", "20")
