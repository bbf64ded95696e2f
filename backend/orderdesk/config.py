# backend/orderdesk/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/orderdesk.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location (e.g. hosted Postgres)
        "sqlite:///orderdesk.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "sql" (SQLAlchemy, any DATABASE_URL) or "memory" (process-local)
    STORE_BACKEND = os.environ.get("ORDERDESK_STORE", "sql")
    AUTO_CREATE_SCHEMA = _env_flag("ORDERDESK_AUTO_CREATE_SCHEMA", True)

    # Bounded retry for numbering conflicts and lock timeouts
    RETRY_ATTEMPTS = int(os.environ.get("ORDERDESK_RETRY_ATTEMPTS", "3"))
    RETRY_BACKOFF_BASE = float(os.environ.get("ORDERDESK_RETRY_BACKOFF", "0.05"))

    # When set, order/cash mutations need an X-User-Name header
    REQUIRE_USER = _env_flag("ORDERDESK_REQUIRE_USER", False)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    STORE_BACKEND = "sql"
    AUTO_CREATE_SCHEMA = True
    RETRY_BACKOFF_BASE = 0.0
    REQUIRE_USER = False
