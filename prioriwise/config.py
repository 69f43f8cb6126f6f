"""
Prioriwise Core
Environment configuration classes.

The factory picks one by name:
    create_app("testing")          # explicit
    APP_ENV=production flask run   # from the environment
"""

import os
import secrets

PROJECT_ROOT = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_LOCAL_SQLITE = "sqlite:///" + os.path.join(PROJECT_ROOT, "instance", "prioriwise_dev.db")
_MEMORY_SQLITE = "sqlite:///:memory:"


def _env_flag(name, default):
    return os.getenv(name, "true" if default else "false").strip().lower() in ("1", "true", "yes")


def _database_url(fallback=None):
    """DATABASE_URL with the legacy postgres:// scheme normalised."""
    url = os.getenv("DATABASE_URL")
    if not url:
        return fallback
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url


class Config:
    """Settings common to every environment."""

    SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)
    DEBUG = False
    TESTING = False

    # ── Persistence ──────────────────────────────────────────────────────
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True, "pool_recycle": 300}

    # ── HTTP surface ─────────────────────────────────────────────────────
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    RATELIMIT_ENABLED = _env_flag("RATELIMIT_ENABLED", True)
    RATELIMIT_STORAGE_URI = os.getenv("REDIS_URL", "memory://")
    IMPACT_RECOMPUTE_RATE_LIMIT = os.getenv("IMPACT_RECOMPUTE_RATE_LIMIT", "30/minute")

    # ── Planning core ────────────────────────────────────────────────────
    TOP_JOBS_DEFAULT_LIMIT = int(os.getenv("TOP_JOBS_DEFAULT_LIMIT", "5"))
    DUPLICATE_NOTE_PREFIX = "Duplicated from job: "


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(_LOCAL_SQLITE)


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _MEMORY_SQLITE)
    # In-memory SQLite uses a static pool; pool sizing options do not apply
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False


class ProductionConfig(Config):
    """PostgreSQL behind a pool; every secret comes from the environment."""

    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": int(os.getenv("DB_POOL_SIZE", "5")),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "10")),
        "pool_recycle": 300,
        "pool_timeout": 20,
        # A full recompute is a handful of bulk reads; 30s means the store is unhealthy
        "connect_args": {"options": "-c statement_timeout=30000"},
    }

    def __init__(self):
        missing = [
            name for name, present in (
                ("DATABASE_URL", bool(self.SQLALCHEMY_DATABASE_URI)),
                ("SECRET_KEY", bool(os.getenv("SECRET_KEY"))),
            ) if not present
        ]
        if missing:
            raise RuntimeError(f"Production config requires: {', '.join(missing)}")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
