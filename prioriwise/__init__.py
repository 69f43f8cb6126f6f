"""
Prioriwise Core
Flask application factory.

    from prioriwise import create_app
    app = create_app()            # APP_ENV, else "development"
    app = create_app("testing")
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from prioriwise.config import config
from prioriwise.middleware.diagnostics import run_startup_diagnostics
from prioriwise.middleware.logging_config import configure_logging
from prioriwise.middleware.rate_limiter import init_rate_limits
from prioriwise.middleware.timing import init_request_timing
from prioriwise.models import db

logger = logging.getLogger(__name__)

migrate = Migrate()
# Limits are attached per blueprint in init_rate_limits
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _sqlite_foreign_keys(dbapi_conn, connection_record):
    """SQLite ignores ON DELETE CASCADE (Task → Job) unless asked per connection."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# ── Factory steps ────────────────────────────────────────────────────────


def _load_config(app, config_name):
    # Instantiated so ProductionConfig can validate its required env vars
    app.config.from_object(config[config_name]())


def _init_extensions(app):
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    origins = app.config.get("CORS_ORIGINS", "*")
    if origins and origins != "*":
        CORS(app, origins=[o.strip() for o in origins.split(",") if o.strip()])
    else:
        CORS(app)


def _ensure_schema(app):
    """CREATE TABLE IF NOT EXISTS for every model; Alembic owns later changes."""
    from prioriwise.models import job, mapping, planning  # noqa: F401  (register tables)

    with app.app_context():
        os.makedirs(app.instance_path, exist_ok=True)
        try:
            db.create_all()
        except Exception as exc:
            app.logger.warning("db.create_all() failed: %s", exc)


def _register_blueprints(app):
    from prioriwise.blueprints.health_bp import health_bp
    from prioriwise.blueprints.impact_bp import impact_bp
    from prioriwise.blueprints.jobs_bp import jobs_bp
    from prioriwise.blueprints.progress_bp import progress_bp
    from prioriwise.blueprints.tasks_bp import tasks_bp

    for bp in (impact_bp, tasks_bp, jobs_bp, progress_bp, health_bp):
        app.register_blueprint(bp)


def _register_error_handlers(app):
    """JSON bodies for errors raised outside blueprint handlers (routing, limiter)."""

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("Unhandled error on %s: %s", request.path, e, exc_info=True)
        return {"error": "Internal server error"}, 500


def create_app(config_name=None):
    """
    Build a configured Flask application.

    Args:
        config_name: "development", "testing" or "production".
                     Defaults to the APP_ENV env var, then "development".
    """
    config_name = config_name or os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    _load_config(app, config_name)

    configure_logging(app)
    _init_extensions(app)
    init_request_timing(app)
    _ensure_schema(app)
    _register_blueprints(app)
    _register_error_handlers(app)

    run_startup_diagnostics(app)
    # Needs the registered blueprints
    init_rate_limits(app, limiter)

    return app
