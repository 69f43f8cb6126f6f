"""
Startup diagnostics.

Logged once at app creation: interpreter, database backend and whether the
six planning tables exist. Problems are warnings, never fatal; the health
endpoint reports the same facts at runtime.
"""

import logging
import platform

from flask import Flask
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import SQLAlchemyError

from prioriwise.models import db

logger = logging.getLogger(__name__)

PLANNING_TABLES = (
    "qbos", "progress_indicators", "jobs", "tasks", "job_pi_mappings", "pi_qbo_mappings",
)


def _backend(uri: str) -> str:
    scheme = uri.split(":", 1)[0]
    return {"postgresql": "PostgreSQL", "sqlite": "SQLite"}.get(scheme.split("+")[0], scheme or "unknown")


def run_startup_diagnostics(app: Flask):
    """Log a startup report; skipped under TESTING."""
    if app.config.get("TESTING"):
        return

    warnings: list[str] = []
    backend = _backend(str(app.config.get("SQLALCHEMY_DATABASE_URI", "")))
    limiter_storage = app.config.get("RATELIMIT_STORAGE_URI", "memory://").split("://")[0]

    with app.app_context():
        try:
            present = set(sa_inspect(db.engine).get_table_names())
            missing = [t for t in PLANNING_TABLES if t not in present]
            db_state = "reachable"
        except SQLAlchemyError as exc:
            missing = list(PLANNING_TABLES)
            db_state = "UNREACHABLE"
            warnings.append(f"Database unreachable: {exc}")

    if missing and db_state == "reachable":
        warnings.append(f"Missing tables {', '.join(missing)}; run 'flask db upgrade'")
    if limiter_storage == "memory" and backend == "PostgreSQL":
        warnings.append("Rate limits are kept in process memory; set REDIS_URL to share them")

    rows = (
        ("Python", platform.python_version()),
        ("Debug", str(app.debug)),
        ("Database", f"{backend} ({db_state})"),
        ("Planning tables", f"{len(PLANNING_TABLES) - len(missing)}/{len(PLANNING_TABLES)}"),
        ("Rate limit store", limiter_storage),
    )
    width = max(len(label) for label, _ in rows)
    report = "\n".join(f"  {label:<{width}} : {value}" for label, value in rows)
    logger.info("Prioriwise Core startup\n%s", report)

    for warning in warnings:
        logger.warning("Startup check: %s", warning)
