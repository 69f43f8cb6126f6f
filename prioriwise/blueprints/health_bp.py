"""
Health Blueprint - probes for load balancers and orchestrators.

Endpoints:
    GET /api/v1/health/ready  - process is up (always 200)
    GET /api/v1/health/live   - store reachable and planning tables present (200 / 503)
"""

import logging
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from prioriwise.middleware.diagnostics import PLANNING_TABLES
from prioriwise.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


def _check_store() -> dict:
    started = time.perf_counter()
    try:
        db.session.execute(db.text("SELECT 1"))
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Liveness: store unreachable: %s", exc)
        return {"status": "error", "detail": exc.__class__.__name__}
    return {"status": "ok", "latency_ms": round((time.perf_counter() - started) * 1000, 1)}


def _check_tables() -> dict:
    missing = []
    for table in PLANNING_TABLES:
        try:
            db.session.execute(db.text(f"SELECT 1 FROM {table} LIMIT 1"))
        except SQLAlchemyError:
            db.session.rollback()
            missing.append(table)
    if missing:
        logger.error("Liveness: missing tables %s", ", ".join(missing))
    return {"status": "error" if missing else "ok", "missing": missing}


@health_bp.route("/ready", methods=["GET"])
def ready():
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    checks = {"database": _check_store()}
    if checks["database"]["status"] == "ok":
        checks["tables"] = _check_tables()
    healthy = all(check["status"] == "ok" for check in checks.values())
    checks["app"] = {
        "name": "Prioriwise Core",
        "debug": current_app.debug,
        "testing": current_app.testing,
    }
    return jsonify({
        "status": "healthy" if healthy else "degraded",
        "checks": checks,
    }), 200 if healthy else 503
