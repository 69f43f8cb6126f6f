"""
Request timing middleware.

Every response gets X-Request-ID (echoed from the caller or generated) and
X-Request-Duration-Ms. API requests are logged once on the way out: 5xx as
errors, slow requests as warnings, everything else at debug.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

# Probes are hit every few seconds; their timing is noise
QUIET_PATHS = frozenset({"/api/v1/health/ready", "/api/v1/health/live"})

SLOW_REQUEST_MS = 1000


def _owner_from_request():
    owner_id = request.args.get("owner_id")
    if not owner_id and request.is_json:
        payload = request.get_json(silent=True)
        if isinstance(payload, dict):
            owner_id = payload.get("owner_id")
    return owner_id or None


def _level_for(status: int, duration_ms: float) -> int:
    if status >= 500:
        return logging.ERROR
    if duration_ms > SLOW_REQUEST_MS:
        return logging.WARNING
    return logging.DEBUG


def init_request_timing(app: Flask):
    """Register the before/after request hooks."""

    @app.before_request
    def _stamp_request():
        g.request_started = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        g.owner_id = _owner_from_request()

    @app.after_request
    def _finish_request(response):
        started = g.pop("request_started", None)
        if started is None:
            return response

        duration_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"

        if request.path not in QUIET_PATHS:
            logger.log(
                _level_for(response.status_code, duration_ms),
                "%s %s -> %d",
                request.method,
                request.path,
                response.status_code,
                extra={
                    "method": request.method,
                    "path": request.path,
                    "status": response.status_code,
                    "duration_ms": duration_ms,
                    "remote_addr": request.remote_addr,
                },
            )
        return response
