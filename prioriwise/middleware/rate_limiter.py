"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in prioriwise/__init__.py with no default
limits; this module applies granular limits per route category.

Usage:
    from prioriwise.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import request as flask_request

logger = logging.getLogger(__name__)


def owner_or_ip_key():
    """Rate limit key: owner_id if the request carries one, else remote IP."""
    owner_id = flask_request.args.get("owner_id")
    if not owner_id:
        payload = flask_request.get_json(silent=True) or {}
        owner_id = payload.get("owner_id") if isinstance(payload, dict) else None
    if owner_id:
        return f"owner:{owner_id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits:
        - Impact recompute:  IMPACT_RECOMPUTE_RATE_LIMIT per owner (full graph pass)
        - Job / task writes: 120/minute per owner
        - Progress reads:    300/minute per owner
        - Health check:      exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING") or not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled")
        return

    recompute_limit = app.config.get("IMPACT_RECOMPUTE_RATE_LIMIT", "30/minute")
    bp = app.blueprints.get("impact")
    if bp:
        limiter.limit(recompute_limit, key_func=owner_or_ip_key)(bp)

    for bp_name in ("tasks", "jobs"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit("120/minute", key_func=owner_or_ip_key)(bp)

    bp = app.blueprints.get("progress")
    if bp:
        limiter.limit("300/minute", key_func=owner_or_ip_key)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured - recompute: %s, writes: 120/min, reads: 300/min",
        recompute_limit,
    )
