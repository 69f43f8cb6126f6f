"""
Prioriwise Core
Blueprint helpers shared by every API blueprint.

owner_id is resolved from the query string or the JSON body; no auth layer
is involved. Core exceptions map to structured JSON responses:

    NotFoundError     → 404
    ValidationError   → 422
    StoreUnavailable  → 503
    anything else     → 500 (logged)
"""

import logging

from flask import request
from werkzeug.exceptions import HTTPException

from prioriwise.core.exceptions import NotFoundError, StoreUnavailable, ValidationError
from prioriwise.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def owner_id_from_request() -> str | None:
    """Extract owner_id from query string or JSON body."""
    owner_id = request.args.get("owner_id")
    if owner_id:
        return owner_id
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return None
    owner_id = data.get("owner_id")
    return str(owner_id) if owner_id else None


def owner_required() -> tuple[str | None, tuple | None]:
    owner_id = owner_id_from_request()
    if not owner_id:
        return None, api_error(E.VALIDATION_REQUIRED, "owner_id is required")
    return owner_id, None


def json_object_body() -> tuple[dict, tuple | None]:
    """The JSON body as a dict; a missing body is {}, any non-object is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        return {}, None
    if not isinstance(data, dict):
        return {}, api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")
    return data, None


def register_core_error_handlers(bp):
    """Attach the core exception → HTTP mapping to a blueprint."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error), kind=error.kind)

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.SEQUENCING, str(error), kind=error.kind, details=error.details)

    @bp.errorhandler(StoreUnavailable)
    def _handle_store(error: StoreUnavailable):
        return api_error(E.STORE_UNAVAILABLE, str(error), kind=error.kind)

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return error
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")

    return bp
