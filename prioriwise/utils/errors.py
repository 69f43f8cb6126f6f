"""Uniform JSON error bodies for the HTTP layer.

    from prioriwise.utils.errors import api_error, E

    return api_error(E.VALIDATION_REQUIRED, "owner_id is required")
    return api_error(E.SEQUENCING, str(exc), kind=exc.kind, details=exc.details)

Body: {"error": <message>, "code": <E.*>, "kind"?: <core exception>, "details"?: {...}}
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes. Each maps to one default HTTP status below."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"   # a required field is absent
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"     # a field has the wrong shape
    SEQUENCING = "ERR_SEQUENCING"                     # well-formed, but refused
    NOT_FOUND = "ERR_NOT_FOUND"
    STORE_UNAVAILABLE = "ERR_STORE_UNAVAILABLE"
    INTERNAL = "ERR_INTERNAL"


STATUS_FOR_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.SEQUENCING: 422,
    E.NOT_FOUND: 404,
    E.STORE_UNAVAILABLE: 503,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    kind: str | None = None,
    status: int | None = None,
    details: dict | None = None,
):
    """Build ``(response, status)`` for a Flask view.

    ``status`` overrides the code's default; unknown codes fall back to 400.
    ``kind`` and ``details`` are only included when given.
    """
    body: dict = {"error": message, "code": code}
    if kind:
        body["kind"] = kind
    if details:
        body["details"] = details
    return jsonify(body), status or STATUS_FOR_CODE.get(code, 400)
