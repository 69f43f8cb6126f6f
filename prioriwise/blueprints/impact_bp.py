"""
Impact Blueprint - explicit recompute of derived job impact.

Endpoints:
    POST /api/v1/impact/recompute   - full propagation pass for one owner

Called by mapping / QBO / PI handlers (and onboarding completion) whenever
an input of the impact graph changes.
"""

from flask import Blueprint, jsonify

from prioriwise.blueprints import owner_required, register_core_error_handlers
from prioriwise.services import impact_engine

impact_bp = register_core_error_handlers(
    Blueprint("impact", __name__, url_prefix="/api/v1/impact")
)


@impact_bp.route("/recompute", methods=["POST"])
def recompute():
    """Recompute every job's impact for the owner.

    Body / query: owner_id (required)
    Returns: recompute report (200), or failure report (503) when the
    store is unavailable. Nothing is partially written.
    """
    owner_id, err = owner_required()
    if err:
        return err
    result = impact_engine.recompute_impact(owner_id)
    return jsonify(result), 200 if result["success"] else 503
