"""
Progress Blueprint - read-only reporting.

Endpoints:
    GET /api/v1/progress/jobs?ids=1&ids=2          - completion % per job
    GET /api/v1/progress/jobs/<job_id>/task-counts  - {total, completed}
    GET /api/v1/progress/qbos                       - actual vs expected per QBO
    GET /api/v1/progress/top-jobs?limit=5           - open jobs by impact
    GET /api/v1/progress/next-steps                 - next task of each open job

All endpoints require the owner_id query param.
"""

from flask import Blueprint, current_app, jsonify, request

from prioriwise.blueprints import owner_required, register_core_error_handlers
from prioriwise.services import progress_service as ps
from prioriwise.utils.errors import E, api_error
from prioriwise.utils.helpers import parse_id_list

progress_bp = register_core_error_handlers(
    Blueprint("progress", __name__, url_prefix="/api/v1/progress")
)


@progress_bp.route("/jobs", methods=["GET"])
def jobs_progress():
    owner_id, err = owner_required()
    if err:
        return err
    job_ids = parse_id_list(request.args.getlist("ids"))
    if not job_ids:
        return api_error(E.VALIDATION_REQUIRED, "At least one integer job id is required")
    progress = ps.job_progress(job_ids, owner_id)
    return jsonify({"data": {str(k): v for k, v in progress.items()}}), 200


@progress_bp.route("/jobs/<int:job_id>/task-counts", methods=["GET"])
def task_counts(job_id):
    owner_id, err = owner_required()
    if err:
        return err
    return jsonify(ps.job_task_counts(job_id, owner_id)), 200


@progress_bp.route("/qbos", methods=["GET"])
def qbos_progress():
    owner_id, err = owner_required()
    if err:
        return err
    report = ps.qbo_progress_report(owner_id)
    return jsonify({"data": report, "count": len(report)}), 200


@progress_bp.route("/top-jobs", methods=["GET"])
def top_jobs():
    owner_id, err = owner_required()
    if err:
        return err
    default_limit = current_app.config.get("TOP_JOBS_DEFAULT_LIMIT", 5)
    limit = request.args.get("limit", default_limit, type=int)
    if limit is None or limit < 1:
        return api_error(E.VALIDATION_INVALID, "limit must be a positive integer")
    jobs = ps.top_jobs_by_impact(owner_id, limit=min(limit, 100))
    return jsonify({"data": jobs, "count": len(jobs)}), 200


@progress_bp.route("/next-steps", methods=["GET"])
def next_steps():
    owner_id, err = owner_required()
    if err:
        return err
    steps = ps.next_steps(owner_id)
    return jsonify({"data": steps, "count": len(steps)}), 200
