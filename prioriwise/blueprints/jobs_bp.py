"""
Jobs Blueprint - sequencing overrides and duplication.

Endpoints:
    PUT  /api/v1/jobs/<job_id>/next-task     body {owner_id, task_id | null}
    PUT  /api/v1/jobs/<job_id>/tasks/order   body {owner_id, task_ids: [...]}
    POST /api/v1/jobs/<job_id>/duplicate     body {owner_id, overrides?: {...}}

Service layer owns all business logic and commits.
"""

from flask import Blueprint, jsonify

from prioriwise.blueprints import json_object_body, owner_required, register_core_error_handlers
from prioriwise.services import task_sequencing as seq
from prioriwise.services.job_duplication import duplicate_job
from prioriwise.utils.errors import E, api_error
from prioriwise.utils.helpers import parse_date, parse_id_list

jobs_bp = register_core_error_handlers(
    Blueprint("jobs", __name__, url_prefix="/api/v1/jobs")
)

_TEXT_OVERRIDES = ("title", "notes", "business_function_id")


def _invalid_overrides(overrides: dict) -> dict:
    """Field → reason for every override of the wrong type. Null means "keep"."""
    invalid = {}
    for field in _TEXT_OVERRIDES:
        value = overrides.get(field)
        if value is not None and not isinstance(value, str):
            invalid[field] = "must be a string"
    due = overrides.get("due_date")
    if due is not None and (not isinstance(due, str) or parse_date(due) is None):
        invalid["due_date"] = "must be a date (YYYY-MM-DD)"
    return invalid


@jobs_bp.route("/<int:job_id>/next-task", methods=["PUT"])
def set_next_task(job_id):
    """Designate (or clear with null) the job's next task."""
    owner_id, err = owner_required()
    if err:
        return err
    data, err = json_object_body()
    if err:
        return err
    if "task_id" not in data:
        return api_error(E.VALIDATION_REQUIRED, "task_id is required (null clears it)")
    task_id = data["task_id"]
    if task_id is not None and (not isinstance(task_id, int) or isinstance(task_id, bool)):
        return api_error(E.VALIDATION_INVALID, "task_id must be an integer or null")
    job = seq.set_next_task(job_id, task_id, owner_id)
    return jsonify(job.to_dict()), 200


@jobs_bp.route("/<int:job_id>/tasks/order", methods=["PUT"])
def reorder_tasks(job_id):
    """Replace the job's task order. 422 when the next task would move."""
    owner_id, err = owner_required()
    if err:
        return err
    data, err = json_object_body()
    if err:
        return err
    task_ids = parse_id_list(data.get("task_ids"))
    if task_ids is None:
        return api_error(E.VALIDATION_INVALID, "task_ids must be an array of integers")
    job = seq.reorder_tasks(job_id, task_ids, owner_id)
    return jsonify(job.to_dict()), 200


@jobs_bp.route("/<int:job_id>/duplicate", methods=["POST"])
def duplicate(job_id):
    """Copy the job with its tasks and PI mappings, then refresh impact."""
    owner_id, err = owner_required()
    if err:
        return err
    data, err = json_object_body()
    if err:
        return err
    overrides = data.get("overrides") or {}
    if not isinstance(overrides, dict):
        return api_error(E.VALIDATION_INVALID, "overrides must be an object")
    invalid = _invalid_overrides(overrides)
    if invalid:
        return api_error(
            E.VALIDATION_INVALID,
            "Invalid overrides: " + ", ".join(sorted(invalid)),
            details=invalid,
        )
    result = duplicate_job(job_id, overrides, owner_id)
    return jsonify(result), 201
