"""
Task Lifecycle Blueprint - sequencing hooks called by task CRUD handlers.

Endpoints:
    POST /api/v1/tasks/<task_id>/created    body {owner_id, job_id}
    POST /api/v1/tasks/<task_id>/completed  body {owner_id}
    POST /api/v1/tasks/<task_id>/reopened   body {owner_id}
    POST /api/v1/tasks/<task_id>/deleted    body {owner_id}

Exactly one hook is called per task lifecycle event. Each returns the
updated job (task order and next task).
"""

from flask import Blueprint, jsonify

from prioriwise.blueprints import json_object_body, owner_required, register_core_error_handlers
from prioriwise.services import task_sequencing as seq
from prioriwise.utils.errors import E, api_error

tasks_bp = register_core_error_handlers(
    Blueprint("tasks", __name__, url_prefix="/api/v1/tasks")
)


@tasks_bp.route("/<int:task_id>/created", methods=["POST"])
def task_created(task_id):
    owner_id, err = owner_required()
    if err:
        return err
    data, err = json_object_body()
    if err:
        return err
    job_id = data.get("job_id")
    if not isinstance(job_id, int) or isinstance(job_id, bool):
        return api_error(E.VALIDATION_REQUIRED, "job_id (integer) is required")
    job = seq.on_task_created(task_id, job_id, owner_id)
    return jsonify(job.to_dict()), 200


@tasks_bp.route("/<int:task_id>/completed", methods=["POST"])
def task_completed(task_id):
    owner_id, err = owner_required()
    if err:
        return err
    job = seq.on_task_completed(task_id, owner_id)
    return jsonify(job.to_dict()), 200


@tasks_bp.route("/<int:task_id>/reopened", methods=["POST"])
def task_reopened(task_id):
    owner_id, err = owner_required()
    if err:
        return err
    job = seq.on_task_reopened(task_id, owner_id)
    return jsonify(job.to_dict()), 200


@tasks_bp.route("/<int:task_id>/deleted", methods=["POST"])
def task_deleted(task_id):
    owner_id, err = owner_required()
    if err:
        return err
    job = seq.on_task_deleted(task_id, owner_id)
    return jsonify(job.to_dict()), 200
