"""
Job Duplication Orchestrator

Clones a Job together with its live Tasks and its Job↔PI mappings, then
re-establishes the sequencing cursor on the copy and refreshes impact.

Steps:
  1. create the job shell (source fields, caller overrides win)
  2. copy each live task in source order - completion reset, date cleared
  3. store the new ordered `task_ids`
  4. carry the source next task over by task identity
  5. otherwise pick a next task with the selection rule
  6. copy each Job↔PI mapping, annotated with its provenance
  7. recompute impact for the owner

The source job, its tasks and its mappings are read before anything is
written, so a failed read leaves no partial copy behind. Only step 1 must
succeed after that. Each task and mapping copy runs in its own
SAVEPOINT; a failing item is logged, rolled back and counted as skipped.
The recompute result is reported but never fails the duplication.
"""

from __future__ import annotations

import logging

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from prioriwise.core.exceptions import StoreUnavailable
from prioriwise.models import db
from prioriwise.models.job import Job, Task
from prioriwise.models.mapping import JobPIMapping
from prioriwise.services.helpers.scoped_queries import get_scoped
from prioriwise.services.impact_engine import recompute_impact
from prioriwise.services.mapping_repository import job_pi_mappings_for_job
from prioriwise.services.task_sequencing import ensure_next_task
from prioriwise.utils.helpers import parse_date

logger = logging.getLogger(__name__)

OVERRIDABLE_FIELDS = ("title", "notes", "business_function_id", "due_date")


def _source_tasks_in_order(source: Job) -> list[Task]:
    """Live tasks of the source job: sequence order first, stragglers by id."""
    live = (
        Task.query_active()
        .filter_by(job_id=source.id, owner_id=source.owner_id)
        .order_by(Task.id)
        .all()
    )
    by_id = {t.id: t for t in live}
    ordered = [by_id[tid] for tid in (source.task_ids or []) if tid in by_id]
    seen = {t.id for t in ordered}
    ordered.extend(t for t in live if t.id not in seen)
    return ordered


def _create_shell(source: Job, overrides: dict, owner_id: str) -> Job:
    values = {field: getattr(source, field) for field in OVERRIDABLE_FIELDS}
    for field in OVERRIDABLE_FIELDS:
        if field in overrides and overrides[field] is not None:
            values[field] = overrides[field]
    values["due_date"] = parse_date(values["due_date"])
    if not isinstance(values["title"], str) or not values["title"].strip():
        values["title"] = source.title

    job = Job(
        owner_id=owner_id,
        task_ids=[],
        next_task_id=None,
        impact=0.0,
        is_done=False,
        **values,
    )
    db.session.add(job)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Job shell creation failed source=%s owner=%s", source.id, owner_id)
        raise StoreUnavailable("duplicate_job", exc.__class__.__name__) from exc
    return job


def _task_copy(task: Task, new_job: Job) -> Task:
    return Task(
        owner_id=new_job.owner_id,
        job_id=new_job.id,
        completed=False,
        date=None,
        **{f: getattr(task, f) for f in Task.COPYABLE_FIELDS},
    )


def _copy_tasks(source_tasks: list[Task], new_job: Job) -> tuple[dict[int, int], int]:
    """Copy tasks one savepoint each. Returns (source id → new id, skipped)."""
    id_map: dict[int, int] = {}
    skipped = 0
    for task in source_tasks:
        try:
            with db.session.begin_nested():
                copy = _task_copy(task, new_job)
                db.session.add(copy)
                db.session.flush()
            id_map[task.id] = copy.id
        except SQLAlchemyError:
            skipped += 1
            logger.exception("Skipping task copy task_id=%s new_job=%s", task.id, new_job.id)
    return id_map, skipped


def _copy_mappings(mappings, source: Job, new_job: Job, note_prefix: str) -> tuple[int, int]:
    """Copy Job↔PI mappings one savepoint each. Returns (copied, skipped)."""
    copied = skipped = 0
    for mapping in mappings:
        try:
            with db.session.begin_nested():
                db.session.add(JobPIMapping(
                    owner_id=new_job.owner_id,
                    job_id=new_job.id,
                    job_name=new_job.title,
                    pi_id=mapping.pi_id,
                    pi_name=mapping.pi_name,
                    pi_impact_value=mapping.pi_impact_value,
                    pi_target=mapping.pi_target or 0.0,
                    notes=f"{note_prefix}{source.title}",
                ))
                db.session.flush()
            copied += 1
        except SQLAlchemyError:
            skipped += 1
            logger.exception("Skipping mapping copy mapping_id=%s new_job=%s", mapping.id, new_job.id)
    return copied, skipped


def duplicate_job(source_job_id: int, overrides: dict | None, owner_id: str) -> dict:
    """
    Duplicate a job with its tasks and PI mappings.

    Args:
        source_job_id: Job to copy.
        overrides: Optional replacements for title, notes,
                   business_function_id and due_date.
        owner_id: Owner of the source job and of the copy.

    Returns:
        dict with keys: job, tasks_copied, tasks_skipped,
        mappings_copied, mappings_skipped, impact.

    Raises:
        NotFoundError: source job missing / deleted / other owner.
        StoreUnavailable: the source could not be read or the job shell
                          could not be created.
    """
    overrides = overrides or {}
    try:
        source = get_scoped(Job, source_job_id, owner_id=owner_id)
        source_tasks = _source_tasks_in_order(source)
        source_mappings = job_pi_mappings_for_job(source.id, owner_id)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Loading source job %s failed owner=%s", source_job_id, owner_id)
        raise StoreUnavailable("duplicate_job", exc.__class__.__name__) from exc

    source_next_task_id = source.next_task_id
    new_job = _create_shell(source, overrides, owner_id)

    id_map, tasks_skipped = _copy_tasks(source_tasks, new_job)
    new_job.task_ids = [id_map[t.id] for t in source_tasks if t.id in id_map]
    if source_next_task_id in id_map:
        new_job.next_task_id = id_map[source_next_task_id]
    ensure_next_task(new_job)

    note_prefix = current_app.config.get("DUPLICATE_NOTE_PREFIX", "Duplicated from job: ")
    mappings_copied, mappings_skipped = _copy_mappings(source_mappings, source, new_job, note_prefix)

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Committing copied tasks/mappings failed new_job=%s", new_job.id)
        tasks_skipped += len(id_map)
        mappings_skipped += mappings_copied
        id_map, mappings_copied = {}, 0

    impact = recompute_impact(owner_id)

    logger.info(
        "Duplicated job %s → %s tasks=%d/%d mappings=%d skipped_tasks=%d skipped_mappings=%d",
        source_job_id,
        new_job.id,
        len(id_map),
        len(source_tasks),
        mappings_copied,
        tasks_skipped,
        mappings_skipped,
        extra={"owner_id": owner_id, "job_id": new_job.id},
    )
    return {
        "job": new_job.to_dict(),
        "tasks_copied": len(id_map),
        "tasks_skipped": tasks_skipped,
        "mappings_copied": mappings_copied,
        "mappings_skipped": mappings_skipped,
        "impact": impact,
    }
