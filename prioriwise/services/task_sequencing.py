"""
Task Sequencing Manager

Keeps every Job's `next_task_id` cursor and its ordered `task_ids`
sequence consistent as tasks are created, completed, reopened, deleted,
reordered, or explicitly designated.

Task states (from the Job's perspective):
  pending   - not completed, not deleted
  completed - completed, not deleted
  deleted   - soft-deleted

Selection rule:
  next task = first id in `task_ids`, scanned in order, whose task is pending;
  None when no pending task exists.

Transitions:
  created   → appended to `task_ids`; selection re-runs only when no next task
  completed → selection re-runs only when it was the next task
  reopened  → does not reclaim "next"; selection re-runs only when no next task
  deleted   → removed from `task_ids`; selection re-runs when it was the next task
  reorder   → wholesale permutation of the same ids; the next task keeps its
              position or the request is rejected (ValidationError, nothing written)
  set next  → any pending task of the job, or None

Rules:
  - owner_id is always an explicit parameter.
  - Mutations of one Job are serialized: a per-job process lock plus
    SELECT ... FOR UPDATE on the Job row.
  - db.session.commit() for transitions happens only in this file.
  - After every transition `next_task_id` is None or a pending task of the job.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from prioriwise.core.exceptions import CoreError, StoreUnavailable, ValidationError
from prioriwise.models import db
from prioriwise.models.job import Job, Task
from prioriwise.services.helpers.scoped_queries import get_scoped

logger = logging.getLogger(__name__)

# Striped per-job locks; jobs on the same stripe serialize with each other
LOCK_STRIPES = 64
_job_locks = tuple(threading.Lock() for _ in range(LOCK_STRIPES))


# ── Selection rule ──────────────────────────────────────────────────────────

def select_next_task(task_ids, tasks_by_id: dict) -> int | None:
    """Return the first pending task id in sequence order, or None."""
    for task_id in task_ids or []:
        task = tasks_by_id.get(task_id)
        if task is not None and task.is_pending:
            return task_id
    return None


def _tasks_by_id(job: Job) -> dict[int, Task]:
    tasks = Task.query.filter_by(job_id=job.id, owner_id=job.owner_id).all()
    return {t.id: t for t in tasks}


def next_task_is_valid(job: Job, tasks_by_id: dict | None = None) -> bool:
    """True when `next_task_id` is unset or names a pending task of this job."""
    if job.next_task_id is None:
        return True
    if job.next_task_id not in (job.task_ids or []):
        return False
    tasks = tasks_by_id if tasks_by_id is not None else _tasks_by_id(job)
    task = tasks.get(job.next_task_id)
    return task is not None and task.job_id == job.id and task.is_pending


def ensure_next_task(job: Job) -> int | None:
    """Assign the selection rule's choice when the cursor is unset or dangling.

    Does not commit; the caller owns the transaction.
    """
    tasks = _tasks_by_id(job)
    if job.next_task_id is None or not next_task_is_valid(job, tasks):
        job.next_task_id = select_next_task(job.task_ids, tasks)
    return job.next_task_id


def _reselect(job: Job) -> None:
    job.next_task_id = select_next_task(job.task_ids, _tasks_by_id(job))


# ── Serialization ───────────────────────────────────────────────────────────

def _lock_for(job_id: int) -> threading.Lock:
    return _job_locks[job_id % LOCK_STRIPES]


@contextmanager
def _job_lock(job_id: int):
    with _lock_for(job_id):
        yield


@contextmanager
def _job_transition(operation: str, job_id: int, owner_id: str):
    """Lock the job, yield it for mutation, commit once.

    Any core error rolls back and propagates unchanged; store errors roll
    back and surface as StoreUnavailable.
    """
    with _job_lock(job_id):
        try:
            job = get_scoped(Job, job_id, owner_id=owner_id, for_update=True)
            yield job
            db.session.commit()
        except CoreError:
            db.session.rollback()
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("%s failed job_id=%s owner=%s", operation, job_id, owner_id)
            raise StoreUnavailable(operation, exc.__class__.__name__) from exc


def _get_task(operation: str, task_id: int, owner_id: str, *, include_deleted: bool = False) -> Task:
    try:
        return get_scoped(Task, task_id, owner_id=owner_id, include_deleted=include_deleted)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("%s failed loading task_id=%s owner=%s", operation, task_id, owner_id)
        raise StoreUnavailable(operation, exc.__class__.__name__) from exc


def _log_transition(event: str, task_id, job: Job) -> None:
    logger.info(
        "Task %s %s job=%s next_task=%s",
        task_id,
        event,
        job.id,
        job.next_task_id,
        extra={"owner_id": job.owner_id, "job_id": job.id},
    )


# ── Lifecycle hooks ─────────────────────────────────────────────────────────

def on_task_created(task_id: int, job_id: int, owner_id: str) -> Job:
    """Append a freshly created task to its job's sequence.

    Raises:
        NotFoundError: task or job missing / deleted / other owner.
        ValidationError: the task belongs to a different job.
    """
    task = _get_task("on_task_created", task_id, owner_id)
    if task.job_id != job_id:
        raise ValidationError(
            "Task does not belong to job",
            details={"task_id": task_id, "job_id": job_id, "task_job_id": task.job_id},
        )
    with _job_transition("on_task_created", job_id, owner_id) as job:
        current = list(job.task_ids or [])
        if task.id not in current:
            job.task_ids = current + [task.id]
        if job.next_task_id is None:
            _reselect(job)
    _log_transition("created", task_id, job)
    return job


def on_task_completed(task_id: int, owner_id: str) -> Job:
    """Mark the task completed; move the cursor on if it was the next task."""
    task = _get_task("on_task_completed", task_id, owner_id)
    with _job_transition("on_task_completed", task.job_id, owner_id) as job:
        task.completed = True
        if job.next_task_id == task.id:
            _reselect(job)
    _log_transition("completed", task_id, job)
    return job


def on_task_reopened(task_id: int, owner_id: str) -> Job:
    """Mark the task pending again. Only fills an empty cursor."""
    task = _get_task("on_task_reopened", task_id, owner_id)
    with _job_transition("on_task_reopened", task.job_id, owner_id) as job:
        task.completed = False
        if job.next_task_id is None:
            _reselect(job)
    _log_transition("reopened", task_id, job)
    return job


def on_task_deleted(task_id: int, owner_id: str) -> Job:
    """Soft-delete the task (if not already) and drop it from the sequence."""
    task = _get_task("on_task_deleted", task_id, owner_id, include_deleted=True)
    with _job_transition("on_task_deleted", task.job_id, owner_id) as job:
        if not task.is_deleted:
            task.soft_delete()
        job.task_ids = [tid for tid in (job.task_ids or []) if tid != task.id]
        if job.next_task_id == task.id:
            _reselect(job)
    _log_transition("deleted", task_id, job)
    return job


# ── Caller-driven changes ───────────────────────────────────────────────────

def set_next_task(job_id: int, task_id: int | None, owner_id: str) -> Job:
    """Explicitly designate the next task, or clear it with None.

    Raises:
        NotFoundError: job or task missing / deleted / other owner.
        ValidationError: task belongs to another job or is not pending.
    """
    with _job_transition("set_next_task", job_id, owner_id) as job:
        if task_id is None:
            job.next_task_id = None
        else:
            task = get_scoped(Task, task_id, owner_id=owner_id)
            if task.job_id != job.id or task.id not in (job.task_ids or []):
                raise ValidationError(
                    "Task does not belong to job",
                    details={"task_id": task_id, "job_id": job_id},
                )
            if not task.is_pending:
                raise ValidationError(
                    "Only a pending task can be the next task",
                    details={"task_id": task_id, "state": task.state},
                )
            job.next_task_id = task.id
    _log_transition("set as next", task_id, job)
    return job


def reorder_tasks(job_id: int, ordered_task_ids: list[int], owner_id: str) -> Job:
    """Replace the job's sequence with a permutation of the same task ids.

    Raises:
        NotFoundError: job missing / deleted / other owner.
        ValidationError: duplicated ids, id set differs from the job's live
            tasks, or the next task would change position. Nothing is written.
    """
    with _job_transition("reorder_tasks", job_id, owner_id) as job:
        current = list(job.task_ids or [])
        proposed = list(ordered_task_ids)

        if len(set(proposed)) != len(proposed):
            raise ValidationError("Task order contains duplicate ids", details={"task_ids": proposed})

        missing = set(current) - set(proposed)
        unexpected = set(proposed) - set(current)
        if missing or unexpected:
            raise ValidationError(
                "Task order must contain exactly the job's live tasks",
                details={"missing": sorted(missing), "unexpected": sorted(unexpected)},
            )

        next_id = job.next_task_id
        if next_id is not None and next_id in current and proposed.index(next_id) != current.index(next_id):
            raise ValidationError(
                "The next task cannot be reordered",
                details={
                    "next_task_id": next_id,
                    "position": current.index(next_id),
                    "requested_position": proposed.index(next_id),
                },
            )

        job.task_ids = proposed
    logger.info("Reordered %d tasks job=%s", len(proposed), job_id, extra={"owner_id": owner_id, "job_id": job_id})
    return job
