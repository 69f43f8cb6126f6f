"""
Progress Service - read-only reporting over jobs, tasks and objectives.

Formulas:
  job progress        = round(completed live tasks / live tasks × 100), 0 if none
  QBO actual progress = (current - beginning) / (target - beginning) × 100
  QBO expected        = PI progress from completed jobs
                          pi_progress[pi] = Σ pi_impact_value(done jobs) / pi_range
                        pushed through PI↔QBO mappings
                          expected[qbo] = Σ qbo_impact × pi_progress[pi] / qbo_range × 100
  Percentages are clamped to [0, 100]; a zero range contributes 0.

Usage:
    from prioriwise.services import progress_service as ps
    ps.job_progress([1, 2], "user_123")
    ps.qbo_expected_progress("user_123")
"""

import logging

from prioriwise.models.job import Job, Task
from prioriwise.models.planning import QBO, ProgressIndicator
from prioriwise.services.helpers.scoped_queries import get_scoped, get_scoped_or_none
from prioriwise.services.mapping_repository import (
    job_pi_mappings_for_owner,
    pi_qbo_mappings_for_owner,
)

logger = logging.getLogger(__name__)


def _clamp_pct(value: float) -> float:
    return min(max(value, 0.0), 100.0)


# ── Job progress ────────────────────────────────────────────────────────────

def _task_counts(job_id: int, owner_id: str) -> dict:
    tasks = Task.active_for_owner(owner_id).filter_by(job_id=job_id).all()
    return {"total": len(tasks), "completed": sum(1 for t in tasks if t.completed)}


def job_task_counts(job_id: int, owner_id: str) -> dict:
    """Live task totals for one job. Raises NotFoundError for unknown jobs."""
    get_scoped(Job, job_id, owner_id=owner_id)
    return _task_counts(job_id, owner_id)


def job_progress(job_ids, owner_id: str) -> dict:
    """Completion percentage per job id. Unknown or foreign jobs report 0."""
    result = {}
    for job_id in job_ids:
        if get_scoped_or_none(Job, job_id, owner_id=owner_id) is None:
            result[job_id] = 0
            continue
        counts = _task_counts(job_id, owner_id)
        if counts["total"] == 0:
            result[job_id] = 0
        else:
            result[job_id] = round(counts["completed"] / counts["total"] * 100)
    return result


# ── QBO progress ────────────────────────────────────────────────────────────

def qbo_actual_progress(owner_id: str) -> dict:
    """Measured progress of every active QBO, percent."""
    result = {}
    for qbo in QBO.active_for_owner(owner_id).all():
        span = qbo.progress_range
        if span == 0:
            result[qbo.id] = 0.0
            continue
        result[qbo.id] = _clamp_pct((qbo.current_value - qbo.beginning_value) / span * 100)
    return result


def qbo_expected_progress(owner_id: str) -> dict:
    """Progress each QBO should show given the jobs marked done, percent."""
    qbos = {q.id: q for q in QBO.active_for_owner(owner_id).all()}
    pis = {p.id: p for p in ProgressIndicator.active_for_owner(owner_id).all()}
    done_job_ids = {
        j.id for j in Job.active_for_owner(owner_id).filter(Job.is_done.is_(True)).all()
    }

    pi_progress = {pi_id: 0.0 for pi_id in pis}
    for mapping in job_pi_mappings_for_owner(owner_id):
        if mapping.job_id in done_job_ids and mapping.pi_id in pi_progress:
            pi_progress[mapping.pi_id] += mapping.pi_impact_value or 0.0
    for pi_id, pi in pis.items():
        span = pi.progress_range
        pi_progress[pi_id] = pi_progress[pi_id] / span if span != 0 else 0.0

    raw = {qbo_id: 0.0 for qbo_id in qbos}
    for mapping in pi_qbo_mappings_for_owner(owner_id):
        qbo = qbos.get(mapping.qbo_id)
        if qbo is None or mapping.pi_id not in pi_progress:
            continue
        span = qbo.progress_range
        if span != 0:
            raw[qbo.id] += (mapping.qbo_impact or 0.0) * pi_progress[mapping.pi_id] / span

    logger.debug("Expected QBO progress owner=%s done_jobs=%d", owner_id, len(done_job_ids))
    return {qbo_id: _clamp_pct(value * 100) for qbo_id, value in raw.items()}


def qbo_progress_report(owner_id: str) -> list[dict]:
    """Actual vs expected progress per QBO, for the progress chart."""
    actual = qbo_actual_progress(owner_id)
    expected = qbo_expected_progress(owner_id)
    return [
        {
            "qbo_id": qbo.id,
            "name": qbo.name,
            "achieved_outcome": actual.get(qbo.id, 0.0),
            "expected_outcome": expected.get(qbo.id, 0.0),
        }
        for qbo in QBO.active_for_owner(owner_id).order_by(QBO.id).all()
    ]


# ── Ranking ─────────────────────────────────────────────────────────────────

def _open_jobs_by_impact(owner_id: str):
    return (
        Job.active_for_owner(owner_id)
        .filter(Job.is_done.is_(False))
        .order_by(Job.impact.desc(), Job.id)
    )


def top_jobs_by_impact(owner_id: str, limit: int = 5) -> list[dict]:
    """Open jobs with the highest impact first."""
    return [j.to_dict() for j in _open_jobs_by_impact(owner_id).limit(limit).all()]


def next_steps(owner_id: str) -> list[dict]:
    """The next task of every open job, highest-impact job first."""
    steps = []
    for job in _open_jobs_by_impact(owner_id).filter(Job.next_task_id.isnot(None)).all():
        task = get_scoped_or_none(Task, job.next_task_id, owner_id=owner_id)
        if task is None or not task.is_pending:
            logger.warning("Job %s points at unusable next task %s", job.id, job.next_task_id)
            continue
        step = task.to_dict()
        step["job_title"] = job.title
        step["job_impact"] = job.impact
        steps.append(step)
    return steps
