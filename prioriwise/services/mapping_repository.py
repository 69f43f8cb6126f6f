"""
Mapping Repository - owner-scoped reads over the impact graph.

Read access over the two mapping collections (Job↔PI, PI↔QBO) and the
bulk snapshot the impact engine computes from. Nothing here writes.

Usage:
    from prioriwise.services.mapping_repository import load_owner_snapshot

    snapshot = load_owner_snapshot("user_123")
    snapshot.qbos, snapshot.pis, snapshot.jobs
    snapshot.job_pi_mappings, snapshot.pi_qbo_mappings
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from prioriwise.models.job import Job
from prioriwise.models.mapping import JobPIMapping, PIQBOMapping
from prioriwise.models.planning import QBO, ProgressIndicator

logger = logging.getLogger(__name__)


@dataclass
class OwnerSnapshot:
    """Everything one propagation run reads, loaded before any write."""

    owner_id: str
    qbos: list = field(default_factory=list)
    pis: list = field(default_factory=list)
    jobs: list = field(default_factory=list)
    job_pi_mappings: list = field(default_factory=list)
    pi_qbo_mappings: list = field(default_factory=list)


# ── Mapping reads ────────────────────────────────────────────────────────────


def job_pi_mappings_for_owner(owner_id: str) -> list[JobPIMapping]:
    return JobPIMapping.query_for_owner(owner_id).order_by(JobPIMapping.id).all()


def pi_qbo_mappings_for_owner(owner_id: str) -> list[PIQBOMapping]:
    return PIQBOMapping.query_for_owner(owner_id).order_by(PIQBOMapping.id).all()


def job_pi_mappings_for_job(job_id: int, owner_id: str) -> list[JobPIMapping]:
    """All Job↔PI mappings pointing at one job."""
    return (
        JobPIMapping.query_for_owner(owner_id)
        .filter_by(job_id=job_id)
        .order_by(JobPIMapping.id)
        .all()
    )


# ── Snapshot ─────────────────────────────────────────────────────────────────


def load_owner_snapshot(owner_id: str) -> OwnerSnapshot:
    """One bulk read per collection. Soft-deleted QBOs, PIs and Jobs are excluded.

    Raises:
        sqlalchemy.exc.SQLAlchemyError: store failures propagate to the caller.
    """
    snapshot = OwnerSnapshot(
        owner_id=owner_id,
        qbos=QBO.active_for_owner(owner_id).order_by(QBO.id).all(),
        pis=ProgressIndicator.active_for_owner(owner_id).order_by(ProgressIndicator.id).all(),
        jobs=Job.active_for_owner(owner_id).order_by(Job.id).all(),
        job_pi_mappings=job_pi_mappings_for_owner(owner_id),
        pi_qbo_mappings=pi_qbo_mappings_for_owner(owner_id),
    )
    logger.debug(
        "Loaded snapshot owner=%s qbos=%d pis=%d jobs=%d job_pi=%d pi_qbo=%d",
        owner_id,
        len(snapshot.qbos),
        len(snapshot.pis),
        len(snapshot.jobs),
        len(snapshot.job_pi_mappings),
        len(snapshot.pi_qbo_mappings),
    )
    return snapshot
