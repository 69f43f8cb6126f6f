"""
Impact Propagation Engine

Derives the `impact` score of every Job of one owner by propagating weighted
contribution values through the two-level mapping graph:

  QBO.points / (QBO.target - QBO.beginning)          → points_per_unit[qbo]
  Σ PIQBOMapping.qbo_impact × points_per_unit[qbo]    → pi_score[pi]
  Σ JobPIMapping.pi_impact_value × pi_score[pi] / pi_range[pi] → Job.impact

Key Rules:
  - single pass, no fixed-point iteration (graph depth is exactly two)
  - every Job starts at 0; jobs with no mapped PI stay at 0
  - a QBO or PI with a zero (or non-finite) progress range contributes
    exactly 0 and is reported as skipped; NaN/Infinity never reach storage
  - mappings whose Job, PI or QBO is missing or deleted are ignored and
    counted as orphaned
  - no rounding; presentation formats the value
  - full read → full compute → write; a failed read or write commits nothing

Usage:
    from prioriwise.services.impact_engine import compute_impact, recompute_impact

    result = recompute_impact("user_123")
    result["success"], result["updated_job_count"]
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError

from prioriwise.core.exceptions import ComputationSkipped, StoreUnavailable
from prioriwise.models import db
from prioriwise.services.mapping_repository import OwnerSnapshot, load_owner_snapshot

logger = logging.getLogger(__name__)


@dataclass
class ImpactComputation:
    """In-memory result of one propagation pass."""

    impacts: dict[int, float] = field(default_factory=dict)
    contributing_job_ids: set[int] = field(default_factory=set)
    skipped: list[ComputationSkipped] = field(default_factory=list)
    orphaned_mapping_count: int = 0


# ── Range guards ────────────────────────────────────────────────────────────

def _progress_range(resource: str, entity) -> float:
    """target - beginning, or raise ComputationSkipped when it cannot divide."""
    beginning = entity.beginning_value or 0.0
    target = entity.target_value or 0.0
    span = target - beginning
    if not math.isfinite(span):
        raise ComputationSkipped(resource, entity.id, "non-finite progress range")
    if span == 0:
        raise ComputationSkipped(resource, entity.id, "zero progress range")
    return span


def points_per_unit(qbo) -> float:
    """QBO points earned per unit of progress toward its target."""
    span = _progress_range("QBO", qbo)
    factor = (qbo.points or 0.0) / span
    if not math.isfinite(factor):
        raise ComputationSkipped("QBO", qbo.id, "non-finite points")
    return factor


# ── Pure computation ────────────────────────────────────────────────────────

def compute_impact(snapshot: OwnerSnapshot) -> ImpactComputation:
    """
    Compute the impact of every job in the snapshot. Touches no storage.

    Returns:
        ImpactComputation with an entry in `impacts` for every job of the
        snapshot (0.0 when nothing contributes).
    """
    result = ImpactComputation(impacts={job.id: 0.0 for job in snapshot.jobs})

    # Step 2: QBO points per unit of progress
    qbo_factor: dict[int, float] = {}
    for qbo in snapshot.qbos:
        try:
            qbo_factor[qbo.id] = points_per_unit(qbo)
        except ComputationSkipped as skip:
            qbo_factor[qbo.id] = 0.0
            result.skipped.append(skip)

    # Step 3: PI ranges, scores start at 0
    pi_range: dict[int, float | None] = {}
    pi_score: dict[int, float] = {}
    for pi in snapshot.pis:
        try:
            pi_range[pi.id] = _progress_range("PI", pi)
        except ComputationSkipped as skip:
            pi_range[pi.id] = None
            result.skipped.append(skip)
        pi_score[pi.id] = 0.0

    # Step 4: PI score in QBO point currency
    for mapping in snapshot.pi_qbo_mappings:
        if mapping.pi_id not in pi_score or mapping.qbo_id not in qbo_factor:
            result.orphaned_mapping_count += 1
            continue
        pi_score[mapping.pi_id] += (mapping.qbo_impact or 0.0) * qbo_factor[mapping.qbo_id]

    # Step 5: job share of each PI
    for mapping in snapshot.job_pi_mappings:
        if mapping.job_id not in result.impacts or mapping.pi_id not in pi_score:
            result.orphaned_mapping_count += 1
            continue
        span = pi_range[mapping.pi_id]
        if span is None:
            continue
        contribution = (mapping.pi_impact_value or 0.0) * pi_score[mapping.pi_id] / span
        if not math.isfinite(contribution):
            result.skipped.append(
                ComputationSkipped("JobPIMapping", mapping.id, "non-finite contribution")
            )
            continue
        result.impacts[mapping.job_id] += contribution
        result.contributing_job_ids.add(mapping.job_id)

    return result


# ── Recompute (read → compute → write) ──────────────────────────────────────

def _failure(owner_id: str, error: StoreUnavailable) -> dict:
    return {
        "owner_id": owner_id,
        "success": False,
        "updated_job_count": 0,
        "error": error.to_dict(),
    }


def recompute_impact(owner_id: str) -> dict:
    """
    Full propagation pass for one owner.

    Reads the owner snapshot, computes every impact in memory, then writes
    `impact` on each job whose stored value differs and commits once.

    Returns:
        dict with keys: owner_id, success, updated_job_count,
        contributing_job_count, skipped, orphaned_mapping_count.
        On store failure: success=False, updated_job_count=0 and an
        `error` dict of kind StoreUnavailable. Nothing is committed.
    """
    try:
        snapshot = load_owner_snapshot(owner_id)
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Impact recompute read failed owner=%s", owner_id)
        return _failure(owner_id, StoreUnavailable("recompute_impact", f"read failed: {exc.__class__.__name__}"))

    computation = compute_impact(snapshot)
    for skip in computation.skipped:
        logger.warning("Impact recompute owner=%s: %s", owner_id, skip)

    updated = 0
    try:
        for job in snapshot.jobs:
            value = computation.impacts[job.id]
            if job.impact != value:
                job.impact = value
                updated += 1
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Impact recompute write failed owner=%s", owner_id)
        return _failure(owner_id, StoreUnavailable("recompute_impact", f"write failed: {exc.__class__.__name__}"))

    logger.info(
        "Impact recomputed owner=%s jobs=%d updated=%d contributing=%d skipped=%d orphaned=%d",
        owner_id,
        len(snapshot.jobs),
        updated,
        len(computation.contributing_job_ids),
        len(computation.skipped),
        computation.orphaned_mapping_count,
        extra={"owner_id": owner_id},
    )
    return {
        "owner_id": owner_id,
        "success": True,
        "updated_job_count": updated,
        "contributing_job_count": len(computation.contributing_job_ids),
        "skipped": [skip.to_dict() for skip in computation.skipped],
        "orphaned_mapping_count": computation.orphaned_mapping_count,
    }
