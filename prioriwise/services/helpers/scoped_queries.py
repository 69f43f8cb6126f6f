"""
Owner-scoped query helpers.

Every get-by-id in the core MUST go through these helpers instead of
Model.query.get(pk) or db.session.get(Model, pk). A direct .get() ignores
owner_id and would let one owner's request touch another owner's Job.

Usage:
    job = get_scoped(Job, job_id, owner_id=owner_id)
    task = get_scoped_or_none(Task, task_id, owner_id=owner_id)

    # Row lock for read-modify-write sequences (no-op on SQLite)
    job = get_scoped(Job, job_id, owner_id=owner_id, for_update=True)

Soft-deleted rows (models with `deleted_at`) are treated as missing unless
include_deleted=True is passed.
"""

import logging

from sqlalchemy import select

from prioriwise.core.exceptions import NotFoundError
from prioriwise.models import db

logger = logging.getLogger(__name__)


def get_scoped(
    model,
    pk: int,
    *,
    owner_id: str | None,
    include_deleted: bool = False,
    for_update: bool = False,
):
    """Fetch a single entity by PK inside one owner's scope.

    Args:
        model: SQLAlchemy model class with `id` and `owner_id` columns.
        pk: Primary key value to look up.
        owner_id: Owner the row must belong to. Required.
        include_deleted: Also return soft-deleted rows.
        for_update: Issue SELECT ... FOR UPDATE to serialize writers.

    Returns:
        The model instance if found within the given scope.

    Raises:
        ValueError: If owner_id is missing (an unscoped lookup is a bug).
        NotFoundError: If the entity does not exist, is soft-deleted, OR
                       belongs to another owner. The cases are
                       intentionally indistinguishable.
    """
    if not owner_id:
        raise ValueError(
            f"{model.__name__} id={pk} requires owner_id. "
            "Unscoped lookups are forbidden - they bypass owner isolation."
        )

    stmt = select(model).where(model.id == pk, model.owner_id == owner_id)
    if not include_deleted and hasattr(model, "deleted_at"):
        stmt = stmt.where(model.deleted_at.is_(None))
    if for_update:
        stmt = stmt.with_for_update()

    result = db.session.execute(stmt).scalar_one_or_none()

    if result is None:
        logger.debug("get_scoped: %s id=%s not found for owner=%s", model.__name__, pk, owner_id)
        raise NotFoundError(resource=model.__name__, resource_id=pk, owner_id=owner_id)

    return result


def get_scoped_or_none(model, pk: int, *, owner_id: str | None, include_deleted: bool = False):
    """Same as get_scoped but returns None instead of raising NotFoundError.

    Still raises ValueError when owner_id is missing.
    """
    try:
        return get_scoped(model, pk, owner_id=owner_id, include_deleted=include_deleted)
    except NotFoundError:
        return None
