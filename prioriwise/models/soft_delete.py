"""
Soft Delete Mixin

Adds `deleted_at` timestamp column and query helpers for soft delete.
QBOs, PIs, Jobs and Tasks are never physically removed by the core; a
deleted row simply drops out of every active query.

Usage:
    class Task(SoftDeleteMixin, OwnedModel):
        ...

    task.soft_delete()
    db.session.commit()

    Task.query_active().filter_by(owner_id=owner_id).all()
"""

from datetime import datetime, timezone

from prioriwise.models import db


class SoftDeleteMixin:
    """Mixin that adds soft delete support to any SQLAlchemy model."""

    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, default=None, index=True)

    def soft_delete(self):
        """Mark this record as deleted."""
        self.deleted_at = datetime.now(timezone.utc)

    def restore(self):
        """Restore a soft-deleted record."""
        self.deleted_at = None

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    @classmethod
    def query_active(cls):
        """Return a query that excludes soft-deleted records."""
        return cls.query.filter(cls.deleted_at.is_(None))

    @classmethod
    def active_for_owner(cls, owner_id):
        """Active (non-deleted) rows of one owner."""
        return cls.query_active().filter(cls.owner_id == owner_id)
