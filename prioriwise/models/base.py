"""
OwnedModel - Abstract base class for owner-scoped models.

Every planning entity belongs to exactly one owner (a user or an
organization). Models inherit from OwnedModel instead of db.Model
directly. This adds:
  - owner_id column with index
  - query_for_owner(owner_id) classmethod
  - created_at / updated_at timestamps
"""

from datetime import datetime, timezone

from prioriwise.models import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OwnedModel(db.Model):
    """Abstract base for owner-scoped tables."""
    __abstract__ = True

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(
        db.String(64),
        nullable=False,
        index=True,
        comment="User or organization id that owns the row",
    )
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    @classmethod
    def query_for_owner(cls, owner_id):
        """Return a query filtered by owner_id."""
        return cls.query.filter_by(owner_id=owner_id)

    def _timestamps(self):
        return {
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
