"""
Prioriwise Core
Planning domain model - objectives and indicators.

Models:
    - QBO: Quarterly Business Objective, weighted by points
    - ProgressIndicator: metric that feeds one or more QBOs
"""

from prioriwise.models import db
from prioriwise.models.base import OwnedModel
from prioriwise.models.soft_delete import SoftDeleteMixin


class QBO(SoftDeleteMixin, OwnedModel):
    """
    Quarterly Business Objective.

    `points` is the importance weight of the objective. Across all QBOs of an
    owner the points are expected to add up to about 100; this is not enforced.
    """

    __tablename__ = "qbos"

    name = db.Column(db.String(300), nullable=False)
    unit = db.Column(db.String(50), default="")
    beginning_value = db.Column(db.Float, nullable=False, default=0.0)
    current_value = db.Column(db.Float, nullable=False, default=0.0)
    target_value = db.Column(db.Float, nullable=False)
    points = db.Column(db.Float, nullable=False, default=0.0)
    deadline = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, default="")

    @property
    def progress_range(self) -> float:
        return (self.target_value or 0.0) - (self.beginning_value or 0.0)

    def to_dict(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "unit": self.unit,
            "beginning_value": self.beginning_value,
            "current_value": self.current_value,
            "target_value": self.target_value,
            "points": self.points,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "notes": self.notes,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<QBO {self.id}: {self.name[:40]}>"


class ProgressIndicator(SoftDeleteMixin, OwnedModel):
    """Progress Indicator (PI) measuring progress toward QBOs."""

    __tablename__ = "progress_indicators"

    name = db.Column(db.String(300), nullable=False)
    improvement = db.Column(db.String(300), default="", comment="Direction of improvement, free text")
    beginning_value = db.Column(db.Float, nullable=False, default=0.0)
    target_value = db.Column(db.Float, nullable=False)
    notes = db.Column(db.Text, default="")

    @property
    def progress_range(self) -> float:
        return (self.target_value or 0.0) - (self.beginning_value or 0.0)

    def to_dict(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "improvement": self.improvement,
            "beginning_value": self.beginning_value,
            "target_value": self.target_value,
            "notes": self.notes,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<ProgressIndicator {self.id}: {self.name[:40]}>"
