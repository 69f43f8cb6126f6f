"""
Prioriwise Core
Mapping domain model - the two edges of the impact graph.

Models:
    - JobPIMapping: how much of a PI's target a Job is responsible for
    - PIQBOMapping: how much of a QBO's target range a PI is responsible for
"""

from prioriwise.models import db
from prioriwise.models.base import OwnedModel


class JobPIMapping(OwnedModel):
    """Job → PI edge."""

    __tablename__ = "job_pi_mappings"

    job_id = db.Column(db.Integer, nullable=False, index=True)
    pi_id = db.Column(db.Integer, nullable=False, index=True)
    job_name = db.Column(db.String(300), default="")
    pi_name = db.Column(db.String(300), default="")
    pi_impact_value = db.Column(db.Float, nullable=False, default=0.0)
    pi_target = db.Column(db.Float, nullable=False, default=0.0, comment="PI target snapshot at mapping time")
    notes = db.Column(db.Text, default="")

    def to_dict(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "job_id": self.job_id,
            "pi_id": self.pi_id,
            "job_name": self.job_name,
            "pi_name": self.pi_name,
            "pi_impact_value": self.pi_impact_value,
            "pi_target": self.pi_target,
            "notes": self.notes,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<JobPIMapping {self.id}: job={self.job_id} pi={self.pi_id}>"


class PIQBOMapping(OwnedModel):
    """PI → QBO edge. One mapping per (owner, PI, QBO)."""

    __tablename__ = "pi_qbo_mappings"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "pi_id", "qbo_id", name="uq_pi_qbo_mapping_owner_pi_qbo"),
    )

    pi_id = db.Column(db.Integer, nullable=False, index=True)
    qbo_id = db.Column(db.Integer, nullable=False, index=True)
    pi_target = db.Column(db.Float, nullable=False, default=0.0)
    qbo_target = db.Column(db.Float, nullable=False, default=0.0)
    qbo_impact = db.Column(db.Float, nullable=False, default=0.0)
    notes = db.Column(db.Text, default="")

    def to_dict(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "pi_id": self.pi_id,
            "qbo_id": self.qbo_id,
            "pi_target": self.pi_target,
            "qbo_target": self.qbo_target,
            "qbo_impact": self.qbo_impact,
            "notes": self.notes,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<PIQBOMapping {self.id}: pi={self.pi_id} qbo={self.qbo_id}>"
