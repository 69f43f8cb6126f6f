"""
Prioriwise Core
Work domain model - Jobs and their Tasks.

Models:
    - Job: unit of work moving one or more PIs; owns an ordered task sequence
    - Task: atomic, completable unit of work belonging to one Job

Task order lives on the Job (`task_ids`), not on the Task rows. The Job's
`next_task_id` is the cursor into that sequence, maintained by
prioriwise.services.task_sequencing.
"""

from prioriwise.models import db
from prioriwise.models.base import OwnedModel
from prioriwise.models.soft_delete import SoftDeleteMixin


class Job(SoftDeleteMixin, OwnedModel):
    """
    Job entity.

    `impact` is a derived value written only by the impact engine. It may be
    stale between recompute runs.
    """

    __tablename__ = "jobs"

    title = db.Column(db.String(300), nullable=False)
    notes = db.Column(db.Text, default="")
    business_function_id = db.Column(db.String(64), nullable=True)
    due_date = db.Column(db.Date, nullable=True)
    is_done = db.Column(db.Boolean, nullable=False, default=False)
    impact = db.Column(db.Float, nullable=False, default=0.0)

    # Ordered sequence of Task ids. Always reassign a new list; in-place
    # mutation of a JSON column is not tracked by the session.
    task_ids = db.Column(db.JSON, nullable=False, default=list)
    next_task_id = db.Column(db.Integer, nullable=True)

    tasks = db.relationship("Task", back_populates="job", lazy="dynamic")

    def to_dict(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "notes": self.notes,
            "business_function_id": self.business_function_id,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "is_done": self.is_done,
            "impact": self.impact,
            "task_ids": list(self.task_ids or []),
            "next_task_id": self.next_task_id,
            "is_deleted": self.is_deleted,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<Job {self.id}: {self.title[:40]}>"


class Task(SoftDeleteMixin, OwnedModel):
    """Task entity. States: pending, completed, deleted."""

    __tablename__ = "tasks"

    job_id = db.Column(
        db.Integer, db.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    owner = db.Column(db.String(150), nullable=True, comment="Assignee display name")
    date = db.Column(db.Date, nullable=True, comment="Scheduled date")
    required_hours = db.Column(db.Float, nullable=True)
    focus_level = db.Column(db.String(10), nullable=True, comment="High | Medium | Low")
    joy_level = db.Column(db.String(10), nullable=True, comment="High | Medium | Low")
    notes = db.Column(db.Text, default="")
    completed = db.Column(db.Boolean, nullable=False, default=False)

    job = db.relationship("Job", back_populates="tasks")

    # Attributes carried over when a task is copied to another job.
    COPYABLE_FIELDS = ("title", "owner", "required_hours", "focus_level", "joy_level", "notes")

    @property
    def is_pending(self) -> bool:
        return not self.completed and not self.is_deleted

    @property
    def state(self) -> str:
        if self.is_deleted:
            return "deleted"
        return "completed" if self.completed else "pending"

    def to_dict(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "job_id": self.job_id,
            "title": self.title,
            "owner": self.owner,
            "date": self.date.isoformat() if self.date else None,
            "required_hours": self.required_hours,
            "focus_level": self.focus_level,
            "joy_level": self.joy_level,
            "notes": self.notes,
            "completed": self.completed,
            "state": self.state,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<Task {self.id}: {self.title[:40]}>"
