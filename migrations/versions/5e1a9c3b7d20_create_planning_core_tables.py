"""create_planning_core_tables

Creates the planning core schema:
  - qbos, progress_indicators       - objectives and their indicators
  - jobs, tasks                     - work items and their ordered task sequence
  - job_pi_mappings, pi_qbo_mappings - the two edges of the impact graph

Tables created conditionally (IF NOT EXISTS semantics) so the revision can run
against databases that already received these tables via db.create_all().

Revision ID: 5e1a9c3b7d20
Revises:
Create Date: 2026-10-19 09:12:44.318201
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '5e1a9c3b7d20'
down_revision = None
branch_labels = None
depends_on = None


def _owned_columns():
    return [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "owner_id", sa.String(length=64), nullable=False,
            comment="User or organization id that owns the row",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _deleted_at():
    return sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True)


def _owned_indexes(table, soft_delete=True):
    op.create_index(f"ix_{table}_owner_id", table, ["owner_id"])
    if soft_delete:
        op.create_index(f"ix_{table}_deleted_at", table, ["deleted_at"])


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    # ── QBO ──────────────────────────────────────────────────────────────
    if "qbos" not in existing:
        op.create_table(
            "qbos",
            *_owned_columns(),
            sa.Column("name", sa.String(length=300), nullable=False),
            sa.Column("unit", sa.String(length=50), nullable=True),
            sa.Column("beginning_value", sa.Float(), nullable=False),
            sa.Column("current_value", sa.Float(), nullable=False),
            sa.Column("target_value", sa.Float(), nullable=False),
            sa.Column("points", sa.Float(), nullable=False),
            sa.Column("deadline", sa.Date(), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            _deleted_at(),
            sa.PrimaryKeyConstraint("id"),
        )
        _owned_indexes("qbos")

    # ── ProgressIndicator ────────────────────────────────────────────────
    if "progress_indicators" not in existing:
        op.create_table(
            "progress_indicators",
            *_owned_columns(),
            sa.Column("name", sa.String(length=300), nullable=False),
            sa.Column(
                "improvement", sa.String(length=300), nullable=True,
                comment="Direction of improvement, free text",
            ),
            sa.Column("beginning_value", sa.Float(), nullable=False),
            sa.Column("target_value", sa.Float(), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            _deleted_at(),
            sa.PrimaryKeyConstraint("id"),
        )
        _owned_indexes("progress_indicators")

    # ── Job ──────────────────────────────────────────────────────────────
    if "jobs" not in existing:
        op.create_table(
            "jobs",
            *_owned_columns(),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("business_function_id", sa.String(length=64), nullable=True),
            sa.Column("due_date", sa.Date(), nullable=True),
            sa.Column("is_done", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("impact", sa.Float(), nullable=False, server_default="0"),
            sa.Column("task_ids", sa.JSON(), nullable=False),
            sa.Column("next_task_id", sa.Integer(), nullable=True),
            _deleted_at(),
            sa.PrimaryKeyConstraint("id"),
        )
        _owned_indexes("jobs")

    # ── Task ─────────────────────────────────────────────────────────────
    if "tasks" not in existing:
        op.create_table(
            "tasks",
            *_owned_columns(),
            sa.Column("job_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("owner", sa.String(length=150), nullable=True, comment="Assignee display name"),
            sa.Column("date", sa.Date(), nullable=True, comment="Scheduled date"),
            sa.Column("required_hours", sa.Float(), nullable=True),
            sa.Column("focus_level", sa.String(length=10), nullable=True, comment="High | Medium | Low"),
            sa.Column("joy_level", sa.String(length=10), nullable=True, comment="High | Medium | Low"),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
            _deleted_at(),
            sa.ForeignKeyConstraint(["job_id"], ["jobs.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        _owned_indexes("tasks")
        op.create_index("ix_tasks_job_id", "tasks", ["job_id"])

    # ── JobPIMapping ─────────────────────────────────────────────────────
    if "job_pi_mappings" not in existing:
        op.create_table(
            "job_pi_mappings",
            *_owned_columns(),
            sa.Column("job_id", sa.Integer(), nullable=False),
            sa.Column("pi_id", sa.Integer(), nullable=False),
            sa.Column("job_name", sa.String(length=300), nullable=True),
            sa.Column("pi_name", sa.String(length=300), nullable=True),
            sa.Column("pi_impact_value", sa.Float(), nullable=False),
            sa.Column(
                "pi_target", sa.Float(), nullable=False,
                comment="PI target snapshot at mapping time",
            ),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        _owned_indexes("job_pi_mappings", soft_delete=False)
        op.create_index("ix_job_pi_mappings_job_id", "job_pi_mappings", ["job_id"])
        op.create_index("ix_job_pi_mappings_pi_id", "job_pi_mappings", ["pi_id"])

    # ── PIQBOMapping ─────────────────────────────────────────────────────
    if "pi_qbo_mappings" not in existing:
        op.create_table(
            "pi_qbo_mappings",
            *_owned_columns(),
            sa.Column("pi_id", sa.Integer(), nullable=False),
            sa.Column("qbo_id", sa.Integer(), nullable=False),
            sa.Column("pi_target", sa.Float(), nullable=False),
            sa.Column("qbo_target", sa.Float(), nullable=False),
            sa.Column("qbo_impact", sa.Float(), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("owner_id", "pi_id", "qbo_id", name="uq_pi_qbo_mapping_owner_pi_qbo"),
        )
        _owned_indexes("pi_qbo_mappings", soft_delete=False)
        op.create_index("ix_pi_qbo_mappings_pi_id", "pi_qbo_mappings", ["pi_id"])
        op.create_index("ix_pi_qbo_mappings_qbo_id", "pi_qbo_mappings", ["qbo_id"])


def downgrade():
    for table in (
        "pi_qbo_mappings", "job_pi_mappings", "tasks", "jobs", "progress_indicators", "qbos",
    ):
        op.drop_table(table)
