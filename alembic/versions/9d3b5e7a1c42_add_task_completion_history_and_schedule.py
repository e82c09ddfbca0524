"""Add task completion history, task weekdays/month_day, event timezone

Revision ID: 9d3b5e7a1c42
Revises: 4a6c1e9d2b70
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "9d3b5e7a1c42"
down_revision: Union[str, Sequence[str], None] = "4a6c1e9d2b70"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.add_column("events", sa.Column("timezone", sa.String(), nullable=True))
    op.add_column("household_tasks", sa.Column("weekdays", sa.String(), nullable=True))
    op.add_column("household_tasks", sa.Column("month_day", sa.Integer(), nullable=True))

    op.create_table(
        "task_completion_history",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "task_id",
            sa.String(),
            sa.ForeignKey("household_tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("completed_by", sa.String(), nullable=True),
        sa.Column("completed_date", sa.DateTime(), nullable=False),
        sa.Column("expected_date", sa.DateTime(), nullable=True),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        op.f("ix_task_completion_history_task_id"), "task_completion_history", ["task_id"], unique=False
    )
    op.create_index(
        op.f("ix_task_completion_history_completed_date"),
        "task_completion_history",
        ["completed_date"],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_task_completion_history_completed_date"), table_name="task_completion_history")
    op.drop_index(op.f("ix_task_completion_history_task_id"), table_name="task_completion_history")
    op.drop_table("task_completion_history")
    op.drop_column("household_tasks", "month_day")
    op.drop_column("household_tasks", "weekdays")
    op.drop_column("events", "timezone")
