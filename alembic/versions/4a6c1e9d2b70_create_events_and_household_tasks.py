"""Create events and household_tasks

Revision ID: 4a6c1e9d2b70
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4a6c1e9d2b70"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "events",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("start_time", sa.String(), nullable=False),
        sa.Column("end_time", sa.String(), nullable=False),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("emoji", sa.String(), nullable=True),
        sa.Column("period", sa.String(), nullable=False),
        sa.Column("recurrence", sa.String(), nullable=False, server_default="never"),
        sa.Column("recurrence_end", sa.DateTime(), nullable=True),
        sa.Column("recurrence_rule", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index(op.f("ix_events_date"), "events", ["date"], unique=False)

    op.create_table(
        "household_tasks",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("frequency", sa.String(), nullable=False, server_default="once"),
        sa.Column("assigned_to", sa.String(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("due_date", sa.DateTime(), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("next_due_date", sa.DateTime(), nullable=True),
        sa.Column("recurrence_rule", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(op.f("ix_household_tasks_assigned_to"), "household_tasks", ["assigned_to"], unique=False)
    op.create_index(op.f("ix_household_tasks_next_due_date"), "household_tasks", ["next_due_date"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_household_tasks_next_due_date"), table_name="household_tasks")
    op.drop_index(op.f("ix_household_tasks_assigned_to"), table_name="household_tasks")
    op.drop_table("household_tasks")
    op.drop_index(op.f("ix_events_date"), table_name="events")
    op.drop_table("events")
