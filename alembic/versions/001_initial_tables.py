"""001_initial_tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates all initial tables for Sprint Board:
  - sprints
  - tasks
  - task_images
  - execution_logs
  - activity_logs
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None


def _timestamps(*, updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        )
    ]
    if updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.text("now()"),
            )
        )
    return columns


def upgrade() -> None:
    # ── Enums ─────────────────────────────────────────────────────────────────
    sprint_status_enum = postgresql.ENUM(
        "active", "completed", name="sprint_status_enum", create_type=False
    )
    sprint_status_enum.create(op.get_bind(), checkfirst=True)

    task_status_enum = postgresql.ENUM(
        "todo", "in-progress", "completed",
        name="task_status_enum", create_type=False
    )
    task_status_enum.create(op.get_bind(), checkfirst=True)

    task_priority_enum = postgresql.ENUM(
        "low", "medium", "high",
        name="task_priority_enum", create_type=False
    )
    task_priority_enum.create(op.get_bind(), checkfirst=True)

    # ── sprints ───────────────────────────────────────────────────────────────
    op.create_table(
        "sprints",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sprint_status_enum, nullable=False, server_default="active"),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default="false"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_sprints"),
    )
    op.create_index("ix_sprints_order_index", "sprints", ["order_index"])
    op.create_index("ix_sprints_is_hidden", "sprints", ["is_hidden"])

    # ── tasks ─────────────────────────────────────────────────────────────────
    op.create_table(
        "tasks",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", task_status_enum, nullable=False, server_default="todo"),
        sa.Column("priority", task_priority_enum, nullable=False, server_default="medium"),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("sprint_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archived_by", sa.String(200), nullable=True),
        sa.Column("archive_reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["sprint_id"], ["sprints.id"],
            name="fk_tasks_sprint_id_sprints",
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_tasks"),
    )
    op.create_index("ix_tasks_sprint_id_order_index", "tasks", ["sprint_id", "order_index"])
    op.create_index("ix_tasks_archived_at", "tasks", ["archived_at"])
    op.create_index("ix_tasks_status", "tasks", ["status"])
    op.create_index("ix_tasks_priority", "tasks", ["priority"])

    # ── task_images ───────────────────────────────────────────────────────────
    op.create_table(
        "task_images",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("task_id", sa.Uuid(as_uuid=True), nullable=True),
        sa.Column("url", sa.String(2000), nullable=False),
        sa.Column("file_name", sa.String(500), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("content_type", sa.String(200), nullable=False),
        sa.Column("uploaded_by", sa.String(200), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(
            ["task_id"], ["tasks.id"],
            name="fk_task_images_task_id_tasks",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_task_images"),
    )
    op.create_index("ix_task_images_task_id", "task_images", ["task_id"])

    # ── execution_logs ────────────────────────────────────────────────────────
    op.create_table(
        "execution_logs",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("sprint_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("prompt_sent", sa.Text(), nullable=False),
        sa.Column("ai_response", sa.Text(), nullable=True),
        sa.Column("model_used", sa.String(200), nullable=True),
        sa.Column("completed_task_ids", sa.JSON(), nullable=True),
        sa.Column(
            "execution_date",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(
            ["sprint_id"], ["sprints.id"],
            name="fk_execution_logs_sprint_id_sprints",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_execution_logs"),
    )
    op.create_index("ix_execution_logs_sprint_id", "execution_logs", ["sprint_id"])
    op.create_index("ix_execution_logs_execution_date", "execution_logs", ["execution_date"])

    # ── activity_logs ─────────────────────────────────────────────────────────
    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("actor", sa.String(200), nullable=True),
        sa.Column("action", sa.String(200), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("meta", sa.JSON(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id", name="pk_activity_logs"),
    )
    op.create_index(
        "ix_activity_logs_entity_type_id", "activity_logs", ["entity_type", "entity_id"]
    )
    op.create_index("ix_activity_logs_created_at", "activity_logs", ["created_at"])
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])


def downgrade() -> None:
    # Drop tables in reverse dependency order
    op.drop_table("activity_logs")
    op.drop_table("execution_logs")
    op.drop_table("task_images")
    op.drop_table("tasks")
    op.drop_table("sprints")

    # Drop enums
    for enum_name in [
        "task_priority_enum",
        "task_status_enum",
        "sprint_status_enum",
    ]:
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
