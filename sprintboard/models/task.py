"""
Task ORM model.
Central entity of the board. Supports status/priority enums, JSON tags,
per-sprint ordering via order_index, and soft archival with provenance.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sprintboard.db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Task(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "tasks"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        Enum("todo", "in-progress", "completed", name="task_status_enum"),
        nullable=False,
        default="todo",
        server_default="todo",
    )
    priority: Mapped[str] = mapped_column(
        Enum("low", "medium", "high", name="task_priority_enum"),
        nullable=False,
        default="medium",
        server_default="medium",
    )
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    sprint_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("sprints.id", ondelete="RESTRICT"),
        nullable=False,
    )
    order_index: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    archived_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    archived_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    archive_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Relationships ─────────────────────────────────────────────────────────
    sprint: Mapped["Sprint"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "Sprint",
        back_populates="tasks",
    )
    images: Mapped[list["TaskImage"]] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "TaskImage",
        back_populates="task",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_tasks_sprint_id_order_index", "sprint_id", "order_index"),
        Index("ix_tasks_archived_at", "archived_at"),
        Index("ix_tasks_status", "status"),
        Index("ix_tasks_priority", "priority"),
    )

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    def __repr__(self) -> str:
        return (
            f"<Task id={self.id} title={self.title!r} status={self.status} "
            f"sprint_id={self.sprint_id} order_index={self.order_index}>"
        )
