"""
TaskImage ORM model.
Image attachments of a task. task_id stays NULL while an image is uploaded
for a task that has not been saved yet.
"""
from __future__ import annotations

import uuid

from sqlalchemy import BigInteger, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sprintboard.db.base import Base, CreatedAtMixin, UUIDPrimaryKeyMixin


class TaskImage(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    __tablename__ = "task_images"

    task_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=True,
    )
    url: Mapped[str] = mapped_column(String(2000), nullable=False)
    file_name: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    content_type: Mapped[str] = mapped_column(String(200), nullable=False)
    uploaded_by: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # ── Relationships ─────────────────────────────────────────────────────────
    task: Mapped["Task | None"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "Task",
        back_populates="images",
    )

    __table_args__ = (
        Index("ix_task_images_task_id", "task_id"),
    )

    def __repr__(self) -> str:
        return f"<TaskImage id={self.id} file_name={self.file_name!r} task_id={self.task_id}>"
