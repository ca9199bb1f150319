"""
ExecutionLog ORM model.
One prompt/response exchange with the external text-generation service.
The record is finalized once ai_response is filled and is immutable afterwards.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sprintboard.db.base import Base, UUIDPrimaryKeyMixin


class ExecutionLog(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "execution_logs"

    sprint_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("sprints.id", ondelete="CASCADE"),
        nullable=False,
    )
    prompt_sent: Mapped[str] = mapped_column(Text, nullable=False)
    ai_response: Mapped[str | None] = mapped_column(Text, nullable=True)
    model_used: Mapped[str | None] = mapped_column(String(200), nullable=True)
    completed_task_ids: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    execution_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    sprint: Mapped["Sprint"] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "Sprint",
        back_populates="execution_logs",
    )

    __table_args__ = (
        Index("ix_execution_logs_sprint_id", "sprint_id"),
        Index("ix_execution_logs_execution_date", "execution_date"),
    )

    @property
    def is_finalized(self) -> bool:
        return self.ai_response is not None

    def __repr__(self) -> str:
        return (
            f"<ExecutionLog id={self.id} sprint_id={self.sprint_id} "
            f"finalized={self.is_finalized}>"
        )
