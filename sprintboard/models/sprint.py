"""
Sprint ORM model.
A sprint is a named, ordered column on the board. Sprints are hidden rather
than deleted, so tasks always keep a valid owning column.
"""
from __future__ import annotations

from sqlalchemy import Boolean, Enum, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sprintboard.db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Sprint(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "sprints"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    order_index: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    status: Mapped[str] = mapped_column(
        Enum("active", "completed", name="sprint_status_enum"),
        nullable=False,
        default="active",
        server_default="active",
    )
    is_hidden: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    tasks: Mapped[list["Task"]] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "Task",
        back_populates="sprint",
    )
    execution_logs: Mapped[list["ExecutionLog"]] = relationship(  # type: ignore[name-defined]  # noqa: F821
        "ExecutionLog",
        back_populates="sprint",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_sprints_order_index", "order_index"),
        Index("ix_sprints_is_hidden", "is_hidden"),
    )

    def __repr__(self) -> str:
        return f"<Sprint id={self.id} name={self.name!r} order_index={self.order_index}>"
