"""
ActivityLog ORM model.
Immutable audit trail of all significant board actions.
Uses JSON for flexible metadata storage.
"""
from __future__ import annotations

import uuid

from sqlalchemy import JSON, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from sprintboard.db.base import Base, CreatedAtMixin, UUIDPrimaryKeyMixin


class ActivityLog(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    __tablename__ = "activity_logs"

    actor: Mapped[str | None] = mapped_column(String(200), nullable=True)
    action: Mapped[str] = mapped_column(String(200), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    meta: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        Index("ix_activity_logs_entity_type_id", "entity_type", "entity_id"),
        Index("ix_activity_logs_created_at", "created_at"),
        Index("ix_activity_logs_action", "action"),
    )

    def __repr__(self) -> str:
        return (
            f"<ActivityLog id={self.id} actor={self.actor!r} "
            f"action={self.action!r} entity_type={self.entity_type!r}>"
        )
