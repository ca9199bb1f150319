"""
Activity logging service.
Appends audit records for board mutations and serves the filtered trail.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sprintboard.models.activity_log import ActivityLog
from sprintboard.schemas.activity_log import ActivityLogRead
from sprintboard.schemas.pagination import PaginatedResponse, page_bounds

logger = logging.getLogger(__name__)


class ActivityService:

    async def log(
        self,
        db: AsyncSession,
        *,
        action: str,
        entity_type: str,
        entity_id: uuid.UUID,
        actor: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> ActivityLog:
        """
        Add an entry in the caller's transaction, so a mutation and its audit
        record are committed or rolled back together.
        """
        entry = ActivityLog(
            actor=actor,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            meta=meta,
        )
        db.add(entry)
        try:
            await db.flush()
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to write activity entry %s on %s %s: %s",
                action,
                entity_type,
                entity_id,
                exc,
            )
            raise
        return entry

    async def list_entries(
        self,
        db: AsyncSession,
        *,
        entity_type: str | None = None,
        entity_id: uuid.UUID | None = None,
        action: str | None = None,
        actor: str | None = None,
        page: int = 1,
        size: int = 20,
    ) -> PaginatedResponse[ActivityLogRead]:
        """Newest entries first; every given filter must match."""
        conditions = []
        if entity_type:
            conditions.append(ActivityLog.entity_type == entity_type)
        if entity_id is not None:
            conditions.append(ActivityLog.entity_id == entity_id)
        if action:
            conditions.append(ActivityLog.action == action)
        if actor:
            conditions.append(ActivityLog.actor == actor)

        total = (
            await db.execute(select(func.count()).select_from(ActivityLog).where(*conditions))
        ).scalar_one()

        skip, limit = page_bounds(page, size)
        result = await db.execute(
            select(ActivityLog)
            .where(*conditions)
            .order_by(ActivityLog.created_at.desc())
            .offset(skip)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return PaginatedResponse[ActivityLogRead](
            items=[ActivityLogRead.model_validate(e) for e in result.scalars().all()],
            total=total,
            page=page,
            size=size,
        )


activity_service = ActivityService()
