"""
Task CRUD operations.
Extends CRUDBase with column queries, positional writes and archive queries.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sprintboard.crud.base import CRUDBase
from sprintboard.models.sprint import Sprint
from sprintboard.models.task import Task
from sprintboard.schemas.task import TaskUpdate


class CRUDTask(CRUDBase[Task, TaskUpdate]):

    async def list_visible_by_sprint(
        self, db: AsyncSession, *, sprint_id: uuid.UUID
    ) -> list[Task]:
        """Non-archived tasks of one sprint in display order."""
        result = await db.execute(
            select(Task)
            .where(Task.sprint_id == sprint_id, Task.archived_at.is_(None))
            .order_by(Task.order_index, Task.created_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_visible_by_sprints(
        self, db: AsyncSession, *, sprint_ids: list[uuid.UUID]
    ) -> list[Task]:
        if not sprint_ids:
            return []
        result = await db.execute(
            select(Task)
            .where(Task.sprint_id.in_(sprint_ids), Task.archived_at.is_(None))
            .order_by(Task.order_index, Task.created_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_visible(self, db: AsyncSession) -> list[Task]:
        result = await db.execute(
            select(Task)
            .where(Task.archived_at.is_(None))
            .order_by(Task.sprint_id, Task.order_index, Task.created_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def max_visible_order_index(
        self, db: AsyncSession, *, sprint_id: uuid.UUID
    ) -> int | None:
        result = await db.execute(
            select(func.max(Task.order_index)).where(
                Task.sprint_id == sprint_id, Task.archived_at.is_(None)
            )
        )
        return result.scalar_one_or_none()

    async def set_position(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        sprint_id: uuid.UUID,
        order_index: int,
    ) -> None:
        """Write only the two ordering columns of one task."""
        await self.update_fields(
            db, id=task_id, values={"sprint_id": sprint_id, "order_index": order_index}
        )

    async def mark_completed(
        self, db: AsyncSession, *, task_ids: list[uuid.UUID]
    ) -> None:
        """Batch status update used by response reconciliation."""
        if not task_ids:
            return
        await db.execute(
            update(Task)
            .where(Task.id.in_(task_ids))
            .values(status="completed")
            .execution_options(synchronize_session="fetch")
        )

    async def archive_many(
        self,
        db: AsyncSession,
        *,
        task_ids: list[uuid.UUID],
        archived_at: datetime,
        archived_by: str,
        reason: str | None,
        status: str | None = None,
    ) -> None:
        if not task_ids:
            return
        values: dict = {
            "archived_at": archived_at,
            "archived_by": archived_by,
            "archive_reason": reason,
        }
        if status is not None:
            values["status"] = status
        await db.execute(
            update(Task)
            .where(Task.id.in_(task_ids))
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )

    async def list_archived(
        self,
        db: AsyncSession,
        *,
        priority: str | None = None,
        sprint_id: uuid.UUID | None = None,
    ) -> list[tuple[Task, str]]:
        """
        Archived tasks with their sprint name, newest archival first.
        Text and tag predicates are applied by the caller.
        """
        query = (
            select(Task, Sprint.name)
            .join(Sprint, Sprint.id == Task.sprint_id)
            .where(Task.archived_at.is_not(None))
        )
        if priority is not None:
            query = query.where(Task.priority == priority)
        if sprint_id is not None:
            query = query.where(Task.sprint_id == sprint_id)

        result = await db.execute(
            query.order_by(Task.archived_at.desc())
            .execution_options(populate_existing=True)
        )
        return [(task, name) for task, name in result.all()]


crud_task = CRUDTask(Task)
