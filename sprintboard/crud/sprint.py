"""
Sprint CRUD operations.
"""
from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sprintboard.crud.base import CRUDBase
from sprintboard.models.sprint import Sprint
from sprintboard.models.task import Task
from sprintboard.schemas.sprint import SprintUpdate


class CRUDSprint(CRUDBase[Sprint, SprintUpdate]):

    async def list_ordered(
        self, db: AsyncSession, *, include_hidden: bool = False
    ) -> list[Sprint]:
        """Sprints by order_index; ties fall back to creation order."""
        query = select(Sprint)
        if not include_hidden:
            query = query.where(Sprint.is_hidden.is_(False))
        result = await db.execute(
            query.order_by(Sprint.order_index, Sprint.created_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_by_name(self, db: AsyncSession, name: str) -> list[Sprint]:
        result = await db.execute(
            select(Sprint).where(Sprint.name == name).order_by(Sprint.created_at)
        )
        return list(result.scalars().all())

    async def max_order_index(self, db: AsyncSession) -> int | None:
        result = await db.execute(select(func.max(Sprint.order_index)))
        return result.scalar_one_or_none()

    async def task_counts(self, db: AsyncSession) -> list[tuple]:
        """
        Return (sprint_id, status, priority, count) rows over all tasks,
        archived ones included.
        """
        result = await db.execute(
            select(Task.sprint_id, Task.status, Task.priority, func.count(Task.id))
            .group_by(Task.sprint_id, Task.status, Task.priority)
        )
        return [tuple(row) for row in result.all()]


crud_sprint = CRUDSprint(Sprint)
