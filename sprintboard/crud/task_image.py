"""
TaskImage CRUD operations.
"""
from __future__ import annotations

import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sprintboard.crud.base import CRUDBase
from sprintboard.models.task_image import TaskImage
from sprintboard.schemas.task_image import TaskImageRead


class CRUDTaskImage(CRUDBase[TaskImage, TaskImageRead]):

    async def create_image(
        self,
        db: AsyncSession,
        *,
        url: str,
        file_name: str,
        file_size: int,
        content_type: str,
        task_id: uuid.UUID | None,
        uploaded_by: str | None,
    ) -> TaskImage:
        image = TaskImage(
            url=url,
            file_name=file_name,
            file_size=file_size,
            content_type=content_type,
            task_id=task_id,
            uploaded_by=uploaded_by,
        )
        db.add(image)
        await db.flush()
        await db.refresh(image)
        return image

    async def list_by_task(
        self, db: AsyncSession, *, task_id: uuid.UUID
    ) -> list[TaskImage]:
        result = await db.execute(
            select(TaskImage)
            .where(TaskImage.task_id == task_id)
            .order_by(TaskImage.created_at)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def attach(
        self,
        db: AsyncSession,
        *,
        image_ids: list[uuid.UUID],
        task_id: uuid.UUID,
    ) -> None:
        """Bind pending (task-less) images to a persisted task."""
        if not image_ids:
            return
        await db.execute(
            update(TaskImage)
            .where(TaskImage.id.in_(image_ids), TaskImage.task_id.is_(None))
            .values(task_id=task_id)
            .execution_options(synchronize_session="fetch")
        )


crud_task_image = CRUDTaskImage(TaskImage)
