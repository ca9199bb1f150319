"""
Archive service.
Soft archival of tasks, restore back onto the board, permanent deletion of
archived tasks and the filtered archive listing.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from sprintboard.core.exceptions import BadRequestException, ConflictException, NotFoundException
from sprintboard.crud.sprint import crud_sprint
from sprintboard.crud.task import crud_task
from sprintboard.crud.task_image import crud_task_image
from sprintboard.models.task import Task
from sprintboard.schemas.pagination import PaginatedResponse, page_bounds
from sprintboard.schemas.task import ArchivedTaskRead, ArchiveFilter
from sprintboard.services.activity_service import activity_service
from sprintboard.services.sprint_locks import sprint_locks
from sprintboard.services.storage_service import ObjectStorage
from sprintboard.services.websocket_service import ws_manager

logger = logging.getLogger(__name__)

BULK_ARCHIVE_REASON = "Bulk archive - Clear all tasks operation"


def _matches_search(task: Task, needle: str) -> bool:
    needle = needle.lower()
    if needle in task.title.lower():
        return True
    if task.description and needle in task.description.lower():
        return True
    return any(needle in tag.lower() for tag in task.tags or [])


class ArchiveService:

    async def _get_task(self, db: AsyncSession, task_id: uuid.UUID) -> Task:
        task = await crud_task.get(db, task_id)
        if task is None:
            raise NotFoundException("Task", str(task_id))
        return task

    async def archive_task(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        actor: str,
        reason: str | None = None,
    ) -> Task:
        task = await self._get_task(db, task_id)
        if task.archived_at is not None:
            raise ConflictException("Task is already archived")

        task = await crud_task.update(
            db,
            db_obj=task,
            obj_in={
                "archived_at": datetime.now(timezone.utc),
                "archived_by": actor,
                "archive_reason": reason,
            },
        )
        await activity_service.log(
            db,
            actor=actor,
            action="task_archived",
            entity_type="task",
            entity_id=task.id,
            meta={"reason": reason},
        )
        logger.info("Task archived: id=%s by=%s", task.id, actor)
        await ws_manager.publish_board_change(
            "task_archived", task_id=task.id, sprint_ids=[task.sprint_id]
        )
        return task

    async def restore_task(
        self, db: AsyncSession, *, task_id: uuid.UUID, actor: str | None = None
    ) -> Task:
        """
        Clear the archive fields and append the task to the end of its
        sprint's visible column. Every other field is left untouched.
        """
        task = await self._get_task(db, task_id)
        if task.archived_at is None:
            raise ConflictException("Task is not archived")

        async with sprint_locks.transaction(db, task.sprint_id):
            last_index = await crud_task.max_visible_order_index(db, sprint_id=task.sprint_id)
            task = await crud_task.update(
                db,
                db_obj=task,
                obj_in={
                    "archived_at": None,
                    "archived_by": None,
                    "archive_reason": None,
                    "order_index": 0 if last_index is None else last_index + 1,
                },
            )

        await activity_service.log(
            db,
            actor=actor,
            action="task_restored",
            entity_type="task",
            entity_id=task.id,
            meta={"order_index": task.order_index},
        )
        logger.info("Task restored: id=%s sprint_id=%s", task.id, task.sprint_id)
        await ws_manager.publish_board_change(
            "task_restored", task_id=task.id, sprint_ids=[task.sprint_id]
        )
        return task

    async def delete_task(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        storage: ObjectStorage,
        actor: str | None = None,
    ) -> None:
        """
        Permanently delete an archived task together with its images.
        Blob removal failures are logged and do not block the deletion.
        """
        task = await self._get_task(db, task_id)
        if task.archived_at is None:
            raise ConflictException("Only archived tasks can be deleted permanently")

        images = await crud_task_image.list_by_task(db, task_id=task.id)
        for image in images:
            try:
                await storage.delete(image.url)
            except OSError as exc:
                logger.warning("Failed to delete blob %s of task %s: %s", image.url, task.id, exc)

        await crud_task.remove(db, id=task.id)
        await activity_service.log(
            db,
            actor=actor,
            action="task_deleted",
            entity_type="task",
            entity_id=task_id,
            meta={"title": task.title, "images": len(images)},
        )
        logger.info("Task deleted permanently: id=%s", task_id)

    async def list_archived(
        self, db: AsyncSession, *, filters: ArchiveFilter
    ) -> PaginatedResponse[ArchivedTaskRead]:
        rows = await crud_task.list_archived(
            db, priority=filters.priority, sprint_id=filters.sprint_id
        )
        if filters.search:
            rows = [(t, name) for t, name in rows if _matches_search(t, filters.search)]
        if filters.tag:
            rows = [(t, name) for t, name in rows if filters.tag in (t.tags or [])]

        offset, limit = page_bounds(filters.page, filters.size)
        items = []
        for task, sprint_name in rows[offset:offset + limit]:
            item = ArchivedTaskRead.model_validate(task)
            item.sprint_name = sprint_name
            items.append(item)
        return PaginatedResponse[ArchivedTaskRead](
            items=items, total=len(rows), page=filters.page, size=filters.size
        )

    async def list_archive_tags(self, db: AsyncSession) -> list[str]:
        rows = await crud_task.list_archived(db)
        return sorted({tag for task, _ in rows for tag in task.tags or []})

    async def archive_completed(
        self, db: AsyncSession, *, sprint_id: uuid.UUID, actor: str
    ) -> int:
        """Archive every visible completed task of one sprint."""
        sprint = await crud_sprint.get(db, sprint_id)
        if sprint is None:
            raise NotFoundException("Sprint", str(sprint_id))

        tasks = await crud_task.list_visible_by_sprint(db, sprint_id=sprint.id)
        completed = [task.id for task in tasks if task.status == "completed"]
        if not completed:
            raise BadRequestException("No completed tasks to archive in this sprint")

        await crud_task.archive_many(
            db,
            task_ids=completed,
            archived_at=datetime.now(timezone.utc),
            archived_by=actor,
            reason=f"Sprint completion archival from {sprint.name}",
        )
        await activity_service.log(
            db,
            actor=actor,
            action="tasks_archived",
            entity_type="sprint",
            entity_id=sprint.id,
            meta={"count": len(completed), "status": "completed"},
        )
        logger.info("Archived %d completed tasks of sprint %s", len(completed), sprint.id)
        await ws_manager.publish_board_change("tasks_archived", sprint_ids=[sprint.id])
        return len(completed)

    async def archive_all(self, db: AsyncSession, *, actor: str) -> int:
        """Archive every visible task on the board."""
        tasks = await crud_task.list_visible(db)
        if not tasks:
            raise BadRequestException("There are no tasks to archive")

        await crud_task.archive_many(
            db,
            task_ids=[task.id for task in tasks],
            archived_at=datetime.now(timezone.utc),
            archived_by=actor,
            reason=BULK_ARCHIVE_REASON,
        )
        sprint_ids = sorted({task.sprint_id for task in tasks}, key=str)
        for sprint_id in sprint_ids:
            await activity_service.log(
                db,
                actor=actor,
                action="tasks_archived",
                entity_type="sprint",
                entity_id=sprint_id,
                meta={"count": sum(1 for t in tasks if t.sprint_id == sprint_id)},
            )
        logger.info("Bulk archived %d tasks", len(tasks))
        await ws_manager.publish_board_change("tasks_archived", sprint_ids=sprint_ids)
        return len(tasks)


archive_service = ArchiveService()
