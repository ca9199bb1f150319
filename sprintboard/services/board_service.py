"""
Board engine.
Builds the ordered column view and executes the task commands issued from
the board: add, edit, and the drag-and-drop move with its renumbering pass.
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sprintboard.core.exceptions import (
    ConflictException,
    NotFoundException,
    PartialRenumberFailure,
    StoreUnavailableException,
    ValidationException,
)
from sprintboard.crud.sprint import crud_sprint
from sprintboard.crud.task import crud_task
from sprintboard.crud.task_image import crud_task_image
from sprintboard.models.task import Task
from sprintboard.schemas.board import BoardColumn, MoveResult
from sprintboard.schemas.sprint import SprintRead
from sprintboard.schemas.task import TaskCreate, TaskMove, TaskRead, TaskUpdate
from sprintboard.services.activity_service import activity_service
from sprintboard.services.auto_tagger import apply_tags
from sprintboard.services.ordering import Placement, display_order, plan_move
from sprintboard.services.sprint_locks import sprint_locks
from sprintboard.services.websocket_service import ws_manager

logger = logging.getLogger(__name__)

# A move re-reads its task after locking; if a concurrent move changed the
# task's sprint in between, it relocks and retries this many times.
MAX_MOVE_ATTEMPTS = 3


class BoardService:

    async def list_columns(
        self, db: AsyncSession, *, include_hidden: bool = False
    ) -> list[BoardColumn]:
        """
        Ordered sprints, each with its non-archived tasks in display order.
        Duplicate order indices left behind by concurrent writers are
        tolerated: ties keep the store's creation order.
        """
        sprints = await crud_sprint.list_ordered(db, include_hidden=include_hidden)
        tasks = await crud_task.list_visible_by_sprints(
            db, sprint_ids=[sprint.id for sprint in sprints]
        )

        by_sprint: dict[uuid.UUID, list[Task]] = {sprint.id: [] for sprint in sprints}
        for task in tasks:
            by_sprint[task.sprint_id].append(task)

        return [
            BoardColumn(
                sprint=SprintRead.model_validate(sprint),
                tasks=[TaskRead.model_validate(t) for t in display_order(by_sprint[sprint.id])],
            )
            for sprint in sprints
        ]

    async def get_task(self, db: AsyncSession, *, task_id: uuid.UUID) -> Task:
        task = await crud_task.get(db, task_id)
        if task is None:
            raise NotFoundException("Task", str(task_id))
        return task

    async def add_task(
        self,
        db: AsyncSession,
        *,
        task_in: TaskCreate,
        actor: str | None = None,
    ) -> Task:
        """
        Create a task at the end of its sprint's column.
        Auto-tagger labels are merged into the submitted tags and pending
        images uploaded before the task existed are attached to it.
        """
        title = task_in.title.strip()
        if not title:
            raise ValidationException("Task title must not be empty")

        sprint = await crud_sprint.get(db, task_in.sprint_id)
        if sprint is None:
            raise ValidationException(f"Sprint '{task_in.sprint_id}' does not exist")

        async with sprint_locks.transaction(db, sprint.id):
            last_index = await crud_task.max_visible_order_index(db, sprint_id=sprint.id)
            task = await crud_task.create_from_dict(
                db,
                obj_in={
                    "title": title,
                    "description": task_in.description,
                    "status": task_in.status,
                    "priority": task_in.priority,
                    "tags": apply_tags(task_in.tags, title, task_in.description),
                    "sprint_id": sprint.id,
                    "order_index": 0 if last_index is None else last_index + 1,
                },
            )

        if task_in.image_ids:
            await crud_task_image.attach(db, image_ids=task_in.image_ids, task_id=task.id)

        await activity_service.log(
            db,
            actor=actor,
            action="task_created",
            entity_type="task",
            entity_id=task.id,
            meta={"title": task.title, "sprint_id": str(sprint.id), "tags": task.tags},
        )
        logger.info("Task created: id=%s sprint_id=%s", task.id, sprint.id)
        await ws_manager.publish_board_change(
            "task_created", task_id=task.id, sprint_ids=[sprint.id]
        )
        return task

    async def edit_task(
        self,
        db: AsyncSession,
        *,
        task_id: uuid.UUID,
        task_in: TaskUpdate,
        actor: str | None = None,
    ) -> Task:
        """
        Partially update a task. The auto-tagger runs over the resulting
        title and description and its labels are added to the tags, so
        manually entered tags are never dropped by re-tagging.
        """
        task = await self.get_task(db, task_id=task_id)
        update_data = task_in.model_dump(exclude_unset=True)

        if "title" in update_data:
            title = (update_data["title"] or "").strip()
            if not title:
                raise ValidationException("Task title must not be empty")
            update_data["title"] = title
        for field in ("status", "priority"):
            if field in update_data and update_data[field] is None:
                del update_data[field]

        title = update_data.get("title", task.title)
        description = update_data.get("description", task.description)
        manual_tags = update_data.get("tags")
        if manual_tags is None:
            manual_tags = task.tags or []
        update_data["tags"] = apply_tags(manual_tags, title, description)

        updated = await crud_task.update(db, db_obj=task, obj_in=update_data)

        await activity_service.log(
            db,
            actor=actor,
            action="task_updated",
            entity_type="task",
            entity_id=task.id,
            meta=task_in.model_dump(exclude_unset=True),
        )
        await ws_manager.publish_board_change(
            "task_updated", task_id=task.id, sprint_ids=[task.sprint_id]
        )
        return updated

    async def move_task(
        self,
        db: AsyncSession,
        *,
        move: TaskMove,
        actor: str | None = None,
    ) -> MoveResult:
        """
        Put a task at target_index of target_sprint_id and renumber the
        affected columns densely from the left.

        All preconditions are checked before the first write. Dropping a task
        back onto its own position is a no-op that writes nothing.
        """
        if move.target_index < 0:
            raise ValidationException("target_index must not be negative")

        task = await self.get_task(db, task_id=move.task_id)
        if task.archived_at is not None:
            raise ValidationException("Archived tasks cannot be moved")

        target = await crud_sprint.get(db, move.target_sprint_id)
        if target is None:
            raise ValidationException(f"Target sprint '{move.target_sprint_id}' does not exist")
        if target.is_hidden:
            raise ValidationException("Tasks cannot be moved into a hidden sprint")

        for _ in range(MAX_MOVE_ATTEMPTS):
            source_sprint_id = task.sprint_id
            async with sprint_locks.transaction(db, source_sprint_id, target.id):
                task = await self.get_task(db, task_id=move.task_id)
                if task.archived_at is not None:
                    raise ValidationException("Archived tasks cannot be moved")
                if task.sprint_id != source_sprint_id:
                    continue

                same_column = source_sprint_id == target.id
                source = await crud_task.list_visible_by_sprint(db, sprint_id=source_sprint_id)
                destination = (
                    source
                    if same_column
                    else await crud_task.list_visible_by_sprint(db, sprint_id=target.id)
                )
                if move.target_index > len(destination):
                    raise ValidationException(
                        f"target_index {move.target_index} is outside "
                        f"[0, {len(destination)}] for sprint '{target.id}'"
                    )

                plan = plan_move(
                    display_order(source),
                    None if same_column else display_order(destination),
                    task_id=task.id,
                    source_sprint_id=source_sprint_id,
                    target_sprint_id=target.id,
                    target_index=move.target_index,
                )
                if not plan:
                    return MoveResult(task=TaskRead.model_validate(task), changed=False, writes=0)

                await self._apply_placements(db, plan)
                break
        else:
            raise ConflictException(
                "Task changed sprint repeatedly while being moved; refetch the board"
            )

        await db.refresh(task)
        await activity_service.log(
            db,
            actor=actor,
            action="task_moved",
            entity_type="task",
            entity_id=task.id,
            meta={
                "from_sprint_id": str(source_sprint_id),
                "to_sprint_id": str(target.id),
                "target_index": move.target_index,
                "writes": len(plan),
            },
        )
        logger.info(
            "Task moved: id=%s %s -> %s[%d] (%d writes)",
            task.id,
            source_sprint_id,
            target.id,
            move.target_index,
            len(plan),
        )
        await ws_manager.publish_board_change(
            "task_moved", task_id=task.id, sprint_ids=sorted({source_sprint_id, target.id}, key=str)
        )
        return MoveResult(task=TaskRead.model_validate(task), changed=True, writes=len(plan))

    # ── Private helpers ───────────────────────────────────────────────────────

    async def _apply_placements(self, db: AsyncSession, plan: list[Placement]) -> None:
        """
        Write each placement as a two-column partial update.
        A failure before the first write is a plain store outage; a failure
        after it is reported as a partial renumber so callers refetch.
        """
        applied = 0
        try:
            for placement in plan:
                await crud_task.set_position(
                    db,
                    task_id=placement.id,
                    sprint_id=placement.sprint_id,  # type: ignore[arg-type]
                    order_index=placement.order_index,
                )
                applied += 1
        except SQLAlchemyError as exc:
            logger.error(
                "Renumbering failed after %d of %d writes: %s", applied, len(plan), exc
            )
            if applied:
                raise PartialRenumberFailure(applied=applied, total=len(plan)) from exc
            raise StoreUnavailableException() from exc


board_service = BoardService()
