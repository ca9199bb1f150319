"""
Sprint service.
Manages the board's columns: default sprints, creation, rename, visibility,
column reordering, closing and per-sprint statistics.
"""
from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from sprintboard.core.config import settings
from sprintboard.core.exceptions import (
    BadRequestException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from sprintboard.crud.sprint import crud_sprint
from sprintboard.crud.task import crud_task
from sprintboard.models.sprint import Sprint
from sprintboard.schemas.sprint import SprintStats, SprintUpdate
from sprintboard.services.activity_service import activity_service
from sprintboard.services.ordering import next_order_index, position_of, renumber, reorder
from sprintboard.services.sprint_locks import SPRINT_ORDER_KEY, sprint_locks
from sprintboard.services.websocket_service import ws_manager

logger = logging.getLogger(__name__)


class SprintService:

    async def list_sprints(
        self, db: AsyncSession, *, include_hidden: bool = True
    ) -> list[Sprint]:
        return await crud_sprint.list_ordered(db, include_hidden=include_hidden)

    async def get_sprint(self, db: AsyncSession, *, sprint_id: uuid.UUID) -> Sprint:
        sprint = await crud_sprint.get(db, sprint_id)
        if sprint is None:
            raise NotFoundException("Sprint", str(sprint_id))
        return sprint

    async def ensure_default_sprints(self, db: AsyncSession) -> list[Sprint]:
        """
        Make sure the priority sprint exists as the first column and the
        backlog as the last one. Returns the sprints that had to be created.
        """
        created: list[Sprint] = []
        async with sprint_locks.transaction(db, SPRINT_ORDER_KEY):
            sprints = await crud_sprint.list_ordered(db, include_hidden=True)
            names = {sprint.name for sprint in sprints}

            if settings.PRIORITY_SPRINT_NAME not in names:
                first_index = min((s.order_index for s in sprints), default=0)
                for sprint in sprints:
                    await crud_sprint.update_fields(
                        db, id=sprint.id, values={"order_index": sprint.order_index + 1}
                    )
                created.append(
                    await crud_sprint.create_from_dict(
                        db,
                        obj_in={"name": settings.PRIORITY_SPRINT_NAME, "order_index": first_index},
                    )
                )

            if settings.BACKLOG_SPRINT_NAME not in names:
                last_index = await crud_sprint.max_order_index(db)
                created.append(
                    await crud_sprint.create_from_dict(
                        db,
                        obj_in={
                            "name": settings.BACKLOG_SPRINT_NAME,
                            "order_index": 0 if last_index is None else last_index + 1,
                        },
                    )
                )

        for sprint in created:
            await activity_service.log(
                db,
                action="sprint_created",
                entity_type="sprint",
                entity_id=sprint.id,
                meta={"name": sprint.name, "default": True},
            )
            logger.info("Default sprint created: %s", sprint.name)
        if created:
            await ws_manager.publish_board_change(
                "sprints_changed", sprint_ids=[s.id for s in created]
            )
        return created

    async def create_sprint(
        self, db: AsyncSession, *, name: str, actor: str | None = None
    ) -> Sprint:
        """
        Create a sprint just before the backlog column, or at the end of the
        board when there is no backlog.
        """
        name = name.strip()
        if not name:
            raise ValidationException("Sprint name must not be empty")
        await self._check_reserved_name(db, name)

        async with sprint_locks.transaction(db, SPRINT_ORDER_KEY):
            sprints = await crud_sprint.list_ordered(db, include_hidden=True)
            backlog = next(
                (s for s in sprints if s.name == settings.BACKLOG_SPRINT_NAME), None
            )
            if backlog is None:
                order_index = next_order_index(sprints)
            else:
                order_index = backlog.order_index
                for sprint in sprints:
                    if sprint.order_index >= order_index:
                        await crud_sprint.update_fields(
                            db, id=sprint.id, values={"order_index": sprint.order_index + 1}
                        )
            sprint = await crud_sprint.create_from_dict(
                db, obj_in={"name": name, "order_index": order_index}
            )

        await activity_service.log(
            db,
            actor=actor,
            action="sprint_created",
            entity_type="sprint",
            entity_id=sprint.id,
            meta={"name": sprint.name},
        )
        logger.info("Sprint created: id=%s name=%s", sprint.id, sprint.name)
        await ws_manager.publish_board_change("sprints_changed", sprint_ids=[sprint.id])
        return sprint

    async def update_sprint(
        self,
        db: AsyncSession,
        *,
        sprint_id: uuid.UUID,
        sprint_in: SprintUpdate,
        actor: str | None = None,
    ) -> Sprint:
        """Rename and/or hide or unhide a sprint."""
        sprint = await self.get_sprint(db, sprint_id=sprint_id)
        update_data = sprint_in.model_dump(exclude_unset=True)

        if update_data.get("name") is not None:
            name = update_data["name"].strip()
            if not name:
                raise ValidationException("Sprint name must not be empty")
            if name != sprint.name:
                if sprint.name in settings.reserved_sprint_names:
                    raise BadRequestException(f"The {sprint.name} cannot be renamed")
                await self._check_reserved_name(db, name)
            update_data["name"] = name
        else:
            update_data.pop("name", None)

        if update_data.get("is_hidden") is None:
            update_data.pop("is_hidden", None)
        elif sprint.is_hidden and update_data["is_hidden"] is False:
            # Unhidden columns come back at the end of the board.
            async with sprint_locks.transaction(db, SPRINT_ORDER_KEY):
                visible = await crud_sprint.list_ordered(db, include_hidden=False)
                update_data["order_index"] = next_order_index(visible)
                sprint = await crud_sprint.update(db, db_obj=sprint, obj_in=update_data)
            update_data = {}

        if update_data:
            sprint = await crud_sprint.update(db, db_obj=sprint, obj_in=update_data)

        await activity_service.log(
            db,
            actor=actor,
            action="sprint_updated",
            entity_type="sprint",
            entity_id=sprint.id,
            meta=sprint_in.model_dump(exclude_unset=True),
        )
        await ws_manager.publish_board_change("sprints_changed", sprint_ids=[sprint.id])
        return sprint

    async def move_sprint(
        self,
        db: AsyncSession,
        *,
        sprint_id: uuid.UUID,
        target_index: int,
        actor: str | None = None,
    ) -> list[Sprint]:
        """
        Move a visible sprint to target_index among the visible sprints and
        renumber them densely. Returns the visible sprints in their new order.
        """
        async with sprint_locks.transaction(db, SPRINT_ORDER_KEY):
            sprint = await self.get_sprint(db, sprint_id=sprint_id)
            if sprint.is_hidden:
                raise ValidationException("Hidden sprints cannot be reordered")
            visible = await crud_sprint.list_ordered(db, include_hidden=False)
            if not 0 <= target_index < len(visible):
                raise ValidationException(
                    f"target_index {target_index} is outside [0, {len(visible) - 1}]"
                )

            placements = []
            if position_of(visible, sprint.id) != target_index:
                placements = renumber(reorder(visible, sprint.id, target_index))
                for placement in placements:
                    await crud_sprint.update_fields(
                        db, id=placement.id, values={"order_index": placement.order_index}
                    )

        if not placements:
            return visible

        await activity_service.log(
            db,
            actor=actor,
            action="sprint_moved",
            entity_type="sprint",
            entity_id=sprint.id,
            meta={"target_index": target_index, "writes": len(placements)},
        )
        logger.info("Sprint moved: id=%s -> %d", sprint.id, target_index)
        await ws_manager.publish_board_change("sprints_changed", sprint_ids=[sprint.id])
        return await crud_sprint.list_ordered(db, include_hidden=False)

    async def close_sprint(
        self, db: AsyncSession, *, sprint_id: uuid.UUID, actor: str
    ) -> tuple[Sprint, int]:
        """
        Complete and archive every visible task of the sprint, then mark the
        sprint completed. Returns the sprint and the number of archived tasks.
        """
        sprint = await self.get_sprint(db, sprint_id=sprint_id)
        tasks = await crud_task.list_visible_by_sprint(db, sprint_id=sprint.id)

        await crud_task.archive_many(
            db,
            task_ids=[task.id for task in tasks],
            archived_at=datetime.now(timezone.utc),
            archived_by=actor,
            reason=f'Sprint "{sprint.name}" closed',
            status="completed",
        )
        sprint = await crud_sprint.update(db, db_obj=sprint, obj_in={"status": "completed"})

        await activity_service.log(
            db,
            actor=actor,
            action="sprint_closed",
            entity_type="sprint",
            entity_id=sprint.id,
            meta={"archived_tasks": len(tasks)},
        )
        logger.info("Sprint closed: id=%s archived=%d", sprint.id, len(tasks))
        await ws_manager.publish_board_change("sprint_closed", sprint_ids=[sprint.id])
        return sprint, len(tasks)

    async def sprint_stats(self, db: AsyncSession) -> list[SprintStats]:
        sprints = await crud_sprint.list_ordered(db, include_hidden=True)
        totals: dict[uuid.UUID, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        for sprint_id, status, priority, count in await crud_sprint.task_counts(db):
            bucket = totals[sprint_id]
            bucket["total"] += count
            bucket[status] += count
            if priority == "high":
                bucket["high"] += count

        stats = []
        for sprint in sprints:
            bucket = totals[sprint.id]
            total = bucket["total"]
            completed = bucket["completed"]
            stats.append(
                SprintStats(
                    sprint_id=sprint.id,
                    sprint_name=sprint.name,
                    total_tasks=total,
                    completed_tasks=completed,
                    in_progress_tasks=bucket["in-progress"],
                    todo_tasks=bucket["todo"],
                    completion_percentage=round(completed / total * 100) if total else 0,
                    high_priority_tasks=bucket["high"],
                )
            )
        return stats

    # ── Private helpers ───────────────────────────────────────────────────────

    async def _check_reserved_name(self, db: AsyncSession, name: str) -> None:
        if name in settings.reserved_sprint_names and await crud_sprint.get_by_name(db, name):
            raise ConflictException(f"A {name} already exists. Only one {name} is allowed.")


sprint_service = SprintService()
