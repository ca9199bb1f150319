"""
Activity log routes.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from sprintboard.core.dependencies import DBSession
from sprintboard.schemas.activity_log import ActivityLogRead
from sprintboard.schemas.pagination import PaginatedResponse
from sprintboard.services.activity_service import activity_service

router = APIRouter(prefix="/activity", tags=["Activity Logs"])


@router.get(
    "",
    response_model=PaginatedResponse[ActivityLogRead],
    summary="Get board activity",
)
async def board_activity(
    db: DBSession,
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
    entity_type: str | None = Query(default=None),
    action: str | None = Query(default=None),
    actor: str | None = Query(default=None),
) -> PaginatedResponse[ActivityLogRead]:
    return await activity_service.list_entries(
        db, entity_type=entity_type, action=action, actor=actor, page=page, size=size
    )


@router.get(
    "/task/{task_id}",
    response_model=PaginatedResponse[ActivityLogRead],
    summary="Get activity log for a specific task",
)
async def task_activity(
    task_id: uuid.UUID,
    db: DBSession,
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
) -> PaginatedResponse[ActivityLogRead]:
    return await activity_service.list_entries(
        db, entity_type="task", entity_id=task_id, page=page, size=size
    )
