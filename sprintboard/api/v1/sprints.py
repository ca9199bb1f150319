"""
Sprint routes.
Column management: defaults, create, rename/hide, reorder, close, statistics.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from sprintboard.core.dependencies import Actor, DBSession
from sprintboard.schemas.sprint import (
    SprintClose,
    SprintCloseResult,
    SprintCreate,
    SprintMove,
    SprintRead,
    SprintStats,
    SprintUpdate,
)
from sprintboard.schemas.task import ArchivedCount, BulkArchive
from sprintboard.services.archive_service import archive_service
from sprintboard.services.sprint_service import sprint_service

router = APIRouter(prefix="/sprints", tags=["Sprints"])

@router.get(
    "",
    response_model=list[SprintRead],
    summary="List sprints in column order",
)
async def list_sprints(
    db: DBSession,
    include_hidden: bool = Query(default=True),
) -> list[SprintRead]:
    sprints = await sprint_service.list_sprints(db, include_hidden=include_hidden)
    return [SprintRead.model_validate(s) for s in sprints]


@router.post(
    "",
    response_model=SprintRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a sprint before the backlog",
)
async def create_sprint(
    sprint_in: SprintCreate,
    actor: Actor,
    db: DBSession,
) -> SprintRead:
    sprint = await sprint_service.create_sprint(db, name=sprint_in.name, actor=actor)
    return SprintRead.model_validate(sprint)


@router.post(
    "/defaults",
    response_model=list[SprintRead],
    summary="Create the priority sprint and backlog when missing",
)
async def ensure_default_sprints(db: DBSession) -> list[SprintRead]:
    await sprint_service.ensure_default_sprints(db)
    sprints = await sprint_service.list_sprints(db)
    return [SprintRead.model_validate(s) for s in sprints]


@router.get(
    "/stats",
    response_model=list[SprintStats],
    summary="Task counts and completion per sprint",
)
async def sprint_stats(db: DBSession) -> list[SprintStats]:
    return await sprint_service.sprint_stats(db)


@router.patch(
    "/{sprint_id}",
    response_model=SprintRead,
    summary="Rename a sprint or toggle its visibility",
)
async def update_sprint(
    sprint_id: uuid.UUID,
    sprint_in: SprintUpdate,
    actor: Actor,
    db: DBSession,
) -> SprintRead:
    sprint = await sprint_service.update_sprint(
        db, sprint_id=sprint_id, sprint_in=sprint_in, actor=actor
    )
    return SprintRead.model_validate(sprint)


@router.post(
    "/{sprint_id}/move",
    response_model=list[SprintRead],
    summary="Move a sprint column to another position",
)
async def move_sprint(
    sprint_id: uuid.UUID,
    move: SprintMove,
    actor: Actor,
    db: DBSession,
) -> list[SprintRead]:
    sprints = await sprint_service.move_sprint(
        db, sprint_id=sprint_id, target_index=move.target_index, actor=actor
    )
    return [SprintRead.model_validate(s) for s in sprints]


@router.post(
    "/{sprint_id}/close",
    response_model=SprintCloseResult,
    summary="Complete and archive all tasks of a sprint",
)
async def close_sprint(
    sprint_id: uuid.UUID,
    body: SprintClose,
    db: DBSession,
) -> SprintCloseResult:
    sprint, archived = await sprint_service.close_sprint(
        db, sprint_id=sprint_id, actor=body.actor
    )
    return SprintCloseResult(sprint=SprintRead.model_validate(sprint), archived_tasks=archived)


@router.post(
    "/{sprint_id}/archive-completed",
    response_model=ArchivedCount,
    summary="Archive the completed tasks of a sprint",
)
async def archive_completed(
    sprint_id: uuid.UUID,
    body: BulkArchive,
    db: DBSession,
) -> ArchivedCount:
    count = await archive_service.archive_completed(
        db, sprint_id=sprint_id, actor=body.archived_by
    )
    return ArchivedCount(archived_tasks=count)
