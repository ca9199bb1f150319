"""
Archive routes.
Listing with filters, archive/restore, permanent deletion and bulk archival.
"""
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from sprintboard.core.dependencies import Actor, DBSession, Storage
from sprintboard.schemas.pagination import PaginatedResponse
from sprintboard.schemas.task import (
    ArchivedCount,
    ArchivedTaskRead,
    ArchiveFilter,
    BulkArchive,
    TaskArchive,
    TaskPriority,
    TaskRead,
)
from sprintboard.services.archive_service import archive_service

router = APIRouter(prefix="/archive", tags=["Archive"])


def _archive_filter_params(
    search: str | None = Query(default=None, max_length=200),
    priority: TaskPriority | None = Query(default=None),
    sprint_id: uuid.UUID | None = Query(default=None),
    tag: str | None = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
) -> ArchiveFilter:
    return ArchiveFilter(
        search=search or None,
        priority=priority,
        sprint_id=sprint_id,
        tag=tag or None,
        page=page,
        size=size,
    )


@router.get(
    "",
    response_model=PaginatedResponse[ArchivedTaskRead],
    summary="List archived tasks, newest first",
)
async def list_archived(
    db: DBSession,
    filters: Annotated[ArchiveFilter, Depends(_archive_filter_params)],
) -> PaginatedResponse[ArchivedTaskRead]:
    return await archive_service.list_archived(db, filters=filters)


@router.get(
    "/tags",
    response_model=list[str],
    summary="Distinct tags used by archived tasks",
)
async def list_archive_tags(db: DBSession) -> list[str]:
    return await archive_service.list_archive_tags(db)


@router.post(
    "/tasks/{task_id}",
    response_model=TaskRead,
    summary="Archive a task",
)
async def archive_task(
    task_id: uuid.UUID,
    body: TaskArchive,
    db: DBSession,
) -> TaskRead:
    task = await archive_service.archive_task(
        db, task_id=task_id, actor=body.archived_by, reason=body.reason
    )
    return TaskRead.model_validate(task)


@router.post(
    "/tasks/{task_id}/restore",
    response_model=TaskRead,
    summary="Restore an archived task to the end of its sprint",
)
async def restore_task(
    task_id: uuid.UUID,
    actor: Actor,
    db: DBSession,
) -> TaskRead:
    task = await archive_service.restore_task(db, task_id=task_id, actor=actor)
    return TaskRead.model_validate(task)


@router.delete(
    "/tasks/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Permanently delete an archived task",
)
async def delete_task(
    task_id: uuid.UUID,
    actor: Actor,
    storage: Storage,
    db: DBSession,
) -> None:
    await archive_service.delete_task(db, task_id=task_id, storage=storage, actor=actor)


@router.post(
    "/all",
    response_model=ArchivedCount,
    summary="Archive every task on the board",
)
async def archive_all(body: BulkArchive, db: DBSession) -> ArchivedCount:
    count = await archive_service.archive_all(db, actor=body.archived_by)
    return ArchivedCount(archived_tasks=count)
