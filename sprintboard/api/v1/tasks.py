"""
Task routes.
Create, read and edit tasks; placement changes go through the board moves.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from sprintboard.core.dependencies import Actor, DBSession
from sprintboard.schemas.task import TaskCreate, TaskRead, TaskUpdate
from sprintboard.schemas.task_image import TaskImageRead
from sprintboard.services.board_service import board_service
from sprintboard.services.image_service import image_service

router = APIRouter(prefix="/tasks", tags=["Tasks"])


@router.post(
    "",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a task at the end of a sprint",
)
async def create_task(
    task_in: TaskCreate,
    actor: Actor,
    db: DBSession,
) -> TaskRead:
    task = await board_service.add_task(db, task_in=task_in, actor=actor)
    return TaskRead.model_validate(task)


@router.get(
    "/{task_id}",
    response_model=TaskRead,
    summary="Get a task by ID",
)
async def get_task(task_id: uuid.UUID, db: DBSession) -> TaskRead:
    task = await board_service.get_task(db, task_id=task_id)
    return TaskRead.model_validate(task)


@router.patch(
    "/{task_id}",
    response_model=TaskRead,
    summary="Update a task",
)
async def update_task(
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    actor: Actor,
    db: DBSession,
) -> TaskRead:
    task = await board_service.edit_task(db, task_id=task_id, task_in=task_in, actor=actor)
    return TaskRead.model_validate(task)


@router.get(
    "/{task_id}/images",
    response_model=list[TaskImageRead],
    summary="List the images of a task",
)
async def list_task_images(task_id: uuid.UUID, db: DBSession) -> list[TaskImageRead]:
    images = await image_service.list_images(db, task_id=task_id)
    return [TaskImageRead.model_validate(i) for i in images]
