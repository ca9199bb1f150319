"""
Task image routes.
Supports multipart/form-data upload; images may be uploaded before their task
exists and attached later.
"""
import uuid

from fastapi import APIRouter, Form, Request, UploadFile, status

from sprintboard.core.config import settings
from sprintboard.core.dependencies import Actor, DBSession, Storage
from sprintboard.core.rate_limit import limiter
from sprintboard.schemas.task_image import TaskImageAttach, TaskImageRead
from sprintboard.services.image_service import image_service

router = APIRouter(tags=["Images"])


@router.post(
    "/images",
    response_model=TaskImageRead,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a task image",
)
@limiter.limit(settings.RATE_LIMIT_UPLOAD)
async def upload_image(
    request: Request,
    file: UploadFile,
    actor: Actor,
    storage: Storage,
    db: DBSession,
    task_id: uuid.UUID | None = Form(default=None),
) -> TaskImageRead:
    content = await file.read()
    image = await image_service.upload_image(
        db,
        storage=storage,
        data=content,
        file_name=file.filename or "image",
        content_type=file.content_type,
        task_id=task_id,
        actor=actor,
    )
    return TaskImageRead.model_validate(image)


@router.post(
    "/tasks/{task_id}/images",
    response_model=list[TaskImageRead],
    summary="Attach pending images to a task",
)
async def attach_images(
    task_id: uuid.UUID,
    body: TaskImageAttach,
    db: DBSession,
) -> list[TaskImageRead]:
    images = await image_service.attach_images(db, image_ids=body.image_ids, task_id=task_id)
    return [TaskImageRead.model_validate(i) for i in images]


@router.delete(
    "/images/{image_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove an image and its blob",
)
async def remove_image(
    image_id: uuid.UUID,
    actor: Actor,
    storage: Storage,
    db: DBSession,
) -> None:
    await image_service.remove_image(db, image_id=image_id, storage=storage, actor=actor)
