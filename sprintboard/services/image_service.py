"""
Task image service.
Validates uploads, hands blobs to object storage and keeps the task_images rows.
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from sprintboard.core.config import settings
from sprintboard.core.exceptions import FileTooLargeException, NotFoundException, ValidationException
from sprintboard.crud.task import crud_task
from sprintboard.crud.task_image import crud_task_image
from sprintboard.models.task_image import TaskImage
from sprintboard.services.activity_service import activity_service
from sprintboard.services.storage_service import ObjectStorage

logger = logging.getLogger(__name__)


class ImageService:

    async def upload_image(
        self,
        db: AsyncSession,
        *,
        storage: ObjectStorage,
        data: bytes,
        file_name: str,
        content_type: str | None,
        task_id: uuid.UUID | None = None,
        actor: str | None = None,
    ) -> TaskImage:
        """
        Store an image blob and record it. Without task_id the image stays
        pending until it is attached to a task.
        """
        if not content_type or not content_type.startswith("image/"):
            raise ValidationException("Only image files can be uploaded")
        if len(data) > settings.max_image_size_bytes:
            raise FileTooLargeException(settings.MAX_IMAGE_SIZE_MB)
        if task_id is not None and await crud_task.get(db, task_id) is None:
            raise NotFoundException("Task", str(task_id))

        url = await storage.upload(data, file_name)
        image = await crud_task_image.create_image(
            db,
            url=url,
            file_name=file_name or "image",
            file_size=len(data),
            content_type=content_type,
            task_id=task_id,
            uploaded_by=actor,
        )
        await activity_service.log(
            db,
            actor=actor,
            action="image_uploaded",
            entity_type="task_image",
            entity_id=image.id,
            meta={"task_id": str(task_id) if task_id else None, "file_name": image.file_name},
        )
        return image

    async def attach_images(
        self, db: AsyncSession, *, image_ids: list[uuid.UUID], task_id: uuid.UUID
    ) -> list[TaskImage]:
        if await crud_task.get(db, task_id) is None:
            raise NotFoundException("Task", str(task_id))
        await crud_task_image.attach(db, image_ids=image_ids, task_id=task_id)
        return await crud_task_image.list_by_task(db, task_id=task_id)

    async def list_images(self, db: AsyncSession, *, task_id: uuid.UUID) -> list[TaskImage]:
        if await crud_task.get(db, task_id) is None:
            raise NotFoundException("Task", str(task_id))
        return await crud_task_image.list_by_task(db, task_id=task_id)

    async def remove_image(
        self,
        db: AsyncSession,
        *,
        image_id: uuid.UUID,
        storage: ObjectStorage,
        actor: str | None = None,
    ) -> None:
        image = await crud_task_image.get(db, image_id)
        if image is None:
            raise NotFoundException("Image", str(image_id))

        await crud_task_image.remove(db, id=image.id)
        try:
            await storage.delete(image.url)
        except OSError as exc:
            logger.warning("Failed to delete blob %s of image %s: %s", image.url, image_id, exc)

        await activity_service.log(
            db,
            actor=actor,
            action="image_removed",
            entity_type="task_image",
            entity_id=image_id,
            meta={"task_id": str(image.task_id) if image.task_id else None},
        )


image_service = ImageService()
