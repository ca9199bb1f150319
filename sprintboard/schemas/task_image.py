"""
TaskImage Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class TaskImageRead(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID | None
    url: str
    file_name: str
    file_size: int
    content_type: str
    uploaded_by: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TaskImageAttach(BaseModel):
    image_ids: list[uuid.UUID] = Field(min_length=1)
