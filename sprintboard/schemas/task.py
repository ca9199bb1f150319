"""
Task Pydantic schemas.
Includes create/update/read variants, the move command, and the archive
filter/read shapes used by the archive endpoints.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

TaskStatus = Literal["todo", "in-progress", "completed"]
TaskPriority = Literal["low", "medium", "high"]


def _clean_tags(tags: list[str] | None) -> list[str] | None:
    if tags is None:
        return None
    cleaned: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


# ── Create ────────────────────────────────────────────────────────────────────

class TaskCreate(BaseModel):
    sprint_id: uuid.UUID
    title: str = Field(min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=10000)
    status: TaskStatus = "todo"
    priority: TaskPriority = "medium"
    tags: list[str] = Field(default_factory=list, max_length=30)
    image_ids: list[uuid.UUID] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        return _clean_tags(v) or []


# ── Update ────────────────────────────────────────────────────────────────────

class TaskUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=10000)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    tags: list[str] | None = Field(default=None, max_length=30)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str] | None) -> list[str] | None:
        return _clean_tags(v)


# ── Move ──────────────────────────────────────────────────────────────────────

class TaskMove(BaseModel):
    """A single drag-and-drop command: put task_id at target_index of target_sprint_id."""

    task_id: uuid.UUID
    target_sprint_id: uuid.UUID
    target_index: int


# ── Archive ───────────────────────────────────────────────────────────────────

class TaskArchive(BaseModel):
    archived_by: str = Field(min_length=1, max_length=200)
    reason: str | None = Field(default=None, max_length=2000)


class BulkArchive(BaseModel):
    archived_by: str = Field(min_length=1, max_length=200)


# ── Read ──────────────────────────────────────────────────────────────────────

class TaskRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority
    tags: list[str]
    sprint_id: uuid.UUID
    order_index: int
    archived_at: datetime | None
    archived_by: str | None
    archive_reason: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ArchivedTaskRead(TaskRead):
    sprint_name: str | None = None


# ── Filter ────────────────────────────────────────────────────────────────────

class ArchiveFilter(BaseModel):
    """Query parameters for the archive listing. All criteria are AND-combined."""

    search: str | None = Field(default=None, max_length=200)
    priority: TaskPriority | None = None
    sprint_id: uuid.UUID | None = None
    tag: str | None = Field(default=None, max_length=100)
    page: int = Field(default=1, ge=1)
    size: int = Field(default=20, ge=1, le=100)


class ArchivedCount(BaseModel):
    archived_tasks: int
