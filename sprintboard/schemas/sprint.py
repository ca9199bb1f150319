"""
Sprint Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

SprintStatus = Literal["active", "completed"]


# ── Create ────────────────────────────────────────────────────────────────────

class SprintCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)


# ── Update ────────────────────────────────────────────────────────────────────

class SprintUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    is_hidden: bool | None = None


class SprintMove(BaseModel):
    target_index: int = Field(ge=0)


class SprintClose(BaseModel):
    actor: str = Field(min_length=1, max_length=200)


# ── Read ──────────────────────────────────────────────────────────────────────

class SprintRead(BaseModel):
    id: uuid.UUID
    name: str
    order_index: int
    status: SprintStatus
    is_hidden: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class SprintStats(BaseModel):
    sprint_id: uuid.UUID
    sprint_name: str
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    todo_tasks: int
    completion_percentage: int
    high_priority_tasks: int


class SprintCloseResult(BaseModel):
    sprint: SprintRead
    archived_tasks: int
