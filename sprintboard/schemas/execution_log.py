"""
ExecutionLog Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class ExecutionStart(BaseModel):
    sprint_id: uuid.UUID
    model_used: str | None = Field(default=None, max_length=200)


class ExecutionResponse(BaseModel):
    ai_response: str = Field(min_length=1)


class ExecutionLogRead(BaseModel):
    id: uuid.UUID
    sprint_id: uuid.UUID
    prompt_sent: str
    ai_response: str | None
    model_used: str | None
    completed_task_ids: list[uuid.UUID] | None
    execution_date: datetime

    model_config = {"from_attributes": True}


class ReconciliationRead(BaseModel):
    log: ExecutionLogRead
    completed_task_ids: list[uuid.UUID]
    unchanged_task_ids: list[uuid.UUID]


class SprintReport(BaseModel):
    sprint_id: uuid.UUID
    sprint_name: str
    total_executions: int
    latest_execution: datetime | None
    models_used: list[str]
