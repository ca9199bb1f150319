"""
Board view schemas: one column per visible sprint with its ordered tasks.
"""
from __future__ import annotations

from pydantic import BaseModel

from sprintboard.schemas.sprint import SprintRead
from sprintboard.schemas.task import TaskRead


class BoardColumn(BaseModel):
    sprint: SprintRead
    tasks: list[TaskRead]


class MoveResult(BaseModel):
    task: TaskRead
    changed: bool
    writes: int
