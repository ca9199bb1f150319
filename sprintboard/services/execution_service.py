"""
Sprint execution and response reconciliation.

A prompt is rendered from a sprint's visible tasks and recorded in an
execution log. The user relays it to an external text-generation service and
pastes the free-text answer back; the answer is stored and then scanned for
task titles mentioned next to a completion keyword.
"""
from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sprintboard.core.config import settings
from sprintboard.core.exceptions import (
    ConflictException,
    NotFoundException,
    StoreUnavailableException,
    ValidationException,
)
from sprintboard.crud.execution_log import crud_execution_log
from sprintboard.crud.sprint import crud_sprint
from sprintboard.crud.task import crud_task
from sprintboard.models.execution_log import ExecutionLog
from sprintboard.schemas.execution_log import ExecutionLogRead, ReconciliationRead, SprintReport
from sprintboard.schemas.pagination import PaginatedResponse, page_bounds
from sprintboard.services.activity_service import activity_service
from sprintboard.services.ordering import display_order
from sprintboard.services.websocket_service import ws_manager

logger = logging.getLogger(__name__)

COMPLETION_KEYWORDS = ("completed", "finished", "done", "implemented", "delivered")

# Characters allowed between a title and its completion keyword.
_GAP = r"[\s'\"`*_:\-,.!()\[\]‘’“”]*"
_KEYWORD = r"\b(?:" + "|".join(COMPLETION_KEYWORDS) + r")\b"

_PROMPT_FOOTER = """Please provide:
1. Analysis of task complexity and dependencies
2. Suggested execution order
3. Potential blockers or considerations
4. Estimated effort for each task
5. Recommendations for implementation approach

Format your response to help track progress and completion status."""


class PromptTask(Protocol):
    title: str
    description: str | None
    priority: str
    tags: list[str]


class TitledTask(Protocol):
    id: uuid.UUID
    title: str


def render_prompt(sprint_name: str, tasks: Sequence[PromptTask]) -> str:
    """
    Render the execution prompt for a sprint.

    >>> from types import SimpleNamespace as T
    >>> task = T(title="A", description=None, priority="high", tags=[])
    >>> print(render_prompt("S1", [task]))  # doctest: +ELLIPSIS
    Sprint Execution: S1
    <BLANKLINE>
    Please review and help execute the following tasks:
    <BLANKLINE>
    1. **A** (Priority: high)
       No description provided
    <BLANKLINE>
    Please provide:
    ...
    """
    blocks = []
    for number, task in enumerate(tasks, start=1):
        lines = [f"{number}. **{task.title}** (Priority: {task.priority})"]
        if task.description:
            lines.append(f"   Description: {task.description}")
        else:
            lines.append("   No description provided")
        if task.tags:
            lines.append(f"   Tags: {', '.join(task.tags)}")
        blocks.append("\n".join(lines))

    return (
        f"Sprint Execution: {sprint_name}\n\n"
        "Please review and help execute the following tasks:\n\n"
        + "\n\n".join(blocks)
        + "\n\n"
        + _PROMPT_FOOTER
    )


def _completion_pattern(title: str) -> re.Pattern[str]:
    escaped = re.escape(title.strip())
    return re.compile(
        rf"{escaped}{_GAP}{_KEYWORD}|{_KEYWORD}{_GAP}{escaped}",
        re.IGNORECASE,
    )


def find_completed(response: str, tasks: Sequence[TitledTask]) -> list[uuid.UUID]:
    """
    Ids of the tasks whose title is mentioned next to a completion keyword,
    in either order, in the given order of tasks.

    >>> from types import SimpleNamespace as T
    >>> import uuid
    >>> a = T(id=uuid.UUID(int=1), title="Fix login bug")
    >>> find_completed("Task 'Fix login bug' completed successfully", [a])
    [UUID('00000000-0000-0000-0000-000000000001')]
    >>> find_completed("Working on Fix login bug next", [a])
    []
    """
    if not response:
        return []
    return [
        task.id
        for task in tasks
        if task.title.strip() and _completion_pattern(task.title).search(response)
    ]


class ExecutionService:

    async def get_log(self, db: AsyncSession, *, log_id: uuid.UUID) -> ExecutionLog:
        log = await crud_execution_log.get(db, log_id)
        if log is None:
            raise NotFoundException("Execution log", str(log_id))
        return log

    async def start_execution(
        self,
        db: AsyncSession,
        *,
        sprint_id: uuid.UUID,
        model_used: str | None = None,
        actor: str | None = None,
    ) -> ExecutionLog:
        """Render the prompt over the sprint's board-ordered tasks and record it."""
        sprint = await crud_sprint.get(db, sprint_id)
        if sprint is None:
            raise NotFoundException("Sprint", str(sprint_id))

        tasks = display_order(await crud_task.list_visible_by_sprint(db, sprint_id=sprint.id))
        if not tasks:
            raise ValidationException(f"Sprint '{sprint.name}' has no tasks to execute")

        log = await crud_execution_log.create_from_dict(
            db,
            obj_in={
                "sprint_id": sprint.id,
                "prompt_sent": render_prompt(sprint.name, tasks),
                "model_used": model_used or settings.DEFAULT_MODEL_NAME,
                "execution_date": datetime.now(timezone.utc),
            },
        )
        await activity_service.log(
            db,
            actor=actor,
            action="execution_started",
            entity_type="execution_log",
            entity_id=log.id,
            meta={"sprint_id": str(sprint.id), "tasks": len(tasks)},
        )
        logger.info("Execution started: log_id=%s sprint_id=%s", log.id, sprint.id)
        return log

    async def submit_response(
        self,
        db: AsyncSession,
        *,
        log_id: uuid.UUID,
        ai_response: str,
        actor: str | None = None,
    ) -> ReconciliationRead:
        """
        Store the pasted response, then mark the tasks it reports as done.

        The response is committed before reconciliation starts, so a failure
        while updating tasks never loses it. Finding no completed task is the
        normal outcome.
        """
        if not ai_response or not ai_response.strip():
            raise ValidationException("The response must not be empty")

        log = await self.get_log(db, log_id=log_id)
        if log.is_finalized:
            raise ConflictException("A response was already recorded for this execution")

        try:
            await crud_execution_log.update_fields(
                db, id=log.id, values={"ai_response": ai_response}
            )
            await db.commit()
        except SQLAlchemyError as exc:
            logger.error("Failed to store response of execution %s: %s", log.id, exc)
            await db.rollback()
            raise StoreUnavailableException() from exc

        tasks = display_order(await crud_task.list_visible_by_sprint(db, sprint_id=log.sprint_id))
        matched = set(find_completed(ai_response, tasks))
        newly_completed = [t.id for t in tasks if t.id in matched and t.status != "completed"]
        unchanged = [t.id for t in tasks if t.id not in newly_completed]

        await crud_task.mark_completed(db, task_ids=newly_completed)
        await crud_execution_log.update_fields(
            db,
            id=log.id,
            values={"completed_task_ids": [str(task_id) for task_id in newly_completed]},
        )
        log = await self.get_log(db, log_id=log.id)

        await activity_service.log(
            db,
            actor=actor,
            action="execution_reconciled",
            entity_type="execution_log",
            entity_id=log.id,
            meta={"completed": len(newly_completed), "unchanged": len(unchanged)},
        )
        logger.info(
            "Execution %s reconciled: %d completed, %d unchanged",
            log.id,
            len(newly_completed),
            len(unchanged),
        )
        if newly_completed:
            await ws_manager.publish_board_change(
                "tasks_completed", task_ids=newly_completed, sprint_ids=[log.sprint_id]
            )
        return ReconciliationRead(
            log=ExecutionLogRead.model_validate(log),
            completed_task_ids=newly_completed,
            unchanged_task_ids=unchanged,
        )

    async def list_logs(
        self,
        db: AsyncSession,
        *,
        sprint_id: uuid.UUID | None = None,
        page: int = 1,
        size: int = 20,
    ) -> PaginatedResponse[ExecutionLogRead]:
        skip, limit = page_bounds(page, size)
        logs, total = await crud_execution_log.list_logs(
            db, sprint_id=sprint_id, skip=skip, limit=limit
        )
        return PaginatedResponse[ExecutionLogRead](
            items=[ExecutionLogRead.model_validate(log) for log in logs],
            total=total,
            page=page,
            size=size,
        )

    async def delete_log(
        self, db: AsyncSession, *, log_id: uuid.UUID, actor: str | None = None
    ) -> None:
        log = await self.get_log(db, log_id=log_id)
        await crud_execution_log.remove(db, id=log.id)
        await activity_service.log(
            db,
            actor=actor,
            action="execution_deleted",
            entity_type="execution_log",
            entity_id=log_id,
            meta={"sprint_id": str(log.sprint_id)},
        )
        logger.info("Execution log deleted: id=%s", log_id)

    async def sprint_report(self, db: AsyncSession, *, sprint_id: uuid.UUID) -> SprintReport:
        sprint = await crud_sprint.get(db, sprint_id)
        if sprint is None:
            raise NotFoundException("Sprint", str(sprint_id))

        logs = await crud_execution_log.list_by_sprint(db, sprint_id=sprint.id)
        models_used: list[str] = []
        for log in logs:
            if log.model_used and log.model_used not in models_used:
                models_used.append(log.model_used)
        return SprintReport(
            sprint_id=sprint.id,
            sprint_name=sprint.name,
            total_executions=len(logs),
            latest_execution=logs[0].execution_date if logs else None,
            models_used=models_used,
        )


execution_service = ExecutionService()
