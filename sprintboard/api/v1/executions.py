"""
Sprint execution routes.
Prompt generation, response submission with reconciliation, and the log history.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from sprintboard.core.dependencies import Actor, DBSession
from sprintboard.schemas.execution_log import (
    ExecutionLogRead,
    ExecutionResponse,
    ExecutionStart,
    ReconciliationRead,
    SprintReport,
)
from sprintboard.schemas.pagination import PaginatedResponse
from sprintboard.services.execution_service import execution_service

router = APIRouter(prefix="/executions", tags=["Executions"])


@router.post(
    "",
    response_model=ExecutionLogRead,
    status_code=status.HTTP_201_CREATED,
    summary="Generate the execution prompt of a sprint",
)
async def start_execution(
    body: ExecutionStart,
    actor: Actor,
    db: DBSession,
) -> ExecutionLogRead:
    log = await execution_service.start_execution(
        db, sprint_id=body.sprint_id, model_used=body.model_used, actor=actor
    )
    return ExecutionLogRead.model_validate(log)


@router.get(
    "",
    response_model=PaginatedResponse[ExecutionLogRead],
    summary="List execution logs, newest first",
)
async def list_logs(
    db: DBSession,
    sprint_id: uuid.UUID | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
) -> PaginatedResponse[ExecutionLogRead]:
    return await execution_service.list_logs(db, sprint_id=sprint_id, page=page, size=size)


@router.get(
    "/report/{sprint_id}",
    response_model=SprintReport,
    summary="Execution summary of a sprint",
)
async def sprint_report(sprint_id: uuid.UUID, db: DBSession) -> SprintReport:
    return await execution_service.sprint_report(db, sprint_id=sprint_id)


@router.get(
    "/{log_id}",
    response_model=ExecutionLogRead,
    summary="Get an execution log",
)
async def get_log(log_id: uuid.UUID, db: DBSession) -> ExecutionLogRead:
    log = await execution_service.get_log(db, log_id=log_id)
    return ExecutionLogRead.model_validate(log)


@router.post(
    "/{log_id}/response",
    response_model=ReconciliationRead,
    summary="Submit the generated response and mark completed tasks",
)
async def submit_response(
    log_id: uuid.UUID,
    body: ExecutionResponse,
    actor: Actor,
    db: DBSession,
) -> ReconciliationRead:
    return await execution_service.submit_response(
        db, log_id=log_id, ai_response=body.ai_response, actor=actor
    )


@router.delete(
    "/{log_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an execution log",
)
async def delete_log(log_id: uuid.UUID, actor: Actor, db: DBSession) -> None:
    await execution_service.delete_log(db, log_id=log_id, actor=actor)
