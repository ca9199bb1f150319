"""
Board routes.
The column view and the single drag-and-drop move command.
"""
from __future__ import annotations

from fastapi import APIRouter, Query

from sprintboard.core.dependencies import Actor, DBSession
from sprintboard.schemas.board import BoardColumn, MoveResult
from sprintboard.schemas.task import TaskMove
from sprintboard.services.board_service import board_service

router = APIRouter(prefix="/board", tags=["Board"])


@router.get(
    "",
    response_model=list[BoardColumn],
    summary="List sprint columns with their ordered tasks",
)
async def list_columns(
    db: DBSession,
    include_hidden: bool = Query(default=False),
) -> list[BoardColumn]:
    return await board_service.list_columns(db, include_hidden=include_hidden)


@router.post(
    "/moves",
    response_model=MoveResult,
    summary="Move a task to a position in a sprint column",
)
async def move_task(
    move: TaskMove,
    actor: Actor,
    db: DBSession,
) -> MoveResult:
    return await board_service.move_task(db, move=move, actor=actor)
