"""
Aggregates all v1 API routers into a single APIRouter.
"""
from __future__ import annotations

from fastapi import APIRouter

from sprintboard.api.v1 import (
    activity_logs,
    archive,
    board,
    executions,
    images,
    sprints,
    tasks,
    websocket,
)

api_router = APIRouter()

api_router.include_router(board.router)
api_router.include_router(sprints.router)
api_router.include_router(tasks.router)
api_router.include_router(archive.router)
api_router.include_router(executions.router)
api_router.include_router(images.router)
api_router.include_router(activity_logs.router)
api_router.include_router(websocket.router)
