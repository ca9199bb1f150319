"""
ExecutionLog CRUD operations.
"""
from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sprintboard.crud.base import CRUDBase
from sprintboard.models.execution_log import ExecutionLog
from sprintboard.schemas.execution_log import ExecutionResponse


class CRUDExecutionLog(CRUDBase[ExecutionLog, ExecutionResponse]):

    async def list_logs(
        self,
        db: AsyncSession,
        *,
        sprint_id: uuid.UUID | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> tuple[list[ExecutionLog], int]:
        query = select(ExecutionLog)
        count_query = select(func.count()).select_from(ExecutionLog)

        if sprint_id is not None:
            query = query.where(ExecutionLog.sprint_id == sprint_id)
            count_query = count_query.where(ExecutionLog.sprint_id == sprint_id)

        total_result = await db.execute(count_query)
        total = total_result.scalar_one()

        result = await db.execute(
            query.order_by(ExecutionLog.execution_date.desc(), ExecutionLog.id)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def list_by_sprint(
        self, db: AsyncSession, *, sprint_id: uuid.UUID
    ) -> list[ExecutionLog]:
        result = await db.execute(
            select(ExecutionLog)
            .where(ExecutionLog.sprint_id == sprint_id)
            .order_by(ExecutionLog.execution_date.desc())
        )
        return list(result.scalars().all())


crud_execution_log = CRUDExecutionLog(ExecutionLog)
