"""
FastAPI dependency injection functions.
Provides the database session, the object storage and the request actor.
"""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from sprintboard.db.session import get_db
from sprintboard.services.storage_service import ObjectStorage, get_object_storage

# Re-export get_db so routes can import from one place
__all__ = ["get_db", "get_actor", "DBSession", "Storage", "Actor"]


async def get_actor(
    x_actor: Annotated[str | None, Header(max_length=200)] = None,
) -> str | None:
    """
    Name of whoever issued the request, taken from the X-Actor header.
    It is recorded in the audit trail; nothing is authorized on it.
    """
    if x_actor is None:
        return None
    return x_actor.strip() or None


# Convenience type aliases for route signatures
DBSession = Annotated[AsyncSession, Depends(get_db)]
Storage = Annotated[ObjectStorage, Depends(get_object_storage)]
Actor = Annotated[str | None, Depends(get_actor)]
