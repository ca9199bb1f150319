"""
ActivityLog Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel


class ActivityLogRead(BaseModel):
    id: uuid.UUID
    actor: str | None
    action: str
    entity_type: str
    entity_id: uuid.UUID
    meta: dict[str, Any] | None
    created_at: datetime

    model_config = {"from_attributes": True}
