"""
Generic paginated response schema.
Used by the archive and execution-log listings.
"""
from __future__ import annotations

import math
from typing import Generic, TypeVar

from pydantic import BaseModel, computed_field

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Items of one page plus total count, page number, page size and page count."""

    items: list[T]
    total: int
    page: int
    size: int

    @computed_field  # type: ignore[misc]
    @property
    def pages(self) -> int:
        if self.size == 0:
            return 0
        return math.ceil(self.total / self.size)

    @computed_field  # type: ignore[misc]
    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    model_config = {"from_attributes": True}


def page_bounds(page: int, size: int) -> tuple[int, int]:
    """Return the (offset, limit) pair for a 1-based page."""
    return (page - 1) * size, size
