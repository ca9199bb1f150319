"""
Custom HTTP exceptions and global exception handlers for Sprint Board.
All application-level errors are defined here for consistency.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError

logger = logging.getLogger(__name__)


# ── Custom exception classes ──────────────────────────────────────────────────

class SprintBoardException(Exception):
    """Base exception for all Sprint Board domain errors."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.error_code = error_code or "SPRINTBOARD_ERROR"
        super().__init__(detail)


class NotFoundException(SprintBoardException):
    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        detail = f"{resource} not found"
        if resource_id:
            detail = f"{resource} with id '{resource_id}' not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND",
        )


class ConflictException(SprintBoardException):
    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code="CONFLICT",
        )


class BadRequestException(SprintBoardException):
    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code="BAD_REQUEST",
        )


class ValidationException(SprintBoardException):
    """Rejected input; raised before any store call is made."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=422,
            detail=detail,
            error_code="VALIDATION_ERROR",
        )


class FileTooLargeException(SprintBoardException):
    def __init__(self, max_mb: int) -> None:
        super().__init__(
            status_code=413,
            detail=f"File exceeds maximum allowed size of {max_mb} MB",
            error_code="FILE_TOO_LARGE",
        )


class StoreUnavailableException(SprintBoardException):
    def __init__(self, detail: str = "The data store is currently unavailable") -> None:
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code="STORE_UNAVAILABLE",
        )


class PartialRenumberFailure(SprintBoardException):
    """
    Some, but not all, order writes of a reorder went through.
    Clients should refetch the affected columns to resynchronize.
    """

    def __init__(self, applied: int, total: int) -> None:
        self.applied = applied
        self.total = total
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=(
                f"Reorder interrupted after {applied} of {total} writes; "
                "refetch the board to resynchronize"
            ),
            error_code="PARTIAL_RENUMBER",
        )


# ── Exception handlers ────────────────────────────────────────────────────────

def _error_response(status_code: int, detail: str, error_code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error_code,
            "detail": detail,
        },
    )


async def sprintboard_exception_handler(
    request: Request, exc: SprintBoardException
) -> JSONResponse:
    return _error_response(exc.status_code, exc.detail, exc.error_code)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append({"field": field, "message": error["msg"]})
    return JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "detail": "Request validation failed",
            "errors": errors,
        },
    )


async def store_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
    unavailable = StoreUnavailableException()
    return _error_response(unavailable.status_code, unavailable.detail, unavailable.error_code)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected internal server error occurred",
        error_code="INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI application."""
    app.add_exception_handler(SprintBoardException, sprintboard_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(OperationalError, store_exception_handler)
    app.add_exception_handler(InterfaceError, store_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
