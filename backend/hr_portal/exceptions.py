import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import DBAPIError

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception.

    ``code`` is the stable error name rendered to clients; it defaults to the class name.
    """

    code: str | None = None
    default_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status
        super().__init__(self.message)

    @property
    def error_code(self) -> str:
        return self.code or type(self).__name__


# ---------------------------------------------------------------------------
# Validation and lookup
# ---------------------------------------------------------------------------


class InvalidInputError(AppError):
    code = "ValidationError"
    default_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class EmployeeNotFoundError(AppError):
    code = "EmployeeNotFound"
    default_status = status.HTTP_404_NOT_FOUND


class NotFoundError(AppError):
    code = "NotFound"
    default_status = status.HTTP_404_NOT_FOUND


class NoManagerAssignedError(AppError):
    code = "NoManagerAssigned"
    default_status = status.HTTP_400_BAD_REQUEST


class ForbiddenError(AppError):
    code = "Forbidden"
    default_status = status.HTTP_403_FORBIDDEN


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class InsufficientBalanceError(AppError):
    """Requested days exceed the eligible capacity of the employee's periods."""

    code = "InsufficientBalance"
    default_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, requested: int, available: int) -> None:
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient balance: requested {requested} day(s), available {available}")


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


class InvalidTokenError(AppError):
    code = "InvalidToken"
    default_status = status.HTTP_404_NOT_FOUND


class TokenExpiredError(AppError):
    code = "TokenExpired"
    default_status = status.HTTP_410_GONE


class AlreadyActionedError(AppError):
    code = "AlreadyActioned"
    default_status = status.HTTP_409_CONFLICT


class InvalidStateError(AppError):
    code = "InvalidState"
    default_status = status.HTTP_409_CONFLICT


class SchedulerBusyError(AppError):
    code = "SchedulerBusy"
    default_status = status.HTTP_409_CONFLICT


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.error_code,
            detail=exc.message,
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


async def _persistence_exception_handler(request: Request, exc: DBAPIError) -> JSONResponse:
    logger.exception("Persistence failure on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=ErrorResponse(
            error="PersistenceUnavailable",
            detail="The operation was not applied; retry later",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DBAPIError, _persistence_exception_handler)  # type: ignore[arg-type]
