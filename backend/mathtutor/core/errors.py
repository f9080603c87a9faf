"""Error handling and consistent error response format."""

import uuid
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from mathtutor.core.app_exceptions import AppError
from mathtutor.core.config import settings
from mathtutor.core.logging import get_logger

logger = get_logger(__name__)


class ErrorResponse(BaseModel):
    """Error response envelope.

    Format: {error_code, message, details, request_id}
    Every non-2xx response from the API uses this shape.
    """

    error_code: str
    message: str
    details: Any | None = None
    request_id: str | None = None


def get_request_id(request: Request) -> str:
    """Get request ID from request state or generate new one."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return str(uuid.uuid4())


def _error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error_code=code,
            message=message,
            details=details,
            request_id=get_request_id(request),
        ).model_dump(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors (422)."""
    details: list[dict[str, Any]] = []
    for error in exc.errors():
        details.append(
            {
                "field": ".".join(str(loc) for loc in error.get("loc", [])),
                "issue": error.get("msg", "Validation error"),
                "type": error.get("type", "validation_error"),
            }
        )

    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Invalid request data",
        details,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions, including AppError."""
    if isinstance(exc, AppError):
        return _error_response(request, exc.status_code, exc.code, exc.message, exc.details)

    details = None
    code = "HTTP_ERROR"
    if isinstance(exc.detail, dict):
        if "code" in exc.detail:
            code = exc.detail["code"]
            message = exc.detail.get("message", "An error occurred")
            details = exc.detail.get("details")
        else:
            details = exc.detail.copy()
            message = details.pop("message", "An error occurred")
    elif isinstance(exc.detail, str):
        message = exc.detail
    else:
        message = str(exc.detail)

    if exc.status_code == status.HTTP_401_UNAUTHORIZED and code == "HTTP_ERROR":
        code = "UNAUTHORIZED"
    elif exc.status_code == status.HTTP_403_FORBIDDEN and code == "HTTP_ERROR":
        code = "FORBIDDEN"
    elif exc.status_code == status.HTTP_404_NOT_FOUND and code == "HTTP_ERROR":
        code = "NOT_FOUND"

    return _error_response(request, exc.status_code, code, message, details)


def _backend_message(exc: Exception, fallback: str) -> tuple[str, dict[str, str] | None]:
    # Outside prod the raw backend message is passed through to the caller
    if settings.ENV == "prod":
        return fallback, None
    return str(getattr(exc, "orig", None) or exc), {"type": type(exc).__name__}


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Handle unique/foreign-key violations that slipped past explicit checks (409)."""
    logger.warning(
        "Integrity error",
        extra={"request_id": get_request_id(request), "path": request.url.path},
    )
    message, details = _backend_message(exc, "The request conflicts with existing data")
    return _error_response(request, status.HTTP_409_CONFLICT, "CONFLICT", message, details)


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle database errors (500)."""
    logger.error(
        "Database error",
        extra={"request_id": get_request_id(request), "path": request.url.path},
        exc_info=exc,
    )
    message, details = _backend_message(exc, "A database error occurred")
    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "DATABASE_ERROR", message, details
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions (500)."""
    logger.error(
        "Unhandled exception",
        extra={"request_id": get_request_id(request), "path": request.url.path},
        exc_info=exc,
    )
    message, details = _backend_message(exc, "An internal server error occurred")
    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", message, details
    )
