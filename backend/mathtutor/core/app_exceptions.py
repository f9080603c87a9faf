"""Application-specific exceptions for consistent error handling."""

from typing import Any, NoReturn

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Application error carrying a stable, machine-readable code."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | list[Any] | None = None,
    ):
        super().__init__(
            status_code=status_code,
            detail={
                "code": code,
                "message": message,
                "details": details,
            },
        )
        self.code = code
        self.message = message
        self.details = details


def raise_app_error(
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | list[Any] | None = None,
) -> NoReturn:
    """Raise an application error with standardized format."""
    raise AppError(status_code=status_code, code=code, message=message, details=details)


def raise_not_found(entity: str, entity_id: Any = None) -> NoReturn:
    """Raise a 404 for an unknown entity id."""
    message = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
    raise_app_error(status.HTTP_404_NOT_FOUND, "NOT_FOUND", message)


def raise_forbidden(message: str = "You do not have access to this resource") -> NoReturn:
    """Raise a 403 for an ownership or role violation."""
    raise_app_error(status.HTTP_403_FORBIDDEN, "FORBIDDEN", message)


def raise_bad_request(message: str, details: dict[str, Any] | list[Any] | None = None) -> NoReturn:
    """Raise a 400 for input the schema layer cannot reject on its own."""
    raise_app_error(status.HTTP_400_BAD_REQUEST, "BAD_REQUEST", message, details)
