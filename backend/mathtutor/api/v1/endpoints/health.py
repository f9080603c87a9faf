"""Health and readiness endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mathtutor.core.errors import get_request_id
from mathtutor.core.logging import get_logger
from mathtutor.db.session import get_db

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok"] = "ok"


class ReadinessCheck(BaseModel):
    status: Literal["ok", "down"]
    message: str | None = None


class ReadinessResponse(BaseModel):
    status: Literal["ok", "down"]
    checks: dict[str, ReadinessCheck]
    request_id: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Returns 200 while the API process is running.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok")


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Verifies database connectivity.",
)
async def readiness_check(
    request: Request,
    db: Session = Depends(get_db),
) -> ReadinessResponse:
    """Readiness check endpoint - checks the database."""
    try:
        db.execute(text("SELECT 1"))
        check = ReadinessCheck(status="ok")
    except SQLAlchemyError as e:
        logger.warning(f"Readiness check failed: {e}")
        check = ReadinessCheck(status="down", message=str(e))

    return ReadinessResponse(
        status=check.status,
        checks={"db": check},
        request_id=get_request_id(request),
    )
