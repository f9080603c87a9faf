"""Page-based pagination helpers for list endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import Query
from pydantic import BaseModel, Field
from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 100


class PaginationParams(BaseModel):
    """Page-based pagination (1-based pages)."""

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def pagination_params(
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    page_size: int = Query(
        DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description=f"Page size (max {MAX_PAGE_SIZE})"
    ),
) -> PaginationParams:
    """Dependency for page-based pagination."""
    return PaginationParams(page=page, page_size=page_size)


def paginate(db: Session, stmt: Select, params: PaginationParams) -> tuple[list[Any], int]:
    """Run a filtered, ordered select for one page and return (rows, total).

    The statement must already carry a deterministic ORDER BY so repeated
    calls over unchanged data return the same page.
    """
    total = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery())) or 0
    rows = db.scalars(stmt.offset(params.offset).limit(params.page_size)).all()
    return list(rows), total
