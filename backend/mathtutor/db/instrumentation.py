"""SQLAlchemy instrumentation for slow SQL logging.

Listeners are attached to the Engine once. Only queries slower than
``SLOW_SQL_WARN_MS`` are logged, tagged with the current request id.
Instrumentation is fail-open: it never breaks application queries.
"""

from __future__ import annotations

import time
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import Engine

from mathtutor.common.request_id import current_request_id
from mathtutor.core.config import settings
from mathtutor.core.logging import get_logger

logger = get_logger(__name__)

MAX_SQL_CHARS = 2000


def _normalize_sql(sql: str) -> str:
    # Collapse whitespace to make grouping easier in logs.
    return " ".join((sql or "").split())


def instrument_engine(engine: Engine) -> None:
    """Attach slow-query listeners to a sync Engine (idempotent)."""

    if getattr(engine, "_slow_sql_instrumented", False):
        return
    setattr(engine, "_slow_sql_instrumented", True)

    @event.listens_for(engine, "before_cursor_execute")
    def before_cursor_execute(
        conn, cursor, statement: str, parameters: Any, context, executemany: bool
    ) -> None:
        conn.info.setdefault("_query_start", []).append(time.perf_counter())

    @event.listens_for(engine, "after_cursor_execute")
    def after_cursor_execute(
        conn, cursor, statement: str, parameters: Any, context, executemany: bool
    ) -> None:
        starts = conn.info.get("_query_start")
        if not starts:
            return
        query_ms = (time.perf_counter() - starts.pop()) * 1000.0
        if query_ms <= settings.SLOW_SQL_WARN_MS:
            return

        logger.warning(
            "slow_sql",
            extra={
                "request_id": current_request_id() or "unknown",
                "query_ms": int(query_ms),
                "sql": _normalize_sql(statement)[:MAX_SQL_CHARS],
            },
        )
