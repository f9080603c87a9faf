"""Request ID middleware and per-request access logging."""

import contextvars
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from mathtutor.core.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Visible to code running inside the request (DB instrumentation, services)
request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("request_id", default=None)


def current_request_id() -> str | None:
    """Request id of the request being served, if any."""
    return request_id_var.get()


def _request_fields(request: Request, request_id: str, **extra) -> dict:
    return {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        **extra,
    }


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Request-ID (or mint one), echo it back and log the request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        started = time.perf_counter()

        logger.info(
            "Request started",
            extra=_request_fields(request, request_id, query_params=str(request.query_params)),
        )
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra=_request_fields(
                    request,
                    request_id,
                    status_code=500,
                    latency_ms=int((time.perf_counter() - started) * 1000),
                    error=str(e),
                ),
                exc_info=True,
            )
            raise
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "Request completed",
            extra=_request_fields(
                request,
                request_id,
                status_code=response.status_code,
                latency_ms=int((time.perf_counter() - started) * 1000),
            ),
        )
        return response
