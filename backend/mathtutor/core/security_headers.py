"""Security headers middleware."""

from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from mathtutor.core.config import settings


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add conservative security headers to every API response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Responses carry student data
        response.headers.setdefault("Cache-Control", "no-store")

        if settings.ENV == "prod" and request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response
