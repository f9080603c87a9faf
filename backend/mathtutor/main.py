"""FastAPI application factory and main entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

import mathtutor.models  # noqa: F401  (registers tables on Base.metadata)
from mathtutor.api.v1.router import api_router
from mathtutor.common.request_id import RequestIDMiddleware
from mathtutor.core.config import settings
from mathtutor.core.errors import (
    database_exception_handler,
    general_exception_handler,
    http_exception_handler,
    integrity_error_handler,
    validation_exception_handler,
)
from mathtutor.core.logging import get_logger, setup_logging
from mathtutor.core.seed import seed_demo_data
from mathtutor.core.security_headers import SecurityHeadersMiddleware
from mathtutor.db.base import Base
from mathtutor.db.engine import engine

logger = get_logger(__name__)

API_VERSION = "1.0.0"

EXCEPTION_HANDLERS = (
    (RequestValidationError, validation_exception_handler),
    (HTTPException, http_exception_handler),
    (IntegrityError, integrity_error_handler),
    (SQLAlchemyError, database_exception_handler),
    (Exception, general_exception_handler),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging, prepare the dev database and seed demo data."""
    setup_logging()
    # No migrations: dev databases are created in place
    if settings.ENV == "dev":
        Base.metadata.create_all(bind=engine)
    seed_demo_data()
    logger.info("Application started", extra={"env": settings.ENV, "version": API_VERSION})
    yield


def _docs_path(path: str) -> str | None:
    """Interactive docs are hidden in production."""
    return None if settings.ENV == "prod" else path


def create_app() -> FastAPI:
    """Build the tutoring API: middleware, error handlers and the versioned router."""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=API_VERSION,
        description="K-6 math tutoring API: accounts, classrooms, curriculum and mastery tracking",
        openapi_url=_docs_path("/openapi.json"),
        docs_url=_docs_path("/docs"),
        redoc_url=_docs_path("/redoc"),
        lifespan=lifespan,
    )

    # CORS wraps request-id logging, which wraps the security headers
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for exc_class, handler in EXCEPTION_HANDLERS:
        app.add_exception_handler(exc_class, handler)

    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/", tags=["Root"], summary="API information")
    async def root():
        return {
            "message": settings.PROJECT_NAME,
            "version": API_VERSION,
            "docs_url": _docs_path("/docs"),
        }

    return app


app = create_app()
