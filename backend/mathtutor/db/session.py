"""Database session management."""

from typing import Generator

from sqlalchemy.orm import Session, sessionmaker

from mathtutor.db.engine import engine

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,
)


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session; uncommitted work is rolled back on exit."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
