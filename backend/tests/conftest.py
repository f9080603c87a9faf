"""Pytest configuration and shared fixtures."""

import os
import tempfile
from collections.abc import Generator

# Settings are read at import time; configure the test environment first.
_DB_DIR = tempfile.mkdtemp(prefix="mathtutor-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/test.db"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-at-least-32-characters-long"
os.environ["ENV"] = "test"
os.environ["SEED_DEMO_DATA"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

import mathtutor.models  # noqa: E402,F401
from mathtutor.db.base import Base  # noqa: E402
from mathtutor.db.engine import engine  # noqa: E402
from mathtutor.db.session import SessionLocal, get_db  # noqa: E402
from mathtutor.main import app  # noqa: E402
from mathtutor.models import Admin, Parent, Student, Teacher  # noqa: E402
from tests.helpers.seed import (  # noqa: E402
    auth_headers_for,
    create_admin,
    create_parent,
    create_student,
    create_teacher,
)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema per test; the session is shared with the app under test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db) -> Generator[TestClient, None, None]:
    """Create a FastAPI test client with database dependency override."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        # No context manager: lifespan (logging setup, demo seed) is not needed here
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def student(db) -> Student:
    return create_student(db, email="student@test.example.com", grade_level=3)


@pytest.fixture
def other_student(db) -> Student:
    return create_student(db, email="other.student@test.example.com", grade_level=3)


@pytest.fixture
def teacher(db) -> Teacher:
    return create_teacher(db, email="teacher@test.example.com")


@pytest.fixture
def parent(db) -> Parent:
    return create_parent(db, email="parent@test.example.com")


@pytest.fixture
def admin(db) -> Admin:
    return create_admin(db, email="admin@test.example.com")


@pytest.fixture
def auth_headers_student(student) -> dict[str, str]:
    return auth_headers_for(student)


@pytest.fixture
def auth_headers_teacher(teacher) -> dict[str, str]:
    return auth_headers_for(teacher)


@pytest.fixture
def auth_headers_parent(parent) -> dict[str, str]:
    return auth_headers_for(parent)


@pytest.fixture
def auth_headers_admin(admin) -> dict[str, str]:
    return auth_headers_for(admin)
