"""Account models: one table per role, plus parent/child links."""

from datetime import UTC, datetime
from enum import Enum
from typing import ClassVar

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mathtutor.db.base import Base, JSONType


class AccountRole(str, Enum):
    """Account role enum. Each role lives in its own table."""

    STUDENT = "student"
    TEACHER = "teacher"
    PARENT = "parent"
    ADMIN = "admin"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AccountMixin:
    """Columns shared by every role table."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Login identifier (an email address)
    auth_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    role: ClassVar[AccountRole]

    @property
    def email(self) -> str:
        """API-friendly name for auth_id."""
        return self.auth_id


class Student(AccountMixin, Base):
    """A K-6 learner."""

    __tablename__ = "students"

    role = AccountRole.STUDENT

    grade_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    language_preference: Mapped[str] = mapped_column(String(32), nullable=False, default="English")
    preferences: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)


class Teacher(AccountMixin, Base):
    """A teacher owning classrooms."""

    __tablename__ = "teachers"

    role = AccountRole.TEACHER

    subject_taught: Mapped[str | None] = mapped_column(String(128), nullable=True)
    preferences: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)


class Parent(AccountMixin, Base):
    """A parent or guardian linked to one or more students."""

    __tablename__ = "parents"

    role = AccountRole.PARENT

    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)


class Admin(AccountMixin, Base):
    """A platform administrator."""

    __tablename__ = "admins"

    role = AccountRole.ADMIN


class ParentStudent(Base):
    """Link between a parent and a child."""

    __tablename__ = "parent_students"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    parent_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("parents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (UniqueConstraint("parent_id", "student_id", name="uq_parent_student"),)


ACCOUNT_MODELS: dict[AccountRole, type[AccountMixin]] = {
    AccountRole.ADMIN: Admin,
    AccountRole.TEACHER: Teacher,
    AccountRole.STUDENT: Student,
    AccountRole.PARENT: Parent,
}
