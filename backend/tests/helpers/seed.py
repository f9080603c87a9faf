"""Test seed helpers for creating test data."""

import uuid
from typing import Any

from sqlalchemy.orm import Session

from mathtutor.core.security import create_access_token, hash_password
from mathtutor.models import (
    ACCOUNT_MODELS,
    AccountRole,
    Admin,
    Classroom,
    ClassroomStudent,
    ContentItem,
    KnowledgeComponent,
    Parent,
    ParentStudent,
    Student,
    Teacher,
)
from mathtutor.models.accounts import AccountMixin

DEFAULT_PASSWORD = "TestPass123!"


def create_test_account(
    db: Session,
    role: AccountRole,
    email: str | None = None,
    password: str = DEFAULT_PASSWORD,
    is_active: bool = True,
    **kwargs: Any,
) -> AccountMixin:
    """
    Create and commit an account of any role with deterministic defaults.

    Args:
        db: Database session
        role: Account role (selects the table)
        email: Login email (defaults to a unique role-based address)
        password: Plain password (will be hashed)
        is_active: Whether the account may sign in
        **kwargs: Role-specific columns (grade_level, subject_taught, ...)
    """
    if email is None:
        email = f"test_{role.value}_{uuid.uuid4().hex[:8]}@test.example.com"

    account = ACCOUNT_MODELS[role](
        name=kwargs.pop("name", f"Test {role.value}"),
        auth_id=email.lower().strip(),
        password_hash=hash_password(password),
        is_active=is_active,
        **kwargs,
    )
    db.add(account)
    db.commit()
    return account


def create_student(db: Session, email: str | None = None, **kwargs: Any) -> Student:
    kwargs.setdefault("grade_level", 3)
    return create_test_account(db, AccountRole.STUDENT, email=email, **kwargs)


def create_teacher(db: Session, email: str | None = None, **kwargs: Any) -> Teacher:
    return create_test_account(db, AccountRole.TEACHER, email=email, **kwargs)


def create_parent(db: Session, email: str | None = None, **kwargs: Any) -> Parent:
    return create_test_account(db, AccountRole.PARENT, email=email, **kwargs)


def create_admin(db: Session, email: str | None = None, **kwargs: Any) -> Admin:
    return create_test_account(db, AccountRole.ADMIN, email=email, **kwargs)


def auth_headers_for(account: AccountMixin) -> dict[str, str]:
    """Authorization header carrying a valid token for ``account``."""
    token = create_access_token(account.id, account.role.value)
    return {"Authorization": f"Bearer {token}"}


def create_kc(
    db: Session,
    code: str,
    name: str | None = None,
    grade_level: int = 3,
    **kwargs: Any,
) -> KnowledgeComponent:
    kc = KnowledgeComponent(
        curriculum_code=code,
        name=name or f"Topic {code}",
        grade_level=grade_level,
        **kwargs,
    )
    db.add(kc)
    db.commit()
    return kc


def create_item(
    db: Session,
    kc: KnowledgeComponent | None,
    difficulty: int = 1,
    content: str | None = None,
    **kwargs: Any,
) -> ContentItem:
    item = ContentItem(
        type=kwargs.pop("type", "numeric"),
        content=content or f"Question at difficulty {difficulty}",
        correct_answer=kwargs.pop("correct_answer", "42"),
        difficulty=difficulty,
        knowledge_component_id=kc.id if kc is not None else None,
        **kwargs,
    )
    db.add(item)
    db.commit()
    return item


def create_classroom(db: Session, teacher: Teacher, name: str = "Grade 3 Math") -> Classroom:
    classroom = Classroom(name=name, teacher_id=teacher.id)
    db.add(classroom)
    db.commit()
    return classroom


def enroll(db: Session, classroom: Classroom, *students: Student) -> None:
    for student in students:
        db.add(ClassroomStudent(classroom_id=classroom.id, student_id=student.id))
    db.commit()


def link_parent(db: Session, parent: Parent, *students: Student) -> None:
    for student in students:
        db.add(ParentStudent(parent_id=parent.id, student_id=student.id))
    db.commit()
