"""FastAPI dependencies for authentication and authorization."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from mathtutor.core.app_exceptions import raise_forbidden, raise_not_found
from mathtutor.core.security import verify_access_token
from mathtutor.db.session import get_db
from mathtutor.models import (
    ACCOUNT_MODELS,
    AccountRole,
    Classroom,
    Parent,
    ParentStudent,
    Student,
    Teacher,
)
from mathtutor.models.accounts import AccountMixin


def get_current_account(
    authorization: Annotated[str | None, Header()] = None,
    db: Session = Depends(get_db),
) -> AccountMixin:
    """Resolve the account behind a verified bearer token."""
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing",
        )

    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError("Invalid authorization scheme")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Expected: Bearer <token>",
        ) from None

    try:
        payload = verify_access_token(token)
        account_id = int(payload["sub"])
        role = AccountRole(payload["role"])
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid or expired token: {str(e)}",
        ) from e

    account = db.get(ACCOUNT_MODELS[role], account_id)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account not found",
        )

    if not account.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    return account


CurrentAccount = Annotated[AccountMixin, Depends(get_current_account)]


def require_roles(*allowed_roles: AccountRole):
    """Dependency factory to require specific roles."""

    def role_checker(current_account: AccountMixin = Depends(get_current_account)) -> AccountMixin:
        if current_account.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {[r.value for r in allowed_roles]}",
            )
        return current_account

    return role_checker


def is_linked_parent(db: Session, parent_id: int, student_id: int) -> bool:
    return (
        db.scalar(
            select(ParentStudent.id).where(
                ParentStudent.parent_id == parent_id,
                ParentStudent.student_id == student_id,
            )
        )
        is not None
    )


def get_accessible_student(db: Session, account: AccountMixin, student_id: int) -> Student:
    """
    Load a student the caller may read.

    Students see only themselves, parents only linked children; teachers and
    admins see every student.
    """
    if account.role == AccountRole.STUDENT and account.id != student_id:
        raise_forbidden("Students may only access their own records")

    student = db.get(Student, student_id)
    if student is None:
        raise_not_found("Student", student_id)

    if account.role == AccountRole.PARENT and not is_linked_parent(db, account.id, student_id):
        raise_forbidden("Parents may only access their linked children")

    return student


def get_owned_classroom(db: Session, account: AccountMixin, classroom_id: int) -> Classroom:
    """Load a classroom the caller manages (its teacher, or any admin)."""
    classroom = db.get(Classroom, classroom_id)
    if classroom is None:
        raise_not_found("Classroom", classroom_id)
    if account.role == AccountRole.TEACHER and classroom.teacher_id != account.id:
        raise_forbidden("Teachers may only manage their own classrooms")
    return classroom


def ensure_self_or_admin(account: AccountMixin, role: AccountRole, account_id: int) -> None:
    """Only the account itself or an admin may act on a role-specific record."""
    if account.role == AccountRole.ADMIN:
        return
    if account.role != role or account.id != account_id:
        raise_forbidden()


def get_teacher_for(db: Session, account: AccountMixin, teacher_id: int) -> Teacher:
    ensure_self_or_admin(account, AccountRole.TEACHER, teacher_id)
    teacher = db.get(Teacher, teacher_id)
    if teacher is None:
        raise_not_found("Teacher", teacher_id)
    return teacher


def get_parent_for(db: Session, account: AccountMixin, parent_id: int) -> Parent:
    ensure_self_or_admin(account, AccountRole.PARENT, parent_id)
    parent = db.get(Parent, parent_id)
    if parent is None:
        raise_not_found("Parent", parent_id)
    return parent
