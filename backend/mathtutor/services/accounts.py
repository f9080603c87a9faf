"""Account service: cross-role lookups, registration and linking."""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from fastapi import status
from sqlalchemy import func, literal, or_, select, union_all
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql.selectable import Subquery

from mathtutor.common.pagination import PaginationParams
from mathtutor.core.app_exceptions import raise_app_error, raise_bad_request
from mathtutor.core.logging import get_logger
from mathtutor.core.security import hash_password, verify_password
from mathtutor.models import (
    ACCOUNT_MODELS,
    AccountRole,
    ClassroomStudent,
    ParentStudent,
    Student,
)
from mathtutor.models.accounts import AccountMixin

logger = get_logger(__name__)

# Login resolves an email against the role tables in this order
LOGIN_ROLE_ORDER = (AccountRole.ADMIN, AccountRole.TEACHER, AccountRole.STUDENT, AccountRole.PARENT)

ROLE_FIELDS: dict[AccountRole, tuple[str, ...]] = {
    AccountRole.STUDENT: ("grade_level", "language_preference", "preferences"),
    AccountRole.TEACHER: ("subject_taught", "preferences"),
    AccountRole.PARENT: ("phone_number",),
    AccountRole.ADMIN: (),
}


def find_account_by_email(db: Session, email: str) -> AccountMixin | None:
    """First account with this email, searching roles in login order."""
    email = email.lower().strip()
    for role in LOGIN_ROLE_ORDER:
        model = ACCOUNT_MODELS[role]
        account = db.scalar(select(model).where(model.auth_id == email))
        if account is not None:
            return account
    return None


def authenticate(db: Session, email: str, password: str) -> AccountMixin | None:
    """Return the account if the password matches, else None. Always verifies."""
    account = find_account_by_email(db, email)
    if account is None or not account.is_active:
        return None
    if not verify_password(password, account.password_hash):
        return None
    account.last_login_at = datetime.now(UTC)
    db.commit()
    return account


def ensure_email_available(db: Session, email: str, exclude: AccountMixin | None = None) -> None:
    """Raise 409 if any role table already holds this email."""
    existing = find_account_by_email(db, email)
    if existing is not None and existing is not exclude:
        raise_app_error(
            status_code=status.HTTP_409_CONFLICT,
            code="CONFLICT",
            message="Email already registered",
        )


def create_account(
    db: Session,
    role: AccountRole,
    name: str,
    email: str,
    password: str,
    **fields: Any,
) -> AccountMixin:
    """Create an account row for a role (flushed, not committed)."""
    ensure_email_available(db, email)
    model = ACCOUNT_MODELS[role]
    allowed = {k: v for k, v in fields.items() if k in ROLE_FIELDS[role] and v is not None}
    account = model(
        name=name,
        auth_id=email.lower().strip(),
        password_hash=hash_password(password),
        is_active=True,
        **allowed,
    )
    db.add(account)
    db.flush()
    return account


def best_effort(db: Session, description: str, step: Callable[[], Any]) -> bool:
    """
    Run an optional step inside a SAVEPOINT.

    A failing step is rolled back on its own, logged, and swallowed; the
    surrounding transaction stays usable.
    """
    try:
        with db.begin_nested():
            step()
        return True
    except SQLAlchemyError as e:
        logger.warning(f"Best-effort step failed ({description}): {e}")
        return False


def link_parent_by_email(db: Session, student: Student, parent_email: str) -> bool:
    """Link a student to the parent owning ``parent_email``; False if no such parent."""
    parent_model = ACCOUNT_MODELS[AccountRole.PARENT]
    parent = db.scalar(
        select(parent_model).where(parent_model.auth_id == parent_email.lower().strip())
    )
    if parent is None:
        logger.info(f"No parent with email {parent_email}; student {student.id} left unlinked")
        return False
    db.add(ParentStudent(parent_id=parent.id, student_id=student.id))
    db.flush()
    return True


def link_students(
    db: Session,
    student_ids: list[int],
    existing_ids: set[int],
    make_link: Callable[[int], Any],
) -> tuple[list[int], list[int]]:
    """
    Add links for ``student_ids`` that are not already present.

    All ids must exist (400 otherwise). Returns (added, already_present).
    """
    wanted = list(dict.fromkeys(student_ids))
    found = set(db.scalars(select(Student.id).where(Student.id.in_(wanted))).all())
    missing = [sid for sid in wanted if sid not in found]
    if missing:
        raise_bad_request("Unknown student ids", {"missing_student_ids": missing})

    added = [sid for sid in wanted if sid not in existing_ids]
    for sid in added:
        db.add(make_link(sid))
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request linked the same pair
        db.rollback()
        raise
    return added, [sid for sid in wanted if sid in existing_ids]


def enrolled_student_ids(db: Session, classroom_id: int) -> set[int]:
    return set(
        db.scalars(
            select(ClassroomStudent.student_id).where(ClassroomStudent.classroom_id == classroom_id)
        ).all()
    )


def linked_student_ids(db: Session, parent_id: int) -> set[int]:
    return set(
        db.scalars(select(ParentStudent.student_id).where(ParentStudent.parent_id == parent_id)).all()
    )


def change_password(db: Session, account: AccountMixin, current: str, new: str) -> None:
    if not verify_password(current, account.password_hash):
        raise_app_error(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="UNAUTHORIZED",
            message="Current password is incorrect",
        )
    account.password_hash = hash_password(new)
    db.commit()


def _accounts_union(q: str | None, role: AccountRole | None) -> Subquery:
    parts = []
    for r in LOGIN_ROLE_ORDER:
        if role is not None and r != role:
            continue
        model = ACCOUNT_MODELS[r]
        part = select(
            literal(r.value).label("role"),
            model.id.label("id"),
            model.name.label("name"),
            model.created_at.label("created_at"),
        )
        if q:
            term = f"%{q.lower()}%"
            part = part.where(or_(func.lower(model.name).like(term), model.auth_id.like(term)))
        parts.append(part)
    if len(parts) == 1:
        return parts[0].subquery()
    return union_all(*parts).subquery()


def list_accounts(
    db: Session,
    params: PaginationParams,
    q: str | None = None,
    role: AccountRole | None = None,
) -> tuple[list[AccountMixin], int]:
    """
    One page of accounts across every role table, newest first.

    Two queries select the page and the total; the page rows are then loaded
    with one IN query per role present on the page.
    """
    accounts = _accounts_union(q, role)
    total = db.scalar(select(func.count()).select_from(accounts)) or 0
    page = db.execute(
        select(accounts.c.role, accounts.c.id)
        .order_by(accounts.c.created_at.desc(), accounts.c.role, accounts.c.id.desc())
        .offset(params.offset)
        .limit(params.page_size)
    ).all()

    ids_by_role: dict[str, list[int]] = {}
    for row in page:
        ids_by_role.setdefault(row.role, []).append(row.id)

    loaded: dict[tuple[str, int], AccountMixin] = {}
    for role_value, ids in ids_by_role.items():
        model = ACCOUNT_MODELS[AccountRole(role_value)]
        for account in db.scalars(select(model).where(model.id.in_(ids))).all():
            loaded[(role_value, account.id)] = account

    return [loaded[(row.role, row.id)] for row in page], total
