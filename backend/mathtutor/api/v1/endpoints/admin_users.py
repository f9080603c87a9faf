"""Admin user management endpoints (every role table)."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from mathtutor.common.pagination import PaginationParams, pagination_params
from mathtutor.core.app_exceptions import raise_bad_request, raise_forbidden, raise_not_found
from mathtutor.core.dependencies import require_roles
from mathtutor.core.logging import get_logger
from mathtutor.core.security import hash_password
from mathtutor.db.session import get_db
from mathtutor.models import ACCOUNT_MODELS, AccountRole
from mathtutor.models.accounts import AccountMixin
from mathtutor.schemas.admin import (
    AdminUserCreate,
    AdminUserItem,
    AdminUsersListResponse,
    AdminUserUpdate,
    RoleName,
)
from mathtutor.services import accounts, messaging
from mathtutor.services.learning_path import generate_learning_path

logger = get_logger(__name__)

router = APIRouter(prefix="/admin/users", tags=["Admin - Users"])

admin_only = require_roles(AccountRole.ADMIN)


def _get_account(db: Session, role: RoleName, account_id: int) -> AccountMixin:
    account = db.get(ACCOUNT_MODELS[AccountRole(role)], account_id)
    if account is None:
        raise_not_found(role.capitalize(), account_id)
    return account


@router.get(
    "",
    response_model=AdminUsersListResponse,
    summary="List users",
    description="Paginated list of accounts across all roles, newest first.",
)
async def list_users(
    q: Optional[str] = Query(None, max_length=100, description="Search by name or email"),
    role: Optional[RoleName] = Query(None, description="Filter by role"),
    pagination: PaginationParams = Depends(pagination_params),
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(admin_only),
) -> AdminUsersListResponse:
    items, total = accounts.list_accounts(
        db, pagination, q=q, role=AccountRole(role) if role else None
    )
    return AdminUsersListResponse(
        items=[AdminUserItem.model_validate(a) for a in items],
        page=pagination.page,
        page_size=pagination.page_size,
        total=total,
    )


@router.post(
    "",
    response_model=AdminUserItem,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    description="Create an account of any role. Students also get a learning path "
    "and, when parent_email matches, a parent link.",
)
async def create_user(
    request: AdminUserCreate,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(admin_only),
) -> AdminUserItem:
    role = AccountRole(request.role)
    if request.parent_email and role != AccountRole.STUDENT:
        raise_bad_request("parent_email is only valid for students")

    account = accounts.create_account(
        db,
        role,
        name=request.name,
        email=request.email,
        password=request.password,
        grade_level=request.grade_level,
        subject_taught=request.subject_taught,
        phone_number=request.phone_number,
    )
    if role == AccountRole.STUDENT:
        accounts.best_effort(
            db, "initial learning path", lambda: generate_learning_path(db, account)
        )
        if request.parent_email:
            accounts.best_effort(
                db,
                "parent link",
                lambda: accounts.link_parent_by_email(db, account, request.parent_email),
            )

    db.commit()
    logger.info(
        "Account created by admin",
        extra={"role": role.value, "account_id": account.id, "admin_id": current_account.id},
    )
    return AdminUserItem.model_validate(account)


@router.put(
    "/{role}/{account_id}",
    response_model=AdminUserItem,
    summary="Update user",
)
async def update_user(
    role: RoleName,
    account_id: int,
    request: AdminUserUpdate,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(admin_only),
) -> AdminUserItem:
    account = _get_account(db, role, account_id)
    changes = request.model_dump(exclude_unset=True)

    if "email" in changes and changes["email"] is not None:
        accounts.ensure_email_available(db, changes["email"], exclude=account)
        account.auth_id = changes.pop("email")
    if changes.get("password"):
        account.password_hash = hash_password(changes.pop("password"))
    if changes.get("is_active") is False and account is current_account:
        raise_forbidden("Admins cannot deactivate themselves")

    for field in ("name", "is_active"):
        if changes.get(field) is not None:
            setattr(account, field, changes[field])
    for field in accounts.ROLE_FIELDS[account.role]:
        if field in changes:
            setattr(account, field, changes[field])

    db.commit()
    db.refresh(account)
    return AdminUserItem.model_validate(account)


@router.delete(
    "/{role}/{account_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete user",
    description="Delete an account. Dependent rows (links, enrollments, responses) cascade; "
    "messages and notifications are removed.",
)
async def delete_user(
    role: RoleName,
    account_id: int,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(admin_only),
) -> None:
    account = _get_account(db, role, account_id)
    if account is current_account:
        raise_forbidden("Admins cannot delete themselves")
    messaging.purge_account(db, account.role, account_id)
    db.delete(account)
    db.commit()
    logger.info(
        "Account deleted by admin",
        extra={"role": role, "account_id": account_id, "admin_id": current_account.id},
    )
