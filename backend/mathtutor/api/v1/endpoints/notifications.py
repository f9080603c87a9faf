"""Notification endpoints for every signed-in role."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from mathtutor.common.pagination import PaginationParams, pagination_params
from mathtutor.core.dependencies import CurrentAccount
from mathtutor.db.session import get_db
from mathtutor.schemas.messaging import (
    MarkAllReadResponse,
    MarkReadResponse,
    NotificationResponse,
    NotificationsListResponse,
)
from mathtutor.services import messaging

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "",
    response_model=NotificationsListResponse,
    summary="Get notifications",
    description="The current account's notifications, newest first.",
)
async def get_notifications(
    current_account: CurrentAccount,
    unread_only: bool = Query(False, description="Filter to unread notifications only"),
    pagination: PaginationParams = Depends(pagination_params),
    db: Session = Depends(get_db),
) -> NotificationsListResponse:
    notifications, total, unread = messaging.list_notifications(
        db, current_account, pagination, unread_only
    )
    return NotificationsListResponse(
        items=[NotificationResponse.model_validate(n) for n in notifications],
        page=pagination.page,
        page_size=pagination.page_size,
        total=total,
        unread_count=unread,
    )


@router.put(
    "/read-all",
    response_model=MarkAllReadResponse,
    summary="Mark all notifications as read",
)
async def mark_all_read(
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> MarkAllReadResponse:
    return MarkAllReadResponse(updated=messaging.mark_all_notifications_read(db, current_account))


@router.put(
    "/{notification_id}/read",
    response_model=MarkReadResponse,
    summary="Mark notification as read",
    description="Idempotent. Another account's notification is reported as not found.",
)
async def mark_notification_read(
    notification_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> MarkReadResponse:
    notification = messaging.mark_notification_read(db, current_account, notification_id)
    return MarkReadResponse(id=notification.id, is_read=notification.is_read)
