"""Direct messages between accounts."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from mathtutor.common.pagination import PaginationParams, pagination_params
from mathtutor.core.dependencies import CurrentAccount
from mathtutor.db.session import get_db
from mathtutor.models import Message
from mathtutor.schemas.messaging import (
    MarkReadResponse,
    MessageCreate,
    MessageResponse,
    MessagesListResponse,
)
from mathtutor.services import messaging

router = APIRouter(prefix="/messages", tags=["Messages"])


def message_responses(db: Session, messages: list[Message]) -> list[MessageResponse]:
    """Messages with sender and recipient names (one lookup per role)."""
    names = messaging.account_names(
        db,
        [(m.sender_role, m.sender_id) for m in messages]
        + [(m.recipient_role, m.recipient_id) for m in messages],
    )
    return [
        MessageResponse.model_validate(m).model_copy(
            update={
                "sender_name": names.get((m.sender_role, m.sender_id)),
                "recipient_name": names.get((m.recipient_role, m.recipient_id)),
            }
        )
        for m in messages
    ]


@router.post(
    "",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message",
    description="Students may write to teachers, parents to teachers and admins, "
    "teachers and admins to anyone. The recipient also gets a notification.",
)
async def send_message(
    request: MessageCreate,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> MessageResponse:
    message = messaging.send_message(
        db,
        current_account,
        request.recipient_role,
        request.recipient_id,
        request.body,
        request.subject,
    )
    return message_responses(db, [message])[0]


@router.get("/inbox", response_model=MessagesListResponse, summary="Received messages")
async def get_inbox(
    current_account: CurrentAccount,
    unread_only: bool = Query(False, description="Only unread messages"),
    pagination: PaginationParams = Depends(pagination_params),
    db: Session = Depends(get_db),
) -> MessagesListResponse:
    messages, total, unread = messaging.list_messages(
        db, current_account, "inbox", pagination, unread_only
    )
    return MessagesListResponse(
        items=message_responses(db, messages),
        page=pagination.page,
        page_size=pagination.page_size,
        total=total,
        unread_count=unread,
    )


@router.get("/outbox", response_model=MessagesListResponse, summary="Sent messages")
async def get_outbox(
    current_account: CurrentAccount,
    pagination: PaginationParams = Depends(pagination_params),
    db: Session = Depends(get_db),
) -> MessagesListResponse:
    messages, total, unread = messaging.list_messages(db, current_account, "outbox", pagination)
    return MessagesListResponse(
        items=message_responses(db, messages),
        page=pagination.page,
        page_size=pagination.page_size,
        total=total,
        unread_count=unread,
    )


@router.put(
    "/{message_id}/read",
    response_model=MarkReadResponse,
    summary="Mark a received message as read",
)
async def mark_message_read(
    message_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> MarkReadResponse:
    message = messaging.mark_message_read(db, current_account, message_id)
    return MarkReadResponse(id=message.id, is_read=message.is_read)
