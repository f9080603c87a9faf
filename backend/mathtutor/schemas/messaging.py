"""Message and notification schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mathtutor.models import AccountRole


class _MessageBody(BaseModel):
    subject: str | None = Field(None, max_length=255)
    body: str = Field(..., min_length=1, max_length=5000)

    @field_validator("body")
    @classmethod
    def body_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message body must not be blank")
        return v


class MessageCreate(_MessageBody):
    """Send a message to any account the sender may contact."""

    recipient_role: AccountRole
    recipient_id: int = Field(..., ge=1)


class ContactRequest(_MessageBody):
    """Message addressed through a student or parent route."""


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_role: str
    sender_id: int
    sender_name: str | None = None
    recipient_role: str
    recipient_id: int
    recipient_name: str | None = None
    subject: str | None
    body: str
    is_read: bool
    read_at: datetime | None
    sent_at: datetime


class MessagesListResponse(BaseModel):
    """Paginated messages list response."""

    items: list[MessageResponse]
    page: int
    page_size: int
    total: int
    unread_count: int


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    title: str
    body: str
    reference_id: int | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime


class NotificationsListResponse(BaseModel):
    items: list[NotificationResponse]
    page: int
    page_size: int
    total: int
    unread_count: int


class MarkReadResponse(BaseModel):
    id: int
    is_read: bool


class MarkAllReadResponse(BaseModel):
    updated: int
