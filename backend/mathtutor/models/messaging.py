"""In-app messages between accounts and the notifications they raise."""

from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mathtutor.db.base import Base


class NotificationType(str, Enum):
    MESSAGE = "message"
    ASSIGNMENT = "assignment"
    FEEDBACK = "feedback"
    SYSTEM = "system"
    ACHIEVEMENT = "achievement"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Message(Base):
    """
    A direct message from one account to another.

    Accounts live in one table per role, so each end is addressed by
    ``(role, id)`` without a foreign key. Rows addressed to or from an
    account are removed together with it (see ``services.messaging``).
    """

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sender_role: Mapped[str] = mapped_column(String(16), nullable=False)
    sender_id: Mapped[int] = mapped_column(Integer, nullable=False)
    recipient_role: Mapped[str] = mapped_column(String(16), nullable=False)
    recipient_id: Mapped[int] = mapped_column(Integer, nullable=False)
    subject: Mapped[str | None] = mapped_column(String(255), nullable=True)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        Index("idx_messages_recipient_sent", "recipient_role", "recipient_id", "sent_at"),
        Index("idx_messages_sender_sent", "sender_role", "sender_id", "sent_at"),
    )


class Notification(Base):
    """Notification shown to one account; ``reference_id`` points at the source record."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_role: Mapped[str] = mapped_column(String(16), nullable=False)
    account_id: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    reference_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        Index("idx_notifications_account_created", "account_role", "account_id", "created_at"),
        Index(
            "idx_notifications_account_unread",
            "account_role",
            "account_id",
            "is_read",
        ),
    )
