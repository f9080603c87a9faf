"""In-app messaging and notifications."""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Literal

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session

from mathtutor.common.pagination import PaginationParams, paginate
from mathtutor.core.app_exceptions import raise_bad_request, raise_forbidden, raise_not_found
from mathtutor.core.logging import get_logger
from mathtutor.models import (
    ACCOUNT_MODELS,
    AccountRole,
    Message,
    Notification,
    NotificationType,
)
from mathtutor.models.accounts import AccountMixin

logger = get_logger(__name__)

# Roles each role may start a conversation with
CONTACT_RULES: dict[AccountRole, frozenset[AccountRole]] = {
    AccountRole.STUDENT: frozenset({AccountRole.TEACHER}),
    AccountRole.PARENT: frozenset({AccountRole.TEACHER, AccountRole.ADMIN}),
    AccountRole.TEACHER: frozenset(AccountRole),
    AccountRole.ADMIN: frozenset(AccountRole),
}

Mailbox = Literal["inbox", "outbox"]


def send_message(
    db: Session,
    sender: AccountMixin,
    recipient_role: AccountRole,
    recipient_id: int,
    body: str,
    subject: str | None = None,
) -> Message:
    """
    Store a message and notify the recipient in one transaction.

    Raises:
        403 when the sender's role may not contact the recipient's role
        404 when the recipient does not exist
        400 when sender and recipient are the same account
    """
    if recipient_role not in CONTACT_RULES[sender.role]:
        raise_forbidden(f"A {sender.role.value} cannot message a {recipient_role.value}")
    if sender.role == recipient_role and sender.id == recipient_id:
        raise_bad_request("Cannot send a message to yourself")

    recipient = db.get(ACCOUNT_MODELS[recipient_role], recipient_id)
    if recipient is None:
        raise_not_found(recipient_role.value.capitalize(), recipient_id)

    message = Message(
        sender_role=sender.role.value,
        sender_id=sender.id,
        recipient_role=recipient_role.value,
        recipient_id=recipient_id,
        subject=subject,
        body=body,
    )
    db.add(message)
    db.flush()
    db.add(
        Notification(
            account_role=recipient_role.value,
            account_id=recipient_id,
            type=NotificationType.MESSAGE.value,
            title=f"New message from {sender.name}",
            body=subject or "You have a new message.",
            reference_id=message.id,
        )
    )
    db.commit()
    logger.info(
        "Message sent",
        extra={
            "message_id": message.id,
            "sender": f"{sender.role.value}:{sender.id}",
            "recipient": f"{recipient_role.value}:{recipient_id}",
        },
    )
    return message


def account_names(db: Session, refs: Iterable[tuple[str, int]]) -> dict[tuple[str, int], str]:
    """Display names for (role, id) pairs, one IN query per role."""
    ids_by_role: dict[str, set[int]] = {}
    for role, account_id in refs:
        ids_by_role.setdefault(role, set()).add(account_id)

    names: dict[tuple[str, int], str] = {}
    for role, ids in ids_by_role.items():
        model = ACCOUNT_MODELS[AccountRole(role)]
        for account_id, name in db.execute(select(model.id, model.name).where(model.id.in_(ids))):
            names[(role, account_id)] = name
    return names


def _unread_messages(account: AccountMixin):
    return (
        Message.recipient_role == account.role.value,
        Message.recipient_id == account.id,
        Message.is_read.is_(False),
    )


def list_messages(
    db: Session,
    account: AccountMixin,
    mailbox: Mailbox,
    params: PaginationParams,
    unread_only: bool = False,
) -> tuple[list[Message], int, int]:
    """One page of received or sent messages, newest first. Returns (page, total, unread)."""
    if mailbox == "inbox":
        stmt = select(Message).where(
            Message.recipient_role == account.role.value, Message.recipient_id == account.id
        )
        if unread_only:
            stmt = stmt.where(Message.is_read.is_(False))
    else:
        stmt = select(Message).where(
            Message.sender_role == account.role.value, Message.sender_id == account.id
        )

    messages, total = paginate(db, stmt.order_by(Message.sent_at.desc(), Message.id.desc()), params)
    unread = db.scalar(select(func.count(Message.id)).where(*_unread_messages(account))) or 0
    return messages, total, unread


def mark_message_read(db: Session, account: AccountMixin, message_id: int) -> Message:
    """Mark a received message and its notification read (idempotent)."""
    message = db.get(Message, message_id)
    if message is None:
        raise_not_found("Message", message_id)
    if message.recipient_role != account.role.value or message.recipient_id != account.id:
        raise_forbidden("Only the recipient can mark a message as read")

    if not message.is_read:
        now = datetime.now(UTC)
        message.is_read = True
        message.read_at = now
        db.execute(
            update(Notification)
            .where(
                Notification.account_role == account.role.value,
                Notification.account_id == account.id,
                Notification.type == NotificationType.MESSAGE.value,
                Notification.reference_id == message.id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=now)
        )
        db.commit()
    return message


def _own_notifications(account: AccountMixin):
    return (
        Notification.account_role == account.role.value,
        Notification.account_id == account.id,
    )


def list_notifications(
    db: Session, account: AccountMixin, params: PaginationParams, unread_only: bool = False
) -> tuple[list[Notification], int, int]:
    stmt = select(Notification).where(*_own_notifications(account))
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    notifications, total = paginate(
        db, stmt.order_by(Notification.created_at.desc(), Notification.id.desc()), params
    )
    unread = (
        db.scalar(
            select(func.count(Notification.id)).where(
                *_own_notifications(account), Notification.is_read.is_(False)
            )
        )
        or 0
    )
    return notifications, total, unread


def mark_notification_read(db: Session, account: AccountMixin, notification_id: int) -> Notification:
    notification = db.scalar(
        select(Notification).where(
            Notification.id == notification_id, *_own_notifications(account)
        )
    )
    # Other accounts' notifications are reported as missing
    if notification is None:
        raise_not_found("Notification", notification_id)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.now(UTC)
        db.commit()
    return notification


def mark_all_notifications_read(db: Session, account: AccountMixin) -> int:
    result = db.execute(
        update(Notification)
        .where(*_own_notifications(account), Notification.is_read.is_(False))
        .values(is_read=True, read_at=datetime.now(UTC))
    )
    db.commit()
    return result.rowcount


def purge_account(db: Session, role: AccountRole, account_id: int) -> None:
    """Delete messages and notifications addressed to or from an account (not committed)."""
    db.execute(
        delete(Message).where(
            or_(
                (Message.sender_role == role.value) & (Message.sender_id == account_id),
                (Message.recipient_role == role.value) & (Message.recipient_id == account_id),
            )
        )
    )
    db.execute(
        delete(Notification).where(
            Notification.account_role == role.value, Notification.account_id == account_id
        )
    )
