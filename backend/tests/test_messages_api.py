"""Tests for direct messages, the student contact route and notifications."""

import pytest
from sqlalchemy import func, select

from mathtutor.models import Message, Notification
from tests.helpers.seed import auth_headers_for, create_teacher

MESSAGES_URL = "/api/messages"
NOTIFICATIONS_URL = "/api/notifications"


@pytest.fixture
def contacted(client, student, teacher, auth_headers_teacher):
    """A teacher's message to the student, sent through the contact route."""
    response = client.post(
        f"/api/students/{student.id}/contact",
        json={"subject": "Great work", "body": "You finished every multiplication question."},
        headers=auth_headers_teacher,
    )
    assert response.status_code == 201
    return response.json()


class TestContactStudent:
    def test_message_lands_in_the_students_inbox(
        self, client, student, teacher, contacted, auth_headers_student
    ):
        inbox = client.get(f"{MESSAGES_URL}/inbox", headers=auth_headers_student).json()

        assert inbox["total"] == 1
        assert inbox["unread_count"] == 1
        message = inbox["items"][0]
        assert message["id"] == contacted["id"]
        assert message["sender_role"] == "teacher"
        assert message["sender_name"] == teacher.name
        assert message["recipient_name"] == student.name
        assert message["is_read"] is False

    def test_recipient_is_notified(self, client, contacted, teacher, auth_headers_student):
        data = client.get(NOTIFICATIONS_URL, headers=auth_headers_student).json()

        assert data["unread_count"] == 1
        notification = data["items"][0]
        assert notification["type"] == "message"
        assert notification["title"] == f"New message from {teacher.name}"
        assert notification["reference_id"] == contacted["id"]

    def test_student_cannot_use_contact_route(self, client, other_student, auth_headers_student):
        response = client.post(
            f"/api/students/{other_student.id}/contact",
            json={"body": "hi"},
            headers=auth_headers_student,
        )
        assert response.status_code == 403

    def test_unknown_student_is_404(self, client, auth_headers_teacher):
        response = client.post(
            "/api/students/9999/contact", json={"body": "hello"}, headers=auth_headers_teacher
        )
        assert response.status_code == 404

    def test_blank_body_is_422(self, client, student, auth_headers_teacher):
        response = client.post(
            f"/api/students/{student.id}/contact", json={"body": "   "}, headers=auth_headers_teacher
        )
        assert response.status_code == 422


class TestMessages:
    def test_student_can_write_to_teacher(self, client, db, teacher, auth_headers_student):
        response = client.post(
            MESSAGES_URL,
            json={"recipient_role": "teacher", "recipient_id": teacher.id, "body": "I need help"},
            headers=auth_headers_student,
        )

        assert response.status_code == 201
        assert response.json()["recipient_name"] == teacher.name
        outbox = client.get(f"{MESSAGES_URL}/outbox", headers=auth_headers_student).json()
        assert [m["body"] for m in outbox["items"]] == ["I need help"]
        teacher_inbox = client.get(
            f"{MESSAGES_URL}/inbox", headers=auth_headers_for(teacher)
        ).json()
        assert teacher_inbox["total"] == 1

    def test_student_cannot_write_to_parent(self, client, db, parent, auth_headers_student):
        response = client.post(
            MESSAGES_URL,
            json={"recipient_role": "parent", "recipient_id": parent.id, "body": "hello"},
            headers=auth_headers_student,
        )

        assert response.status_code == 403
        assert db.scalar(select(func.count(Message.id))) == 0

    def test_unknown_recipient_is_404(self, client, auth_headers_parent):
        response = client.post(
            MESSAGES_URL,
            json={"recipient_role": "teacher", "recipient_id": 9999, "body": "hello"},
            headers=auth_headers_parent,
        )
        assert response.status_code == 404

    def test_messaging_yourself_is_400(self, client, teacher, auth_headers_teacher):
        response = client.post(
            MESSAGES_URL,
            json={"recipient_role": "teacher", "recipient_id": teacher.id, "body": "note to self"},
            headers=auth_headers_teacher,
        )
        assert response.status_code == 400

    def test_invalid_recipient_role_is_422(self, client, auth_headers_teacher):
        response = client.post(
            MESSAGES_URL,
            json={"recipient_role": "janitor", "recipient_id": 1, "body": "hello"},
            headers=auth_headers_teacher,
        )
        assert response.status_code == 422

    def test_mark_read_also_reads_the_notification(
        self, client, db, contacted, auth_headers_student
    ):
        url = f"{MESSAGES_URL}/{contacted['id']}/read"

        response = client.put(url, headers=auth_headers_student)
        assert response.json() == {"id": contacted["id"], "is_read": True}
        # Idempotent
        assert client.put(url, headers=auth_headers_student).status_code == 200

        inbox = client.get(f"{MESSAGES_URL}/inbox", headers=auth_headers_student).json()
        assert inbox["unread_count"] == 0
        assert inbox["items"][0]["read_at"] is not None
        notifications = client.get(NOTIFICATIONS_URL, headers=auth_headers_student).json()
        assert notifications["unread_count"] == 0

    def test_unread_only_filter(self, client, contacted, auth_headers_student):
        client.put(f"{MESSAGES_URL}/{contacted['id']}/read", headers=auth_headers_student)

        inbox = client.get(
            f"{MESSAGES_URL}/inbox", params={"unread_only": True}, headers=auth_headers_student
        ).json()
        assert inbox["items"] == []
        assert inbox["total"] == 0

    def test_only_recipient_can_mark_read(
        self, client, contacted, auth_headers_teacher, other_student
    ):
        url = f"{MESSAGES_URL}/{contacted['id']}/read"

        assert client.put(url, headers=auth_headers_teacher).status_code == 403
        assert client.put(url, headers=auth_headers_for(other_student)).status_code == 403
        assert client.put(f"{MESSAGES_URL}/9999/read", headers=auth_headers_teacher).status_code == 404

    def test_inbox_is_newest_first(self, client, db, student, teacher, auth_headers_teacher):
        for body in ("first", "second", "third"):
            client.post(
                f"/api/students/{student.id}/contact", json={"body": body}, headers=auth_headers_teacher
            )

        inbox = client.get(
            f"{MESSAGES_URL}/inbox", params={"page_size": 2}, headers=auth_headers_for(student)
        ).json()
        assert [m["body"] for m in inbox["items"]] == ["third", "second"]
        assert inbox["total"] == 3

    def test_requires_authentication(self, client):
        assert client.get(f"{MESSAGES_URL}/inbox").status_code == 401


class TestParentMessages:
    def test_parent_reads_own_messages(self, client, db, parent, teacher, auth_headers_parent):
        client.post(
            MESSAGES_URL,
            json={"recipient_role": "parent", "recipient_id": parent.id, "body": "Conference on Friday"},
            headers=auth_headers_for(teacher),
        )

        data = client.get(f"/api/parents/{parent.id}/messages", headers=auth_headers_parent).json()

        assert [m["body"] for m in data["items"]] == ["Conference on Friday"]
        assert data["items"][0]["sender_name"] == teacher.name

    def test_other_parent_is_forbidden(self, client, db, parent, auth_headers_teacher):
        response = client.get(f"/api/parents/{parent.id}/messages", headers=auth_headers_teacher)
        assert response.status_code == 403


class TestNotifications:
    def test_read_all(self, client, student, auth_headers_teacher, auth_headers_student):
        for body in ("one", "two"):
            client.post(
                f"/api/students/{student.id}/contact", json={"body": body}, headers=auth_headers_teacher
            )

        response = client.put(f"{NOTIFICATIONS_URL}/read-all", headers=auth_headers_student)

        assert response.json() == {"updated": 2}
        data = client.get(
            NOTIFICATIONS_URL, params={"unread_only": True}, headers=auth_headers_student
        ).json()
        assert data["total"] == 0
        assert client.put(
            f"{NOTIFICATIONS_URL}/read-all", headers=auth_headers_student
        ).json() == {"updated": 0}

    def test_mark_one_read(self, client, db, contacted, auth_headers_student):
        notification_id = db.scalar(select(Notification.id))

        response = client.put(
            f"{NOTIFICATIONS_URL}/{notification_id}/read", headers=auth_headers_student
        )

        assert response.json() == {"id": notification_id, "is_read": True}

    def test_other_accounts_notification_is_404(self, client, db, contacted, other_student):
        notification_id = db.scalar(select(Notification.id))

        response = client.put(
            f"{NOTIFICATIONS_URL}/{notification_id}/read", headers=auth_headers_for(other_student)
        )

        assert response.status_code == 404


def test_deleting_an_account_removes_its_messages(
    client, db, student, contacted, auth_headers_admin
):
    teacher = create_teacher(db, email="second.teacher@example.com")
    client.post(
        MESSAGES_URL,
        json={"recipient_role": "teacher", "recipient_id": teacher.id, "body": "kept"},
        headers=auth_headers_admin,
    )

    response = client.delete(f"/api/admin/users/student/{student.id}", headers=auth_headers_admin)

    assert response.status_code == 204
    assert db.scalars(select(Message.body)).all() == ["kept"]
    assert db.scalar(
        select(func.count(Notification.id)).where(Notification.account_role == "student")
    ) == 0
