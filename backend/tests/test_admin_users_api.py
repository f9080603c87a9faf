"""Tests for admin user management across role tables."""

from sqlalchemy import select

from mathtutor.models import LearningPath, ParentStudent, Student
from tests.helpers.seed import DEFAULT_PASSWORD, create_kc, create_student

URL = "/api/admin/users"


def test_list_spans_all_roles(client, student, teacher, parent, admin, auth_headers_admin):
    data = client.get(URL, headers=auth_headers_admin).json()

    assert data["total"] == 4
    assert {u["role"] for u in data["items"]} == {"student", "teacher", "parent", "admin"}


def test_list_filters_by_role_and_query(client, db, student, teacher, auth_headers_admin):
    create_student(db, email="zed@example.com", name="Zed")

    data = client.get(URL, params={"role": "student"}, headers=auth_headers_admin).json()
    assert data["total"] == 2
    assert all(u["role"] == "student" for u in data["items"])

    data = client.get(URL, params={"q": "zed"}, headers=auth_headers_admin).json()
    assert [u["email"] for u in data["items"]] == ["zed@example.com"]


def test_list_paginates_newest_first(client, db, admin, auth_headers_admin):
    newest = create_student(db, email="newest@example.com")

    data = client.get(URL, params={"page_size": 1}, headers=auth_headers_admin).json()

    assert data["total"] == 2
    assert data["items"][0]["id"] == newest.id
    assert data["items"][0]["role"] == "student"


def test_invalid_role_filter_is_422(client, auth_headers_admin):
    assert client.get(URL, params={"role": "janitor"}, headers=auth_headers_admin).status_code == 422


def test_create_student_with_path_and_parent_link(client, db, parent, auth_headers_admin):
    create_kc(db, "3.OA.A.1")

    response = client.post(
        URL,
        json={
            "role": "student",
            "name": "New Kid",
            "email": "new.kid@example.com",
            "password": "Secret123!",
            "grade_level": 3,
            "parent_email": parent.auth_id,
        },
        headers=auth_headers_admin,
    )

    assert response.status_code == 201
    student_id = response.json()["id"]
    assert response.json()["grade_level"] == 3
    assert db.scalar(select(LearningPath).where(LearningPath.student_id == student_id)) is not None
    assert db.scalar(
        select(ParentStudent).where(
            ParentStudent.student_id == student_id, ParentStudent.parent_id == parent.id
        )
    ) is not None


def test_created_account_can_log_in(client, auth_headers_admin):
    client.post(
        URL,
        json={"role": "teacher", "name": "T", "email": "t2@example.com", "password": "Secret123!"},
        headers=auth_headers_admin,
    )
    login = client.post("/api/auth/login", json={"email": "t2@example.com", "password": "Secret123!"})
    assert login.status_code == 200
    assert login.json()["role"] == "teacher"


def test_parent_email_for_non_student_is_400(client, parent, auth_headers_admin):
    response = client.post(
        URL,
        json={
            "role": "teacher",
            "name": "T",
            "email": "t@example.com",
            "password": "Secret123!",
            "parent_email": parent.auth_id,
        },
        headers=auth_headers_admin,
    )
    assert response.status_code == 400


def test_duplicate_email_is_409(client, student, auth_headers_admin):
    response = client.post(
        URL,
        json={"role": "parent", "name": "P", "email": student.auth_id, "password": "Secret123!"},
        headers=auth_headers_admin,
    )
    assert response.status_code == 409


def test_update_user(client, db, student, auth_headers_admin):
    response = client.put(
        f"{URL}/student/{student.id}",
        json={"name": "Renamed", "grade_level": 4, "email": "renamed@example.com"},
        headers=auth_headers_admin,
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Renamed"
    assert response.json()["grade_level"] == 4
    assert response.json()["email"] == "renamed@example.com"

    login = client.post(
        "/api/auth/login", json={"email": "renamed@example.com", "password": DEFAULT_PASSWORD}
    )
    assert login.status_code == 200


def test_deactivated_user_cannot_log_in(client, student, auth_headers_admin):
    client.put(f"{URL}/student/{student.id}", json={"is_active": False}, headers=auth_headers_admin)
    login = client.post("/api/auth/login", json={"email": student.auth_id, "password": DEFAULT_PASSWORD})
    assert login.status_code == 401


def test_delete_user(client, db, student, auth_headers_admin):
    assert client.delete(f"{URL}/student/{student.id}", headers=auth_headers_admin).status_code == 204
    assert db.get(Student, student.id) is None
    assert client.delete(f"{URL}/student/{student.id}", headers=auth_headers_admin).status_code == 404


def test_admin_cannot_delete_self(client, admin, auth_headers_admin):
    response = client.delete(f"{URL}/admin/{admin.id}", headers=auth_headers_admin)
    assert response.status_code == 403


def test_non_admin_is_403(client, auth_headers_teacher):
    assert client.get(URL, headers=auth_headers_teacher).status_code == 403
