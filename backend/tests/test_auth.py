"""Tests for login, registration and token handling."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from sqlalchemy import select

from mathtutor.core.config import settings
from mathtutor.models import LearningPath, Parent, ParentStudent
from tests.helpers.seed import DEFAULT_PASSWORD, create_kc, create_student, create_teacher


class TestLogin:
    def test_login_returns_signed_token(self, client, student):
        response = client.post(
            "/api/auth/login",
            json={"email": "Student@Test.Example.com", "password": DEFAULT_PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["role"] == "student"
        assert data["user"]["id"] == student.id
        assert data["user"]["email"] == "student@test.example.com"

        claims = jwt.decode(data["access_token"], settings.JWT_SECRET, algorithms=["HS256"])
        assert claims["sub"] == str(student.id)
        assert claims["role"] == "student"
        assert claims["type"] == "access"

    def test_login_records_last_login(self, client, db, student):
        assert student.last_login_at is None
        client.post(
            "/api/auth/login",
            json={"email": student.auth_id, "password": DEFAULT_PASSWORD},
        )
        db.refresh(student)
        assert student.last_login_at is not None

    def test_wrong_password_is_rejected(self, client, student):
        response = client.post(
            "/api/auth/login",
            json={"email": student.auth_id, "password": "not-the-password"},
        )

        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"

    def test_unknown_email_is_rejected(self, client):
        response = client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": DEFAULT_PASSWORD},
        )
        assert response.status_code == 401

    def test_inactive_account_cannot_log_in(self, client, db):
        create_student(db, email="inactive@example.com", is_active=False)
        response = client.post(
            "/api/auth/login",
            json={"email": "inactive@example.com", "password": DEFAULT_PASSWORD},
        )
        assert response.status_code == 401

    def test_login_resolves_role_from_table(self, client, teacher):
        response = client.post(
            "/api/auth/login",
            json={"email": teacher.auth_id, "password": DEFAULT_PASSWORD},
        )
        assert response.status_code == 200
        assert response.json()["role"] == "teacher"


class TestTokenVerification:
    def test_missing_token_is_401(self, client, student):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"

    def test_malformed_header_is_401(self, client, student):
        response = client.get("/api/auth/me", headers={"Authorization": "Token abc"})
        assert response.status_code == 401

    def test_tampered_token_is_401(self, client, student):
        token = jwt.encode(
            {"sub": str(student.id), "role": "admin", "type": "access",
             "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            "a-different-secret-that-is-also-32-characters",
            algorithm="HS256",
        )
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_expired_token_is_401(self, client, student):
        token = jwt.encode(
            {"sub": str(student.id), "role": "student", "type": "access",
             "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            settings.JWT_SECRET,
            algorithm="HS256",
        )
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_me_returns_current_account(self, client, student, auth_headers_student):
        response = client.get("/api/auth/me", headers=auth_headers_student)
        assert response.status_code == 200
        assert response.json()["id"] == student.id
        assert response.json()["role"] == "student"

    def test_inactive_account_token_is_403(self, client, db, student, auth_headers_student):
        student.is_active = False
        db.commit()
        response = client.get("/api/auth/me", headers=auth_headers_student)
        assert response.status_code == 403


class TestRegistration:
    def test_register_student_creates_learning_path(self, client, db):
        create_kc(db, "3.OA.A.1")
        create_kc(db, "3.NBT.A.2")

        response = client.post(
            "/api/auth/register/student",
            json={
                "name": "Ada",
                "email": "ada@example.com",
                "password": "Secret123!",
                "grade_level": 3,
            },
        )

        assert response.status_code == 201
        student_id = response.json()["id"]
        path = db.scalar(select(LearningPath).where(LearningPath.student_id == student_id))
        assert path is not None
        assert len(path.sequence) == 2

    def test_register_student_links_existing_parent(self, client, db, parent):
        response = client.post(
            "/api/auth/register/student",
            json={
                "name": "Ben",
                "email": "ben@example.com",
                "password": "Secret123!",
                "grade_level": 2,
                "parent_email": parent.auth_id,
            },
        )

        assert response.status_code == 201
        link = db.scalar(
            select(ParentStudent).where(ParentStudent.student_id == response.json()["id"])
        )
        assert link is not None
        assert link.parent_id == parent.id

    def test_unknown_parent_email_does_not_fail_registration(self, client, db):
        response = client.post(
            "/api/auth/register/student",
            json={
                "name": "Cy",
                "email": "cy@example.com",
                "password": "Secret123!",
                "grade_level": 1,
                "parent_email": "missing.parent@example.com",
            },
        )
        assert response.status_code == 201
        assert db.scalar(select(ParentStudent)) is None

    def test_duplicate_email_across_roles_is_409(self, client, db):
        create_teacher(db, email="taken@example.com")
        response = client.post(
            "/api/auth/register/student",
            json={
                "name": "Dup",
                "email": "taken@example.com",
                "password": "Secret123!",
                "grade_level": 3,
            },
        )
        assert response.status_code == 409
        assert response.json()["error_code"] == "CONFLICT"

    @pytest.mark.parametrize("grade", [-1, 7])
    def test_grade_level_out_of_range_is_422(self, client, grade):
        response = client.post(
            "/api/auth/register/student",
            json={"name": "X", "email": "x@example.com", "password": "Secret123!", "grade_level": grade},
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_register_teacher(self, client):
        response = client.post(
            "/api/auth/register/teacher",
            json={"name": "Ms T", "email": "mst@example.com", "password": "Secret123!"},
        )
        assert response.status_code == 201
        assert response.json()["role"] == "teacher"

    def test_register_parent_links_matching_students(self, client, db, student):
        response = client.post(
            "/api/auth/register/parent",
            json={
                "name": "Mom",
                "email": "mom@example.com",
                "password": "Secret123!",
                "student_emails": [student.auth_id, "unknown.kid@example.com"],
            },
        )

        assert response.status_code == 201
        links = db.scalars(
            select(ParentStudent).where(ParentStudent.parent_id == response.json()["id"])
        ).all()
        assert [link.student_id for link in links] == [student.id]

    def test_register_parent_without_matching_student_is_400(self, client, db):
        response = client.post(
            "/api/auth/register/parent",
            json={
                "name": "Dad",
                "email": "dad@example.com",
                "password": "Secret123!",
                "student_emails": ["ghost@example.com"],
            },
        )
        assert response.status_code == 400
        assert db.scalar(select(Parent).where(Parent.auth_id == "dad@example.com")) is None
