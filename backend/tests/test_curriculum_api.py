"""Tests for read-only curriculum endpoints."""

import pytest

from tests.helpers.seed import create_item, create_kc


@pytest.fixture
def curriculum(db):
    grade3 = [create_kc(db, code) for code in ("3.OA.A.1", "3.NBT.A.2", "3.NF.A.1")]
    create_kc(db, "4.OA.A.1", grade_level=4)
    create_kc(db, "3.MD.A.1", status="pending_review")
    create_item(db, grade3[0])
    create_item(db, grade3[0], difficulty=2)
    create_item(db, grade3[0], status="draft")
    create_item(db, grade3[1])
    return grade3


def test_sequence_is_ordered_by_code_with_question_counts(client, auth_headers_student, curriculum):
    response = client.get(
        "/api/knowledge-components/sequence",
        params={"grade_level": 3},
        headers=auth_headers_student,
    )

    assert response.status_code == 200
    data = response.json()
    assert [kc["curriculum_code"] for kc in data] == ["3.NBT.A.2", "3.NF.A.1", "3.OA.A.1"]
    assert [kc["question_count"] for kc in data] == [1, 0, 2]


def test_sequence_requires_grade_level(client, auth_headers_student):
    response = client.get("/api/knowledge-components/sequence", headers=auth_headers_student)
    assert response.status_code == 422


def test_list_hides_unapproved_and_filters(client, auth_headers_student, curriculum):
    data = client.get("/api/knowledge-components", headers=auth_headers_student).json()
    assert data["total"] == 4

    data = client.get(
        "/api/knowledge-components",
        params={"grade_level": 4},
        headers=auth_headers_student,
    ).json()
    assert [kc["curriculum_code"] for kc in data["items"]] == ["4.OA.A.1"]


def test_list_is_idempotent(client, auth_headers_student, curriculum):
    first = client.get("/api/knowledge-components", headers=auth_headers_student).json()
    second = client.get("/api/knowledge-components", headers=auth_headers_student).json()
    assert first == second


def test_kc_content_items_only_approved(client, auth_headers_student, curriculum):
    kc = curriculum[0]
    data = client.get(
        f"/api/knowledge-components/{kc.id}/content-items", headers=auth_headers_student
    ).json()
    assert [item["difficulty"] for item in data] == [1, 2]


def test_unknown_kc_and_item_are_404(client, auth_headers_student):
    assert client.get("/api/knowledge-components/999", headers=auth_headers_student).status_code == 404
    assert client.get("/api/content-items/999", headers=auth_headers_student).status_code == 404


def test_curriculum_requires_login(client):
    assert client.get("/api/knowledge-components").status_code == 401
