"""Tests for admin management of knowledge components and content items."""

import pytest
from sqlalchemy import func, select

from mathtutor.models import ContentItem, KnowledgeComponent
from tests.helpers.seed import create_item, create_kc

KC_URL = "/api/admin/knowledge-components"
ITEM_URL = "/api/admin/content-items"


class TestKnowledgeComponents:
    def test_crud(self, client, auth_headers_admin):
        created = client.post(
            KC_URL,
            json={"name": "Fractions", "curriculum_code": "3.NF.A.1", "grade_level": 3},
            headers=auth_headers_admin,
        )
        assert created.status_code == 201
        kc_id = created.json()["id"]

        updated = client.put(
            f"{KC_URL}/{kc_id}", json={"description": "Unit fractions"}, headers=auth_headers_admin
        )
        assert updated.json()["description"] == "Unit fractions"
        assert updated.json()["name"] == "Fractions"

        assert client.get(f"{KC_URL}/{kc_id}", headers=auth_headers_admin).status_code == 200
        assert client.delete(f"{KC_URL}/{kc_id}", headers=auth_headers_admin).status_code == 204
        assert client.get(f"{KC_URL}/{kc_id}", headers=auth_headers_admin).status_code == 404

    def test_duplicate_curriculum_code_is_409(self, client, db, auth_headers_admin):
        create_kc(db, "3.OA.A.1")
        response = client.post(
            KC_URL,
            json={"name": "Again", "curriculum_code": "3.OA.A.1", "grade_level": 3},
            headers=auth_headers_admin,
        )
        assert response.status_code == 409
        assert response.json()["error_code"] == "CONFLICT"

    def test_delete_keeps_questions_detached(self, client, db, auth_headers_admin):
        kc = create_kc(db, "3.OA.A.1")
        item = create_item(db, kc)

        client.delete(f"{KC_URL}/{kc.id}", headers=auth_headers_admin)

        db.expire_all()
        assert db.get(ContentItem, item.id).knowledge_component_id is None

    def test_delete_multiple_reports_missing_ids(self, client, db, auth_headers_admin):
        kcs = [create_kc(db, code) for code in ("1.A", "1.B")]

        response = client.post(
            f"{KC_URL}/delete-multiple",
            json={"ids": [kcs[0].id, kcs[1].id, 999]},
            headers=auth_headers_admin,
        )

        assert response.json() == {"deleted": 2, "not_found": [999]}
        assert db.scalar(select(func.count(KnowledgeComponent.id))) == 0

    def test_admin_list_includes_unapproved(self, client, db, auth_headers_admin):
        create_kc(db, "3.OA.A.1")
        create_kc(db, "3.OA.A.2", status="pending_review")

        data = client.get(KC_URL, headers=auth_headers_admin).json()
        assert data["total"] == 2

        data = client.get(KC_URL, params={"status": "pending_review"}, headers=auth_headers_admin).json()
        assert [kc["curriculum_code"] for kc in data["items"]] == ["3.OA.A.2"]

    @pytest.mark.parametrize("headers_fixture", ["auth_headers_teacher", "auth_headers_student"])
    def test_non_admins_are_403(self, client, request, headers_fixture):
        headers = request.getfixturevalue(headers_fixture)
        assert client.get(KC_URL, headers=headers).status_code == 403


class TestContentItems:
    @pytest.fixture
    def items(self, db):
        addition = create_kc(db, "3.NBT.A.2", name="Addition")
        fractions = create_kc(db, "3.NF.A.1", name="Fractions")
        return [
            create_item(db, addition, difficulty=1, content="What is 2 + 2?"),
            create_item(db, addition, difficulty=3, content="What is 245 + 132?", status="draft"),
            create_item(db, fractions, difficulty=2, content="Shade one quarter", type="multiple_choice"),
        ]

    def test_list_ordered_by_id_desc(self, client, items, auth_headers_admin):
        data = client.get(ITEM_URL, headers=auth_headers_admin).json()
        assert [i["id"] for i in data["items"]] == [items[2].id, items[1].id, items[0].id]

    @pytest.mark.parametrize(
        "params, expected",
        [
            ({"type": "multiple_choice"}, [2]),
            ({"difficulty": 3}, [1]),
            ({"status": "draft"}, [1]),
            ({"search": "245"}, [1]),
            ({"search": "fraction"}, [2]),
        ],
    )
    def test_filters(self, client, items, auth_headers_admin, params, expected):
        data = client.get(ITEM_URL, params=params, headers=auth_headers_admin).json()
        assert [i["id"] for i in data["items"]] == [items[n].id for n in expected]

    def test_filter_by_knowledge_component(self, client, items, auth_headers_admin):
        kc_id = items[0].knowledge_component_id
        data = client.get(
            ITEM_URL, params={"knowledge_component_id": kc_id}, headers=auth_headers_admin
        ).json()
        assert data["total"] == 2

    def test_pagination(self, client, items, auth_headers_admin):
        page1 = client.get(ITEM_URL, params={"page": 1, "page_size": 2}, headers=auth_headers_admin).json()
        page2 = client.get(ITEM_URL, params={"page": 2, "page_size": 2}, headers=auth_headers_admin).json()
        assert page1["total"] == page2["total"] == 3
        assert len(page1["items"]) == 2
        assert [i["id"] for i in page2["items"]] == [items[0].id]

    def test_list_is_idempotent(self, client, items, auth_headers_admin):
        first = client.get(ITEM_URL, headers=auth_headers_admin).json()
        second = client.get(ITEM_URL, headers=auth_headers_admin).json()
        assert first == second

    def test_create_accepts_metadata_alias(self, client, db, auth_headers_admin):
        kc = create_kc(db, "3.OA.A.1")
        response = client.post(
            ITEM_URL,
            json={
                "type": "numeric",
                "content": "6 x 7 = ?",
                "correct_answer": "42",
                "difficulty": 2,
                "metadata": {"source": "worksheet 4"},
                "knowledge_component_id": kc.id,
            },
            headers=auth_headers_admin,
        )
        assert response.status_code == 201
        assert response.json()["metadata"] == {"source": "worksheet 4"}
        assert response.json()["teacher_id"] is None

    def test_unknown_knowledge_component_is_400(self, client, items, auth_headers_admin):
        created = client.post(
            ITEM_URL,
            json={"type": "numeric", "content": "1 + 1", "knowledge_component_id": 999},
            headers=auth_headers_admin,
        )
        assert created.status_code == 400
        assert created.json()["error_code"] == "BAD_REQUEST"

        updated = client.put(
            f"{ITEM_URL}/{items[0].id}",
            json={"knowledge_component_id": 999},
            headers=auth_headers_admin,
        )
        assert updated.status_code == 400

    def test_update_and_delete(self, client, items, auth_headers_admin):
        response = client.put(
            f"{ITEM_URL}/{items[1].id}", json={"status": "approved"}, headers=auth_headers_admin
        )
        assert response.json()["status"] == "approved"
        assert response.json()["content"] == "What is 245 + 132?"

        assert client.delete(f"{ITEM_URL}/{items[1].id}", headers=auth_headers_admin).status_code == 204
        assert client.get(f"{ITEM_URL}/{items[1].id}", headers=auth_headers_admin).status_code == 404

    def test_invalid_difficulty_is_422(self, client, auth_headers_admin):
        response = client.post(
            ITEM_URL,
            json={"type": "numeric", "content": "1 + 1", "difficulty": 9},
            headers=auth_headers_admin,
        )
        assert response.status_code == 422

    def test_delete_multiple(self, client, items, auth_headers_admin):
        response = client.post(
            f"{ITEM_URL}/delete-multiple",
            json={"ids": [items[0].id, items[0].id, 777]},
            headers=auth_headers_admin,
        )
        assert response.json() == {"deleted": 1, "not_found": [777]}


class TestBulkContentItems:
    def test_creates_every_item_with_hint_in_metadata(self, client, db, auth_headers_admin):
        kc = create_kc(db, "3.OA.A.1")
        other = create_kc(db, "3.OA.A.2")

        response = client.post(
            f"{ITEM_URL}/bulk",
            json={
                "knowledge_component_id": kc.id,
                "items": [
                    {"type": "numeric", "content": "3 x 4 = ?", "correct_answer": "12",
                     "hint": "Count four groups of three"},
                    {"type": "numeric", "content": "5 x 2 = ?", "correct_answer": "10",
                     "difficulty": 2, "knowledge_component_id": other.id},
                ],
            },
            headers=auth_headers_admin,
        )

        assert response.status_code == 201
        created = response.json()
        assert [i["content"] for i in created] == ["3 x 4 = ?", "5 x 2 = ?"]
        assert {i["knowledge_component_id"] for i in created} == {kc.id}
        assert {i["status"] for i in created} == {"approved"}
        assert created[0]["metadata"] == {"hint": "Count four groups of three"}
        assert created[1]["metadata"] == {}

    def test_unknown_knowledge_component_creates_nothing(self, client, db, auth_headers_admin):
        response = client.post(
            f"{ITEM_URL}/bulk",
            json={"knowledge_component_id": 999, "items": [{"type": "numeric", "content": "1 + 1"}]},
            headers=auth_headers_admin,
        )

        assert response.status_code == 400
        assert db.scalar(select(func.count(ContentItem.id))) == 0

    def test_one_invalid_item_rejects_the_batch(self, client, db, auth_headers_admin):
        kc = create_kc(db, "3.OA.A.1")
        response = client.post(
            f"{ITEM_URL}/bulk",
            json={
                "knowledge_component_id": kc.id,
                "items": [
                    {"type": "numeric", "content": "1 + 1"},
                    {"type": "numeric", "content": "2 + 2", "difficulty": 7},
                ],
            },
            headers=auth_headers_admin,
        )

        assert response.status_code == 422
        assert db.scalar(select(func.count(ContentItem.id))) == 0

    def test_teacher_is_403(self, client, db, auth_headers_teacher):
        kc = create_kc(db, "3.OA.A.1")
        response = client.post(
            f"{ITEM_URL}/bulk",
            json={"knowledge_component_id": kc.id, "items": [{"type": "numeric", "content": "1 + 1"}]},
            headers=auth_headers_teacher,
        )
        assert response.status_code == 403
