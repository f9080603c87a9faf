"""Service-level tests for learning paths and recommendations."""

import pytest
from sqlalchemy import func, select

from mathtutor.core.app_exceptions import AppError
from mathtutor.models import KCStatus, KnowledgeState, LearningPath
from mathtutor.services import learning_path
from tests.helpers.seed import create_item, create_kc, create_student


@pytest.fixture
def grade3_curriculum(db):
    return [
        create_kc(db, "3.OA.A.1"),
        create_kc(db, "3.NBT.A.2"),
        create_kc(db, "3.NF.A.1"),
        create_kc(db, "3.MD.A.1", status=KCStatus.PENDING_REVIEW.value),
        create_kc(db, "4.OA.A.1", grade_level=4),
    ]


@pytest.mark.parametrize(
    "p_mastery, difficulty",
    [(0.0, 1), (0.29, 1), (0.3, 2), (0.59, 2), (0.6, 3), (0.79, 3), (0.8, 4), (1.0, 4)],
)
def test_guidance_bands(p_mastery, difficulty):
    assert learning_path.guidance_for(p_mastery)["difficulty"] == difficulty


def test_generate_orders_approved_grade_kcs_by_code(db, student, grade3_curriculum):
    path = learning_path.generate_learning_path(db, student)
    db.commit()

    codes = [e["curriculum_code"] for e in learning_path.describe_path(db, path)["sequence"]]
    assert codes == ["3.NBT.A.2", "3.NF.A.1", "3.OA.A.1"]
    assert all(e["status"] == learning_path.PENDING for e in path.sequence)


def test_regenerate_deactivates_previous_path(db, student, grade3_curriculum):
    first = learning_path.generate_learning_path(db, student)
    second = learning_path.generate_learning_path(db, student)
    db.commit()
    db.refresh(first)

    assert first.status == "inactive"
    assert learning_path.get_active_path(db, student.id).id == second.id


def test_complete_advances_to_next_pending(db, student, grade3_curriculum):
    path = learning_path.generate_learning_path(db, student)
    db.commit()
    first, second, third = (e["knowledge_component_id"] for e in path.sequence)

    path = learning_path.complete_knowledge_component(db, path, first)
    statuses = [e["status"] for e in path.sequence]
    assert statuses == ["completed", "in_progress", "pending"]

    learning_path.complete_knowledge_component(db, path, second)
    path = learning_path.complete_knowledge_component(db, path, third)
    assert path.status == "completed"
    # A completed path is still the current one
    assert learning_path.get_active_path(db, student.id).id == path.id


def test_complete_unknown_kc_is_not_found(db, student, grade3_curriculum):
    path = learning_path.generate_learning_path(db, student)
    db.commit()
    with pytest.raises(AppError) as exc_info:
        learning_path.complete_knowledge_component(db, path, 999_999)
    assert exc_info.value.status_code == 404


def test_recommendation_without_path_is_read_only(db, student, grade3_curriculum):
    kc = grade3_curriculum[1]  # 3.NBT.A.2 sorts first
    create_item(db, kc, difficulty=1)
    target = create_item(db, kc, difficulty=2)
    db.add(KnowledgeState(student_id=student.id, knowledge_component_id=kc.id, p_mastery=0.45))
    db.commit()

    result = learning_path.recommend_content(db, student)

    assert result["knowledge_component_id"] == kc.id
    assert result["content_item_id"] == target.id
    assert result["guidance"]["difficulty"] == 2
    assert db.scalar(select(func.count(LearningPath.id))) == 0


def test_recommendation_prefers_easier_item_on_tie(db, student, grade3_curriculum):
    # Default mastery 0.3 asks for difficulty 2; only 1 and 3 exist
    kc = create_kc(db, "3.AAA.1")
    low = create_item(db, kc, difficulty=1)
    create_item(db, kc, difficulty=3)

    result = learning_path.recommend_content(db, student)
    assert result["knowledge_component_id"] == kc.id
    assert result["content_item_id"] == low.id


def test_recommendation_when_everything_completed(db, grade3_curriculum):
    student = create_student(db, grade_level=5)
    result = learning_path.recommend_content(db, student)
    assert result["message"] == "All knowledge components completed"
    assert result.get("content_item_id") is None


def test_recommendation_skips_deleted_path_entries(db, student, grade3_curriculum):
    learning_path.generate_learning_path(db, student)
    db.commit()
    deleted, fallback = grade3_curriculum[1], grade3_curriculum[2]  # 3.NBT.A.2, 3.NF.A.1
    item = create_item(db, fallback, difficulty=2)
    db.delete(deleted)
    db.commit()

    result = learning_path.recommend_content(db, student)

    assert result["knowledge_component_id"] == fallback.id
    assert result["content_item_id"] == item.id
