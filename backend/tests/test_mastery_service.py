"""Tests for response submission and knowledge state persistence."""

import pytest
from sqlalchemy import func, select

from mathtutor.core.app_exceptions import AppError
from mathtutor.learning_engine.mastery import service as mastery_service
from mathtutor.learning_engine.mastery.service import (
    current_mastery,
    get_or_create_state,
    submit_response,
)
from mathtutor.models import ContentStatus, KnowledgeState, QuizResponse
from tests.helpers.seed import create_item, create_kc


@pytest.fixture
def kc(db):
    return create_kc(db, "3.OA.A.1")


@pytest.fixture
def item(db, kc):
    return create_item(db, kc, difficulty=1)


def _state(db, student_id, kc_id):
    return db.scalar(
        select(KnowledgeState).where(
            KnowledgeState.student_id == student_id,
            KnowledgeState.knowledge_component_id == kc_id,
        )
    )


def _response_count(db, student_id):
    return db.scalar(
        select(func.count(QuizResponse.id)).where(QuizResponse.student_id == student_id)
    )


def test_first_response_starts_from_default(db, student, kc, item):
    result = submit_response(db, student.id, item.id, correct=True)

    assert result.prior_mastery == pytest.approx(0.3)
    assert result.new_mastery == pytest.approx(0.405)
    state = _state(db, student.id, kc.id)
    assert state.p_mastery == pytest.approx(0.405)
    assert state.n_attempts == 1
    assert state.last_attempt_at is not None


def test_consecutive_responses_compound(db, student, kc, item):
    submit_response(db, student.id, item.id, correct=True)
    result = submit_response(db, student.id, item.id, correct=False)

    assert result.prior_mastery == pytest.approx(0.405)
    assert result.new_mastery == pytest.approx(0.3645)
    assert _state(db, student.id, kc.id).n_attempts == 2


def test_practice_mode_records_response_without_touching_mastery(db, student, kc, item):
    result = submit_response(db, student.id, item.id, correct=True, practice_mode=True)

    assert result.practice_mode is True
    assert result.new_mastery is None
    assert _state(db, student.id, kc.id) is None
    stored = db.get(QuizResponse, result.response_id)
    assert stored.practice_mode is True
    assert stored.interaction_data["practice_mode"] is True


def test_practice_mode_leaves_existing_state_unchanged(db, student, kc, item):
    submit_response(db, student.id, item.id, correct=True)
    before = _state(db, student.id, kc.id).p_mastery

    submit_response(db, student.id, item.id, correct=False, practice_mode=True)

    db.expire_all()
    state = _state(db, student.id, kc.id)
    assert state.p_mastery == before
    assert state.n_attempts == 1
    assert _response_count(db, student.id) == 2


def test_item_without_knowledge_component_skips_mastery(db, student):
    orphan = create_item(db, None)

    result = submit_response(db, student.id, orphan.id, correct=True)

    assert result.knowledge_component_id is None
    assert result.new_mastery is None
    assert _response_count(db, student.id) == 1
    assert db.scalar(select(func.count(KnowledgeState.id))) == 0


def test_unknown_content_item_is_404(db, student):
    with pytest.raises(AppError) as exc_info:
        submit_response(db, student.id, 9999, correct=True)
    assert exc_info.value.status_code == 404
    assert _response_count(db, student.id) == 0


def test_failed_mastery_update_rolls_back_response(db, student, kc, item, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("update failed")

    monkeypatch.setattr(mastery_service, "update_mastery", boom)

    with pytest.raises(RuntimeError):
        submit_response(db, student.id, item.id, correct=True)

    assert _response_count(db, student.id) == 0
    assert _state(db, student.id, kc.id) is None


def test_sequential_mode_returns_next_item_and_wraps(db, student, kc):
    first = create_item(db, kc, difficulty=1)
    create_item(db, kc, difficulty=1, status=ContentStatus.PENDING_REVIEW.value)
    second = create_item(db, kc, difficulty=2)
    create_item(db, kc, difficulty=3, status=ContentStatus.DRAFT.value)

    # Unapproved items in between are skipped
    result = submit_response(db, student.id, first.id, correct=True, sequential=True)
    assert result.next_content_item_id == second.id

    result = submit_response(db, student.id, second.id, correct=True, sequential=True)
    assert result.next_content_item_id == first.id


def test_completion_status_reports_mastery(db, student, kc, item):
    state = get_or_create_state(db, student.id, kc.id)
    state.p_mastery = 0.74
    db.commit()

    result = submit_response(db, student.id, item.id, correct=True)

    status = result.quiz_completion_status
    assert status["status"] == "topic_mastered"
    assert status["mastery_achieved"] is True
    assert status["mastery_threshold"] == pytest.approx(0.75)


def test_get_or_create_state_is_idempotent(db, student, kc):
    first = get_or_create_state(db, student.id, kc.id)
    second = get_or_create_state(db, student.id, kc.id)
    db.commit()

    assert first.id == second.id
    assert db.scalar(select(func.count(KnowledgeState.id))) == 1


def test_current_mastery_does_not_create_state(db, student, kc):
    assert current_mastery(db, student.id, kc.id) == pytest.approx(0.3)
    assert db.scalar(select(func.count(KnowledgeState.id))) == 0
