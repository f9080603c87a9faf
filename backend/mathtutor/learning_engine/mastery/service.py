"""
Mastery Service Layer - Persists knowledge states and processes responses.

Handles:
- Lazy creation of knowledge states (safe against concurrent first answers)
- Recording a response and updating mastery as a single transaction
- Read-only mastery lookups that fall back to the default without writing
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mathtutor.core.app_exceptions import raise_not_found
from mathtutor.core.config import settings
from mathtutor.learning_engine.mastery.core import MasteryParams, is_mastered, update_mastery
from mathtutor.models import ContentItem, ContentStatus, KnowledgeState, QuizResponse

logger = logging.getLogger(__name__)


def get_params() -> MasteryParams:
    """Mastery parameters from the running configuration."""
    return MasteryParams.from_settings(settings)


@dataclass
class SubmissionResult:
    """Outcome of one response submission."""

    response_id: int
    practice_mode: bool
    knowledge_component_id: int | None
    prior_mastery: float | None = None
    new_mastery: float | None = None
    next_content_item_id: int | None = None
    quiz_completion_status: dict[str, Any] | None = field(default=None)


def _select_state(student_id: int, knowledge_component_id: int):
    return select(KnowledgeState).where(
        KnowledgeState.student_id == student_id,
        KnowledgeState.knowledge_component_id == knowledge_component_id,
    )


def get_or_create_state(
    db: Session,
    student_id: int,
    knowledge_component_id: int,
    params: MasteryParams | None = None,
) -> KnowledgeState:
    """
    Get the student's state for a knowledge component, creating it on first use.

    The row is locked for the rest of the transaction so two concurrent answers
    cannot both read the same prior. If another transaction inserts the row
    first, the unique constraint fires inside a SAVEPOINT and the existing row
    is re-selected.

    Args:
        db: Database session (caller owns the transaction)
        student_id: Student ID
        knowledge_component_id: Knowledge component ID
        params: Mastery parameters; the default mastery seeds new rows

    Returns:
        KnowledgeState instance (flushed)
    """
    params = params or get_params()

    state = db.scalar(_select_state(student_id, knowledge_component_id).with_for_update())
    if state is not None:
        return state

    state = KnowledgeState(
        student_id=student_id,
        knowledge_component_id=knowledge_component_id,
        p_mastery=params.default,
        n_attempts=0,
    )
    try:
        with db.begin_nested():
            db.add(state)
    except IntegrityError:
        logger.info(
            f"Knowledge state for student {student_id} / KC {knowledge_component_id} "
            "created concurrently, re-selecting"
        )
        state = db.scalar(_select_state(student_id, knowledge_component_id).with_for_update())
        if state is None:
            raise
    return state


def current_mastery(
    db: Session,
    student_id: int,
    knowledge_component_id: int,
    params: MasteryParams | None = None,
) -> float:
    """Mastery for a (student, KC) pair without creating a state row."""
    params = params or get_params()
    value = db.scalar(
        select(KnowledgeState.p_mastery).where(
            KnowledgeState.student_id == student_id,
            KnowledgeState.knowledge_component_id == knowledge_component_id,
        )
    )
    return params.default if value is None else value


def _next_item_in_kc(db: Session, knowledge_component_id: int, current_item_id: int) -> int | None:
    """Next approved question of the same knowledge component, wrapping around by id."""
    in_kc = select(ContentItem.id).where(
        ContentItem.knowledge_component_id == knowledge_component_id,
        ContentItem.id != current_item_id,
        ContentItem.status == ContentStatus.APPROVED.value,
    )
    next_id = db.scalar(
        in_kc.where(ContentItem.id > current_item_id).order_by(ContentItem.id).limit(1)
    )
    if next_id is None:
        next_id = db.scalar(in_kc.order_by(ContentItem.id).limit(1))
    return next_id


def _completion_status(correct: bool, new_mastery: float, params: MasteryParams) -> dict[str, Any]:
    achieved = correct and is_mastered(new_mastery, params)
    return {
        "status": "topic_mastered" if achieved else "continue",
        "message": (
            "Great job! You have mastered this topic!"
            if achieved
            else "Keep practicing! You're getting better!"
        ),
        "mastery_achieved": achieved,
        "current_mastery": new_mastery,
        "mastery_threshold": params.threshold,
        "show_kc_recommendations": not achieved,
    }


def submit_response(
    db: Session,
    student_id: int,
    content_item_id: int,
    correct: bool,
    answer: str | None = None,
    time_spent: int | None = None,
    interaction_data: dict[str, Any] | None = None,
    practice_mode: bool = False,
    sequential: bool = False,
    params: MasteryParams | None = None,
) -> SubmissionResult:
    """
    Record a response and update the student's mastery in one transaction.

    - Practice responses are stored but never create or change a state.
    - Responses to items without a knowledge component are stored, mastery is skipped.
    - Any failure rolls back both the response and the state update.

    Raises:
        AppError(404): content item does not exist
    """
    params = params or get_params()

    item = db.get(ContentItem, content_item_id)
    if item is None:
        raise_not_found("Content item", content_item_id)
    kc_id = item.knowledge_component_id

    try:
        response = QuizResponse(
            student_id=student_id,
            content_item_id=content_item_id,
            answer=answer,
            correct=correct,
            time_spent=time_spent,
            practice_mode=practice_mode,
            interaction_data={**(interaction_data or {}), "practice_mode": practice_mode},
        )
        db.add(response)

        result = SubmissionResult(
            response_id=0,
            practice_mode=practice_mode,
            knowledge_component_id=kc_id,
        )

        if practice_mode:
            logger.debug(f"Practice response from student {student_id}, mastery untouched")
        elif kc_id is None:
            logger.info(
                f"Content item {content_item_id} has no knowledge component; "
                "skipping mastery update"
            )
        else:
            state = get_or_create_state(db, student_id, kc_id, params)
            result.prior_mastery = state.p_mastery
            state.p_mastery = update_mastery(state.p_mastery, correct, params)
            state.n_attempts += 1
            state.last_attempt_at = datetime.now(UTC)
            result.new_mastery = state.p_mastery
            result.quiz_completion_status = _completion_status(correct, state.p_mastery, params)
            if sequential:
                result.next_content_item_id = _next_item_in_kc(db, kc_id, content_item_id)

        db.flush()
        result.response_id = response.id
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(
            f"Response submission failed for student {student_id}, item {content_item_id}; "
            "rolled back"
        )
        raise

    if result.new_mastery is not None:
        logger.info(
            f"Mastery updated for student {student_id} / KC {kc_id}: "
            f"{result.prior_mastery:.4f} -> {result.new_mastery:.4f}"
        )
    return result
