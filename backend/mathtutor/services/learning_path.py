"""Learning path generation, progress and content recommendation."""

from typing import Any

from sqlalchemy import case, func, select, update
from sqlalchemy.orm import Session

from mathtutor.core.app_exceptions import raise_not_found
from mathtutor.core.logging import get_logger
from mathtutor.learning_engine import config as engine_config
from mathtutor.learning_engine.mastery.service import current_mastery
from mathtutor.models import (
    ContentItem,
    ContentStatus,
    KCStatus,
    KnowledgeComponent,
    KnowledgeState,
    LearningPath,
    Student,
)

logger = get_logger(__name__)

PENDING = "pending"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"

# Path statuses that count as the student's current path
CURRENT_STATUSES = ("active", COMPLETED)


def _grade_kc_ids(db: Session, grade_level: int | None) -> list[int]:
    stmt = select(KnowledgeComponent.id).where(
        KnowledgeComponent.status == KCStatus.APPROVED.value
    )
    if grade_level is not None:
        stmt = stmt.where(KnowledgeComponent.grade_level == grade_level)
    return list(
        db.scalars(stmt.order_by(KnowledgeComponent.curriculum_code, KnowledgeComponent.id)).all()
    )


def generate_learning_path(db: Session, student: Student) -> LearningPath:
    """
    Replace the student's active path with a fresh one (flushed, not committed).

    The sequence lists the approved knowledge components of the student's grade
    in curriculum-code order, all pending.
    """
    db.execute(
        update(LearningPath)
        .where(LearningPath.student_id == student.id, LearningPath.status.in_(CURRENT_STATUSES))
        .values(status="inactive")
    )
    sequence = [
        {"knowledge_component_id": kc_id, "status": PENDING}
        for kc_id in _grade_kc_ids(db, student.grade_level)
    ]
    path = LearningPath(student_id=student.id, sequence=sequence, status="active")
    db.add(path)
    db.flush()
    logger.info(
        f"Generated learning path {path.id} for student {student.id} "
        f"with {len(sequence)} knowledge components"
    )
    return path


def get_active_path(db: Session, student_id: int) -> LearningPath | None:
    return db.scalar(
        select(LearningPath)
        .where(LearningPath.student_id == student_id, LearningPath.status.in_(CURRENT_STATUSES))
        .order_by(LearningPath.created_at.desc(), LearningPath.id.desc())
        .limit(1)
    )


def complete_knowledge_component(db: Session, path: LearningPath, kc_id: int) -> LearningPath:
    """Mark one entry completed and start the next pending one."""
    sequence = [dict(entry) for entry in path.sequence]
    index = next(
        (i for i, e in enumerate(sequence) if e["knowledge_component_id"] == kc_id),
        None,
    )
    if index is None:
        raise_not_found("Knowledge component in learning path", kc_id)

    sequence[index]["status"] = COMPLETED
    if not any(e["status"] == IN_PROGRESS for e in sequence):
        for entry in sequence[index + 1:] + sequence[:index]:
            if entry["status"] == PENDING:
                entry["status"] = IN_PROGRESS
                break

    # JSON columns only see reassignment
    path.sequence = sequence
    if all(e["status"] == COMPLETED for e in sequence):
        path.status = COMPLETED
    db.commit()
    return path


def describe_path(db: Session, path: LearningPath) -> dict[str, Any]:
    """Path entries enriched with KC names and the student's mastery (two queries)."""
    kc_ids = [e["knowledge_component_id"] for e in path.sequence]
    kcs = {
        kc.id: kc
        for kc in db.scalars(
            select(KnowledgeComponent).where(KnowledgeComponent.id.in_(kc_ids))
        ).all()
    }
    mastery = dict(
        db.execute(
            select(KnowledgeState.knowledge_component_id, KnowledgeState.p_mastery).where(
                KnowledgeState.student_id == path.student_id,
                KnowledgeState.knowledge_component_id.in_(kc_ids),
            )
        ).all()
    )

    entries = []
    for entry in path.sequence:
        kc = kcs.get(entry["knowledge_component_id"])
        entries.append(
            {
                "knowledge_component_id": entry["knowledge_component_id"],
                "status": entry["status"],
                "name": kc.name if kc else None,
                "curriculum_code": kc.curriculum_code if kc else None,
                "p_mastery": mastery.get(entry["knowledge_component_id"]),
            }
        )

    return {
        "id": path.id,
        "student_id": path.student_id,
        "status": path.status,
        "sequence": entries,
        "completed_count": sum(1 for e in entries if e["status"] == COMPLETED),
        "total_count": len(entries),
        "created_at": path.created_at,
        "updated_at": path.updated_at,
    }


def guidance_for(p_mastery: float) -> dict[str, Any]:
    """Difficulty and hint level for a mastery value."""
    for upper, guidance in engine_config.RECOMMENDATION_BANDS.value:
        if upper is None or p_mastery < upper:
            return dict(guidance)
    raise ValueError("RECOMMENDATION_BANDS must end with an open band")


def recommend_content(db: Session, student: Student) -> dict[str, Any]:
    """
    Next question for a student. Read-only: never creates paths or states.

    Picks the first unfinished knowledge component of the active path (or of
    the student's grade when no path exists), then the approved item whose
    difficulty is closest to the guidance for the current mastery.
    """
    path = get_active_path(db, student.id)
    if path is not None:
        candidates = [
            e["knowledge_component_id"] for e in path.sequence if e["status"] != COMPLETED
        ]
    else:
        candidates = _grade_kc_ids(db, student.grade_level)

    if not candidates:
        return {"message": "All knowledge components completed"}

    # Path entries can outlive a deleted knowledge component
    kc = next(
        (found for found in (db.get(KnowledgeComponent, kc_id) for kc_id in candidates) if found),
        None,
    )
    if kc is None:
        return {"message": "No knowledge component available"}

    p_mastery = current_mastery(db, student.id, kc.id)
    guidance = guidance_for(p_mastery)

    item_id = db.scalar(
        select(ContentItem.id)
        .where(
            ContentItem.knowledge_component_id == kc.id,
            ContentItem.status == ContentStatus.APPROVED.value,
        )
        .order_by(
            func.abs(ContentItem.difficulty - guidance["difficulty"]),
            case((ContentItem.difficulty <= guidance["difficulty"], 0), else_=1),
            ContentItem.id,
        )
        .limit(1)
    )

    return {
        "knowledge_component_id": kc.id,
        "knowledge_component_name": kc.name,
        "content_item_id": item_id,
        "p_mastery": p_mastery,
        "guidance": guidance,
        "message": guidance["message"] if item_id else "No questions available for this topic yet",
    }
