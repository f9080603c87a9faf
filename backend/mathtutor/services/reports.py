"""Weekly progress report for parents."""

from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from mathtutor.models import KnowledgeComponent, KnowledgeState, QuizResponse, Student
from mathtutor.services.performance import recent_responses

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def weekly_report(db: Session, student: Student, now: datetime | None = None) -> dict[str, Any]:
    """Summarize the last seven days of a student's work (four queries)."""
    period_end = now or datetime.now(UTC)
    period_start = period_end - timedelta(days=7)

    week = db.execute(
        select(QuizResponse.correct, QuizResponse.time_spent, QuizResponse.created_at).where(
            QuizResponse.student_id == student.id,
            QuizResponse.created_at >= period_start,
            QuizResponse.created_at <= period_end,
        )
    ).all()

    by_day = {day: {"day": day, "responses": 0, "correct": 0} for day in WEEKDAYS}
    for row in week:
        bucket = by_day[WEEKDAYS[row.created_at.weekday()]]
        bucket["responses"] += 1
        bucket["correct"] += 1 if row.correct else 0

    progress = db.execute(
        select(KnowledgeState, KnowledgeComponent)
        .join(KnowledgeComponent, KnowledgeComponent.id == KnowledgeState.knowledge_component_id)
        .where(KnowledgeState.student_id == student.id)
        .order_by(KnowledgeComponent.curriculum_code, KnowledgeComponent.id)
    ).all()

    correct = sum(1 for row in week if row.correct)
    return {
        "student_id": student.id,
        "student_name": student.name,
        "period_start": period_start,
        "period_end": period_end,
        "average_mastery": (
            sum(state.p_mastery for state, _ in progress) / len(progress) if progress else None
        ),
        "responses_this_week": len(week),
        "correct_this_week": correct,
        "correct_rate_this_week": correct / len(week) if week else 0.0,
        "time_spent_this_week": sum(row.time_spent or 0 for row in week),
        "activity_by_day": list(by_day.values()),
        "progress_by_kc": [
            {
                "knowledge_component_id": kc.id,
                "name": kc.name,
                "curriculum_code": kc.curriculum_code,
                "p_mastery": state.p_mastery,
                "n_attempts": state.n_attempts,
            }
            for state, kc in progress
        ],
        "recent_responses": recent_responses(db, student.id, 10),
    }
