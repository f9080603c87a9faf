"""
Performance aggregation for student and teacher dashboards.

Every function here issues a fixed number of queries no matter how many
students, classrooms or knowledge components are involved: per-student
figures come from GROUP BY aggregates, "most recent N" lists from a
ROW_NUMBER() window, and lookups from IN lists.
"""

from collections import defaultdict
from typing import Any, Sequence

from sqlalchemy import Integer, and_, case, cast, func, select
from sqlalchemy.orm import Session

from mathtutor.core.config import settings
from mathtutor.learning_engine import config as engine_config
from mathtutor.models import (
    Classroom,
    ClassroomStudent,
    ContentItem,
    ContentStatus,
    KCStatus,
    KnowledgeComponent,
    KnowledgeState,
    QuizResponse,
    Student,
)

# Teacher-facing strategy per intervention priority
INTERVENTION_STRATEGIES: dict[str, dict[str, str]] = {
    "High": {
        "difficulty": "Provide significantly easier content to build foundational understanding",
        "hints": "Offer detailed step-by-step hints and explanations",
        "pacing": "Allow extended time for practice and review",
        "focus": "Focus on basic concepts and prerequisite skills",
    },
    "Medium": {
        "difficulty": "Mix of easy and moderate content with gradual progression",
        "hints": "Provide strategic hints at key decision points",
        "pacing": "Regular practice with immediate feedback",
        "focus": "Address specific misconceptions and gaps",
    },
    "Low": {
        "difficulty": "Focus on challenging content with support",
        "hints": "Minimal hints to encourage independence",
        "pacing": "Maintain current pace with targeted review",
        "focus": "Reinforce understanding of complex concepts",
    },
}


# =============================================================================
# Pure scoring helpers
# =============================================================================


def learning_slope(outcomes: Sequence[bool]) -> float:
    """
    Least-squares slope of correctness (1/0) over attempt index.

    Outcomes are in chronological order, so a positive slope means the
    student is improving. Fewer than three points give 0.0.
    """
    n = len(outcomes)
    if n < 3:
        return 0.0
    xs = range(n)
    ys = [1.0 if o else 0.0 for o in outcomes]
    sum_x = sum(xs)
    sum_y = sum(ys)
    sum_xy = sum(x * y for x, y in zip(xs, ys))
    sum_xx = sum(x * x for x in xs)
    return (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)


def intervention_priority(score: float) -> str | None:
    for upper, priority in engine_config.INTERVENTION_PRIORITY_BANDS.value:
        if score < upper:
            return priority
    return None


def score_intervention(average_mastery: float, recent_outcomes: Sequence[bool]) -> dict[str, Any]:
    """
    Composite intervention score from mastery, recent accuracy and trend.

    Formula:
        score = w_m * mastery + w_r * recent_correct_rate + w_t * clamp(slope + 0.5, 0, 1)

    Args:
        average_mastery: Mean p_mastery over the student's states (0 when none)
        recent_outcomes: Correctness of the most recent responses, oldest first

    Returns:
        dict with needed, priority, score, recent_correct_rate, trend
    """
    weights = engine_config.INTERVENTION_WEIGHTS.value
    recent_rate = (
        sum(1 for o in recent_outcomes if o) / len(recent_outcomes) if recent_outcomes else 0.0
    )
    trend = max(0.0, min(1.0, learning_slope(recent_outcomes) + 0.5))
    score = (
        weights["mastery"] * average_mastery
        + weights["recent_correct_rate"] * recent_rate
        + weights["trend"] * trend
    )
    priority = intervention_priority(score)
    return {
        "needed": priority is not None,
        "priority": priority,
        "score": score,
        "recent_correct_rate": recent_rate,
        "trend": trend,
    }


# =============================================================================
# Batched queries
# =============================================================================


def _recent_outcomes(
    db: Session, student_ids: Sequence[int], window: int
) -> dict[int, list[bool]]:
    """Last ``window`` outcomes per student, oldest first (one query)."""
    ranked = (
        select(
            QuizResponse.student_id,
            QuizResponse.correct,
            QuizResponse.created_at,
            func.row_number()
            .over(
                partition_by=QuizResponse.student_id,
                order_by=(QuizResponse.created_at.desc(), QuizResponse.id.desc()),
            )
            .label("rn"),
        )
        .where(QuizResponse.student_id.in_(student_ids))
        .subquery()
    )
    rows = db.execute(
        select(ranked.c.student_id, ranked.c.correct)
        .where(ranked.c.rn <= window)
        .order_by(ranked.c.student_id, ranked.c.rn.desc())
    ).all()
    outcomes: dict[int, list[bool]] = defaultdict(list)
    for row in rows:
        outcomes[row.student_id].append(bool(row.correct))
    return outcomes


def _easiest_items(
    db: Session, kc_ids: Sequence[int], per_kc: int
) -> dict[int, list[dict[str, int]]]:
    """Up to ``per_kc`` easiest approved items per knowledge component (one query)."""
    if not kc_ids:
        return {}
    ranked = (
        select(
            ContentItem.id,
            ContentItem.knowledge_component_id,
            ContentItem.difficulty,
            func.row_number()
            .over(
                partition_by=ContentItem.knowledge_component_id,
                order_by=(ContentItem.difficulty, ContentItem.id),
            )
            .label("rn"),
        )
        .where(
            ContentItem.knowledge_component_id.in_(kc_ids),
            ContentItem.status == ContentStatus.APPROVED.value,
        )
        .subquery()
    )
    rows = db.execute(
        select(ranked.c.id, ranked.c.knowledge_component_id, ranked.c.difficulty)
        .where(ranked.c.rn <= per_kc)
        .order_by(ranked.c.knowledge_component_id, ranked.c.rn)
    ).all()
    items: dict[int, list[dict[str, int]]] = defaultdict(list)
    for row in rows:
        items[row.knowledge_component_id].append(
            {"content_item_id": row.id, "difficulty": row.difficulty}
        )
    return items


def classrooms_performance(db: Session, classrooms: Sequence[Classroom]) -> list[dict[str, Any]]:
    """
    Per-student performance for one or more classrooms.

    Issues five queries in total: enrollments, knowledge states, response
    aggregates, recent outcomes, and recommended items.
    """
    classroom_ids = [c.id for c in classrooms]
    enrollments = db.execute(
        select(ClassroomStudent.classroom_id, Student)
        .join(Student, Student.id == ClassroomStudent.student_id)
        .where(ClassroomStudent.classroom_id.in_(classroom_ids))
        .order_by(ClassroomStudent.classroom_id, Student.name, Student.id)
    ).all()
    student_ids = sorted({student.id for _, student in enrollments})

    states: dict[int, list[Any]] = defaultdict(list)
    activity: dict[int, Any] = {}
    recent: dict[int, list[bool]] = {}
    if student_ids:
        for row in db.execute(
            select(
                KnowledgeState.student_id,
                KnowledgeState.knowledge_component_id,
                KnowledgeState.p_mastery,
                KnowledgeComponent.name,
            )
            .join(KnowledgeComponent, KnowledgeComponent.id == KnowledgeState.knowledge_component_id)
            .where(KnowledgeState.student_id.in_(student_ids))
        ).all():
            states[row.student_id].append(row)

        for row in db.execute(
            select(
                QuizResponse.student_id,
                func.count(QuizResponse.id).label("total"),
                func.max(QuizResponse.created_at).label("last_active"),
            )
            .where(QuizResponse.student_id.in_(student_ids))
            .group_by(QuizResponse.student_id)
        ).all():
            activity[row.student_id] = row

        recent = _recent_outcomes(db, student_ids, engine_config.INTERVENTION_RECENT_WINDOW.value)

    weak_threshold = engine_config.INTERVENTION_WEAK_KC_THRESHOLD.value
    max_kcs = engine_config.INTERVENTION_MAX_KCS.value
    min_responses = engine_config.INTERVENTION_MIN_RESPONSES.value

    weak_by_student: dict[int, list[Any]] = {}
    for sid in student_ids:
        if sid in activity and activity[sid].total >= min_responses:
            weak = sorted(
                (s for s in states[sid] if s.p_mastery < weak_threshold),
                key=lambda s: (s.p_mastery, s.knowledge_component_id),
            )[:max_kcs]
            weak_by_student[sid] = weak
    weak_kc_ids = sorted({s.knowledge_component_id for w in weak_by_student.values() for s in w})
    items = _easiest_items(db, weak_kc_ids, engine_config.INTERVENTION_ITEMS_PER_KC.value)

    per_classroom: dict[int, list[dict[str, Any]]] = defaultdict(list)
    for classroom_id, student in enrollments:
        student_states = states[student.id]
        average = (
            sum(s.p_mastery for s in student_states) / len(student_states)
            if student_states
            else None
        )
        act = activity.get(student.id)
        completed = act.total if act else 0

        intervention = None
        if student.id in weak_by_student:
            intervention = score_intervention(average or 0.0, recent.get(student.id, []))
            intervention["strategy"] = INTERVENTION_STRATEGIES.get(intervention["priority"])
            intervention["recommendations"] = [
                {
                    "knowledge_component_id": s.knowledge_component_id,
                    "name": s.name,
                    "p_mastery": s.p_mastery,
                    "content_items": items.get(s.knowledge_component_id, []),
                }
                for s in weak_by_student[student.id]
            ] if intervention["needed"] else []

        per_classroom[classroom_id].append(
            {
                "student_id": student.id,
                "name": student.name,
                "grade_level": student.grade_level,
                "average_mastery": average,
                "completed_items": completed,
                "last_active": act.last_active if act else None,
                "intervention": intervention,
            }
        )

    results = []
    for classroom in classrooms:
        students = per_classroom.get(classroom.id, [])
        averages = [s["average_mastery"] for s in students if s["average_mastery"] is not None]
        results.append(
            {
                "classroom_id": classroom.id,
                "classroom_name": classroom.name,
                "student_count": len(students),
                "average_mastery": sum(averages) / len(averages) if averages else None,
                "students_needing_intervention": sum(
                    1 for s in students if s["intervention"] and s["intervention"]["needed"]
                ),
                "students": students,
            }
        )
    return results


def classroom_kc_summary(db: Session, classroom_id: int) -> list[dict[str, Any]]:
    """Class-wide mastery per knowledge component (one query)."""
    threshold = settings.MASTERY_THRESHOLD
    rows = db.execute(
        select(
            KnowledgeComponent.id,
            KnowledgeComponent.name,
            KnowledgeComponent.curriculum_code,
            func.avg(KnowledgeState.p_mastery).label("average_mastery"),
            func.count(KnowledgeState.id).label("students_assessed"),
            func.sum(case((KnowledgeState.p_mastery < threshold, 1), else_=0)).label("below"),
        )
        .join(KnowledgeState, KnowledgeState.knowledge_component_id == KnowledgeComponent.id)
        .join(
            ClassroomStudent,
            and_(
                ClassroomStudent.student_id == KnowledgeState.student_id,
                ClassroomStudent.classroom_id == classroom_id,
            ),
        )
        .group_by(KnowledgeComponent.id, KnowledgeComponent.name, KnowledgeComponent.curriculum_code)
        .order_by(KnowledgeComponent.curriculum_code, KnowledgeComponent.id)
    ).all()
    return [
        {
            "knowledge_component_id": row.id,
            "name": row.name,
            "curriculum_code": row.curriculum_code,
            "average_mastery": float(row.average_mastery),
            "students_assessed": row.students_assessed,
            "students_below_threshold": int(row.below or 0),
        }
        for row in rows
    ]


def teacher_kc_mastery(
    db: Session, teacher_id: int, grade_level: int | None = None
) -> list[dict[str, Any]]:
    """
    Mastery of every approved knowledge component across a teacher's students.

    A student enrolled in several of the teacher's classrooms counts once.
    Knowledge components nobody has attempted report an average of 0.0.
    """
    threshold = settings.MASTERY_THRESHOLD
    roster = (
        select(ClassroomStudent.student_id)
        .join(Classroom, Classroom.id == ClassroomStudent.classroom_id)
        .where(Classroom.teacher_id == teacher_id)
        .distinct()
    )
    states = (
        select(
            KnowledgeState.knowledge_component_id.label("kc_id"),
            func.avg(KnowledgeState.p_mastery).label("average_mastery"),
            func.count(KnowledgeState.id).label("students_assessed"),
            func.sum(case((KnowledgeState.p_mastery < threshold, 1), else_=0)).label("below"),
        )
        .where(KnowledgeState.student_id.in_(roster))
        .group_by(KnowledgeState.knowledge_component_id)
        .subquery()
    )
    stmt = (
        select(
            KnowledgeComponent,
            states.c.average_mastery,
            states.c.students_assessed,
            states.c.below,
        )
        .outerjoin(states, states.c.kc_id == KnowledgeComponent.id)
        .where(KnowledgeComponent.status == KCStatus.APPROVED.value)
    )
    if grade_level is not None:
        stmt = stmt.where(KnowledgeComponent.grade_level == grade_level)
    rows = db.execute(
        stmt.order_by(
            KnowledgeComponent.grade_level,
            KnowledgeComponent.curriculum_code,
            KnowledgeComponent.id,
        )
    ).all()
    if not rows:
        return []

    item_counts = dict(
        db.execute(
            select(ContentItem.knowledge_component_id, func.count(ContentItem.id))
            .where(
                ContentItem.knowledge_component_id.in_([kc.id for kc, *_ in rows]),
                ContentItem.status == ContentStatus.APPROVED.value,
            )
            .group_by(ContentItem.knowledge_component_id)
        ).all()
    )

    return [
        {
            "knowledge_component_id": kc.id,
            "name": kc.name,
            "curriculum_code": kc.curriculum_code,
            "grade_level": kc.grade_level,
            "average_mastery": float(average) if average is not None else 0.0,
            "students_assessed": assessed or 0,
            "students_below_threshold": int(below or 0),
            "content_item_count": item_counts.get(kc.id, 0),
        }
        for kc, average, assessed, below in rows
    ]


def recent_responses(db: Session, student_id: int, limit: int) -> list[dict[str, Any]]:
    rows = db.execute(
        select(QuizResponse, ContentItem.knowledge_component_id)
        .join(ContentItem, ContentItem.id == QuizResponse.content_item_id)
        .where(QuizResponse.student_id == student_id)
        .order_by(QuizResponse.created_at.desc(), QuizResponse.id.desc())
        .limit(limit)
    ).all()
    return [
        {
            "id": r.id,
            "content_item_id": r.content_item_id,
            "knowledge_component_id": kc_id,
            "correct": r.correct,
            "time_spent": r.time_spent,
            "practice_mode": r.practice_mode,
            "created_at": r.created_at,
        }
        for r, kc_id in rows
    ]


def student_performance(db: Session, student_id: int) -> dict[str, Any]:
    """Per-KC accuracy and mastery for one student, plus recent activity."""
    by_kc = db.execute(
        select(
            KnowledgeComponent.id,
            KnowledgeComponent.name,
            KnowledgeComponent.curriculum_code,
            func.count(QuizResponse.id).label("total"),
            func.sum(cast(QuizResponse.correct, Integer)).label("correct"),
            func.avg(QuizResponse.time_spent).label("avg_time"),
        )
        .join(ContentItem, ContentItem.id == QuizResponse.content_item_id)
        .join(KnowledgeComponent, KnowledgeComponent.id == ContentItem.knowledge_component_id)
        .where(QuizResponse.student_id == student_id)
        .group_by(KnowledgeComponent.id, KnowledgeComponent.name, KnowledgeComponent.curriculum_code)
        .order_by(KnowledgeComponent.curriculum_code, KnowledgeComponent.id)
    ).all()

    totals = db.execute(
        select(
            func.count(QuizResponse.id).label("total"),
            func.sum(cast(QuizResponse.correct, Integer)).label("correct"),
        ).where(QuizResponse.student_id == student_id)
    ).one()

    mastery = dict(
        db.execute(
            select(KnowledgeState.knowledge_component_id, KnowledgeState.p_mastery).where(
                KnowledgeState.student_id == student_id
            )
        ).all()
    )

    total = totals.total or 0
    correct = int(totals.correct or 0)
    return {
        "student_id": student_id,
        "total_responses": total,
        "correct_responses": correct,
        "accuracy": correct / total if total else 0.0,
        "average_mastery": sum(mastery.values()) / len(mastery) if mastery else None,
        "by_knowledge_component": [
            {
                "knowledge_component_id": row.id,
                "name": row.name,
                "curriculum_code": row.curriculum_code,
                "total": row.total,
                "correct": int(row.correct or 0),
                "accuracy": int(row.correct or 0) / row.total if row.total else 0.0,
                "average_time_spent": float(row.avg_time) if row.avg_time is not None else None,
                "p_mastery": mastery.get(row.id),
            }
            for row in by_kc
        ],
        "recent_responses": recent_responses(db, student_id, 20),
    }


def struggling_kcs(db: Session, student_id: int) -> list[dict[str, Any]]:
    """Lowest-mastery knowledge components, each with an easy practice item."""
    rows = db.execute(
        select(KnowledgeState, KnowledgeComponent)
        .join(KnowledgeComponent, KnowledgeComponent.id == KnowledgeState.knowledge_component_id)
        .where(KnowledgeState.student_id == student_id)
        .order_by(KnowledgeState.p_mastery, KnowledgeState.knowledge_component_id)
        .limit(engine_config.STRUGGLING_KC_LIMIT.value)
    ).all()
    items = _easiest_items(db, [kc.id for _, kc in rows], 1)
    return [
        {
            "knowledge_component_id": kc.id,
            "name": kc.name,
            "curriculum_code": kc.curriculum_code,
            "p_mastery": state.p_mastery,
            "practice_content_item_id": (
                items[kc.id][0]["content_item_id"] if items.get(kc.id) else None
            ),
        }
        for state, kc in rows
    ]
