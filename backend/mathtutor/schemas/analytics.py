"""Performance, intervention and report schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class KCPerformance(BaseModel):
    knowledge_component_id: int
    name: str
    curriculum_code: str
    total: int
    correct: int
    accuracy: float
    average_time_spent: float | None = None
    p_mastery: float | None = None


class RecentResponse(BaseModel):
    id: int
    content_item_id: int
    knowledge_component_id: int | None = None
    correct: bool
    time_spent: int | None = None
    practice_mode: bool
    created_at: datetime


class StudentPerformanceResponse(BaseModel):
    student_id: int
    total_responses: int
    correct_responses: int
    accuracy: float
    average_mastery: float | None = None
    by_knowledge_component: list[KCPerformance]
    recent_responses: list[RecentResponse]


class RecommendedItem(BaseModel):
    content_item_id: int
    difficulty: int


class RecommendedKC(BaseModel):
    knowledge_component_id: int
    name: str
    p_mastery: float
    content_items: list[RecommendedItem]


class Intervention(BaseModel):
    needed: bool
    priority: Literal["High", "Medium", "Low"] | None = None
    score: float
    recent_correct_rate: float
    trend: float
    strategy: dict[str, str] | None = None
    recommendations: list[RecommendedKC]


class StudentClassPerformance(BaseModel):
    student_id: int
    name: str
    grade_level: int | None = None
    average_mastery: float | None = None
    completed_items: int
    last_active: datetime | None = None
    intervention: Intervention | None = None


class ClassroomPerformanceResponse(BaseModel):
    classroom_id: int
    classroom_name: str
    student_count: int
    average_mastery: float | None = None
    students_needing_intervention: int
    students: list[StudentClassPerformance]


class ClassroomKCSummary(BaseModel):
    knowledge_component_id: int
    name: str
    curriculum_code: str
    average_mastery: float
    students_assessed: int
    students_below_threshold: int


class TeacherKCMastery(ClassroomKCSummary):
    """Mastery across every student a teacher teaches, with the approved question count."""

    grade_level: int
    content_item_count: int


class WeekdayActivity(BaseModel):
    day: str
    responses: int
    correct: int


class KCProgress(BaseModel):
    knowledge_component_id: int
    name: str
    curriculum_code: str
    p_mastery: float
    n_attempts: int


class WeeklyReportResponse(BaseModel):
    student_id: int
    student_name: str
    period_start: datetime
    period_end: datetime
    average_mastery: float | None = None
    responses_this_week: int
    correct_this_week: int
    correct_rate_this_week: float
    time_spent_this_week: int
    activity_by_day: list[WeekdayActivity]
    progress_by_kc: list[KCProgress]
    recent_responses: list[RecentResponse]
