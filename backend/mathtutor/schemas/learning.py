"""Schemas for responses, mastery, learning paths and engagement."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ResponseSubmit(BaseModel):
    """A student's answer to one content item."""

    content_item_id: int = Field(..., ge=1)
    answer: str | None = Field(None, max_length=1000)
    correct: bool
    time_spent: int | None = Field(None, ge=0, description="Seconds")
    interaction_data: dict[str, Any] = Field(default_factory=dict)
    practice_mode: bool = False


class QuizCompletionStatus(BaseModel):
    status: Literal["topic_mastered", "continue"]
    message: str
    mastery_achieved: bool
    current_mastery: float
    mastery_threshold: float
    show_kc_recommendations: bool


class ResponseSubmitResult(BaseModel):
    """Outcome of a submission. Mastery fields are null in practice mode."""

    model_config = ConfigDict(from_attributes=True)

    message: str
    response_id: int
    practice_mode: bool
    knowledge_component_id: int | None = None
    prior_mastery: float | None = None
    new_mastery: float | None = None
    next_content_item_id: int | None = None
    quiz_completion_status: QuizCompletionStatus | None = None


class ResponseRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    content_item_id: int
    answer: str | None = None
    correct: bool
    time_spent: int | None = None
    practice_mode: bool
    interaction_data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class ResponsesListResponse(BaseModel):
    items: list[ResponseRecord]
    page: int
    page_size: int
    total: int


class KnowledgeStateResponse(BaseModel):
    id: int
    knowledge_component_id: int
    knowledge_component_name: str
    curriculum_code: str
    p_mastery: float
    n_attempts: int
    last_attempt_at: datetime | None = None
    mastered: bool


class StrugglingKC(BaseModel):
    knowledge_component_id: int
    name: str
    curriculum_code: str
    p_mastery: float
    practice_content_item_id: int | None = None


class LearningPathEntry(BaseModel):
    knowledge_component_id: int
    status: Literal["pending", "in_progress", "completed"]
    name: str | None = None
    curriculum_code: str | None = None
    p_mastery: float | None = None


class LearningPathResponse(BaseModel):
    id: int
    student_id: int
    status: str
    sequence: list[LearningPathEntry]
    completed_count: int
    total_count: int
    created_at: datetime
    updated_at: datetime


class RecommendationGuidance(BaseModel):
    difficulty: int
    hints: str
    message: str


class RecommendedContentResponse(BaseModel):
    knowledge_component_id: int | None = None
    knowledge_component_name: str | None = None
    content_item_id: int | None = None
    p_mastery: float | None = None
    guidance: RecommendationGuidance | None = None
    message: str | None = None


class EngagementCreate(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=64)
    time_on_task: int = Field(default=0, ge=0)
    help_requests: int = Field(default=0, ge=0)
    disengagement_indicators: dict[str, Any] = Field(default_factory=dict)


class EngagementResponse(EngagementCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    created_at: datetime
