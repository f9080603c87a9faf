"""Learning records: responses, mastery states, learning paths, engagement."""

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mathtutor.db.base import Base, JSONType


def _utcnow() -> datetime:
    return datetime.now(UTC)


class QuizResponse(Base):
    """One student's answer to one content item."""

    __tablename__ = "responses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    content_item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False
    )
    answer: Mapped[str | None] = mapped_column(Text, nullable=True)
    correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    time_spent: Mapped[int | None] = mapped_column(Integer, nullable=True, comment="Seconds")
    practice_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    interaction_data: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    content_item = relationship("ContentItem")

    __table_args__ = (
        Index("idx_responses_student_created", "student_id", "created_at"),
        Index("idx_responses_content_item", "content_item_id"),
    )


class KnowledgeState(Base):
    """
    Mastery of one knowledge component by one student.

    Created lazily on the first non-practice response; ``p_mastery`` always
    stays within the configured [floor, ceiling] range.
    """

    __tablename__ = "knowledge_states"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    knowledge_component_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("knowledge_components.id", ondelete="CASCADE"), nullable=False
    )
    p_mastery: Mapped[float] = mapped_column(Float, nullable=False)
    n_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_attempt_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    knowledge_component = relationship("KnowledgeComponent")

    __table_args__ = (
        UniqueConstraint("student_id", "knowledge_component_id", name="uq_knowledge_state"),
        CheckConstraint("p_mastery >= 0 AND p_mastery <= 1", name="ck_knowledge_state_p_mastery"),
    )


class LearningPath(Base):
    """Ordered sequence of knowledge components for a student.

    ``sequence`` is a list of ``{"knowledge_component_id": int, "status": str}``
    entries. At most one path per student is active.
    """

    __tablename__ = "learning_paths"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sequence: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class EngagementMetric(Base):
    __tablename__ = "engagement_metrics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_id: Mapped[str] = mapped_column(String(64), nullable=False)
    time_on_task: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Seconds")
    help_requests: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    disengagement_indicators: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
