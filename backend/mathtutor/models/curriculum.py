"""Curriculum models: knowledge components and their quiz questions."""

from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mathtutor.db.base import Base, JSONType


class KCStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class ContentStatus(str, Enum):
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class ContentType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    NUMERIC = "numeric"
    TRUE_FALSE = "true_false"
    WORD_PROBLEM = "word_problem"
    FILL_IN_THE_BLANK = "fill_in_the_blank"


class KnowledgeComponent(Base):
    """A discrete curriculum topic (e.g. ``3.NBT.A.2`` add within 1000)."""

    __tablename__ = "knowledge_components"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    curriculum_code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    grade_level: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=KCStatus.APPROVED.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )


class ContentItem(Base):
    """A single quiz question. ``knowledge_component_id`` may be null for
    unassigned drafts; answers to such items never move mastery."""

    __tablename__ = "content_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, comment="Prompt text")
    options: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    correct_answer: Mapped[str | None] = mapped_column(String(255), nullable=True)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    language: Mapped[str] = mapped_column(String(32), nullable=False, default="English")
    # "metadata" is reserved on declarative classes
    item_metadata: Mapped[dict] = mapped_column("metadata", JSONType, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ContentStatus.APPROVED.value
    )
    knowledge_component_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("knowledge_components.id", ondelete="SET NULL"), nullable=True
    )
    teacher_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("teachers.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    knowledge_component = relationship("KnowledgeComponent")

    __table_args__ = (
        Index("idx_content_items_kc_difficulty", "knowledge_component_id", "difficulty"),
    )
