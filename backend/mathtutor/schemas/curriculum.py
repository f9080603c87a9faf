"""Knowledge component and content item schemas."""

from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from mathtutor.models import ContentStatus, KCStatus

ContentTypeName = Literal[
    "multiple_choice", "numeric", "true_false", "word_problem", "fill_in_the_blank"
]
ContentStatusName = Literal["draft", "pending_review", "approved", "rejected"]
KCStatusName = Literal["pending_review", "approved", "rejected"]


class KnowledgeComponentBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    curriculum_code: str = Field(..., min_length=1, max_length=64)
    grade_level: int = Field(..., ge=0, le=6)
    status: KCStatusName = KCStatus.APPROVED.value


class KnowledgeComponentCreate(KnowledgeComponentBase):
    pass


class KnowledgeComponentUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    curriculum_code: str | None = Field(None, min_length=1, max_length=64)
    grade_level: int | None = Field(None, ge=0, le=6)
    status: KCStatusName | None = None


class KnowledgeComponentResponse(KnowledgeComponentBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime


class KnowledgeComponentSequenceItem(KnowledgeComponentResponse):
    question_count: int


class KnowledgeComponentsListResponse(BaseModel):
    items: list[KnowledgeComponentResponse]
    page: int
    page_size: int
    total: int


class ContentItemBase(BaseModel):
    """Writable fields of a question. ``metadata`` is accepted as an alias."""

    model_config = ConfigDict(populate_by_name=True)

    type: ContentTypeName
    content: str = Field(..., min_length=1)
    options: list[Any] | None = None
    correct_answer: str | None = Field(None, max_length=255)
    explanation: str | None = None
    difficulty: int = Field(default=1, ge=1, le=5)
    language: str = Field(default="English", max_length=32)
    item_metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("item_metadata", "metadata"),
    )
    status: ContentStatusName = ContentStatus.APPROVED.value
    knowledge_component_id: int | None = None


class ContentItemCreate(ContentItemBase):
    pass


class ContentItemUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: ContentTypeName | None = None
    content: str | None = Field(None, min_length=1)
    options: list[Any] | None = None
    correct_answer: str | None = Field(None, max_length=255)
    explanation: str | None = None
    difficulty: int | None = Field(None, ge=1, le=5)
    language: str | None = Field(None, max_length=32)
    item_metadata: dict[str, Any] | None = Field(
        None, validation_alias=AliasChoices("item_metadata", "metadata")
    )
    status: ContentStatusName | None = None
    knowledge_component_id: int | None = None


class ContentItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    content: str
    options: list[Any] | None = None
    correct_answer: str | None = None
    explanation: str | None = None
    difficulty: int
    language: str
    metadata: dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("item_metadata", "metadata")
    )
    status: str
    knowledge_component_id: int | None = None
    teacher_id: int | None = None
    created_at: datetime


class ContentItemsListResponse(BaseModel):
    items: list[ContentItemResponse]
    page: int
    page_size: int
    total: int


class DeleteMultipleRequest(BaseModel):
    ids: list[int] = Field(..., min_length=1, max_length=500)


class DeleteMultipleResponse(BaseModel):
    deleted: int
    not_found: list[int]


class BulkContentItem(ContentItemBase):
    """One question of a bulk upload; ``hint`` is stored in the metadata."""

    hint: str | None = Field(None, max_length=1000)


class BulkContentItemsCreate(BaseModel):
    knowledge_component_id: int = Field(..., ge=1)
    items: list[BulkContentItem] = Field(..., min_length=1, max_length=200)
