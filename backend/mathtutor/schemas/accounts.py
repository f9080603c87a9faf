"""Schemas for role-specific profile records."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StudentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    grade_level: int | None = None
    language_preference: str
    preferences: dict[str, Any] = Field(default_factory=dict)
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime


class StudentsListResponse(BaseModel):
    """Paginated students list response."""

    items: list[StudentResponse]
    page: int
    page_size: int
    total: int


class StudentUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    grade_level: int | None = Field(None, ge=0, le=6)
    language_preference: str | None = Field(None, max_length=32)
    preferences: dict[str, Any] | None = None


class TeacherResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    subject_taught: str | None = None
    preferences: dict[str, Any] = Field(default_factory=dict)
    is_active: bool
    created_at: datetime


class TeacherUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    subject_taught: str | None = Field(None, max_length=128)
    preferences: dict[str, Any] | None = None


class ParentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    phone_number: str | None = None
    is_active: bool
    created_at: datetime


class StudentIdsRequest(BaseModel):
    """A batch of student ids to link or enroll."""

    student_ids: list[int] = Field(..., min_length=1, max_length=200)


class LinkResult(BaseModel):
    added: list[int]
    already_present: list[int]
