"""Schemas for admin user management."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

RoleName = Literal["student", "teacher", "parent", "admin"]


class AdminUserItem(BaseModel):
    """User list item response (any role)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    role: str
    name: str
    email: str
    is_active: bool
    grade_level: int | None = None
    created_at: datetime
    last_login_at: datetime | None = None

    @field_validator("role", mode="before")
    @classmethod
    def role_value(cls, v):
        return v.value if isinstance(v, Enum) else v


class AdminUsersListResponse(BaseModel):
    """Paginated users list response."""

    items: list[AdminUserItem]
    page: int
    page_size: int
    total: int


class AdminUserCreate(BaseModel):
    """Schema for creating a user of any role."""

    role: RoleName
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    grade_level: int | None = Field(None, ge=0, le=6)
    parent_email: EmailStr | None = None
    subject_taught: str | None = Field(None, max_length=128)
    phone_number: str | None = Field(None, max_length=32)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()


class AdminUserUpdate(BaseModel):
    """Schema for updating a user. Role-specific fields are ignored for other roles."""

    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=8, max_length=128)
    is_active: bool | None = None
    grade_level: int | None = Field(None, ge=0, le=6)
    subject_taught: str | None = Field(None, max_length=128)
    phone_number: str | None = Field(None, max_length=32)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        return v.lower().strip() if v else v
