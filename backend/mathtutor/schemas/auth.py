"""Authentication and registration schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class _EmailNormalized(BaseModel):
    @field_validator("email", check_fields=False)
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


# Request schemas
class LoginRequest(_EmailNormalized):
    """Login request schema."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class StudentRegisterRequest(_EmailNormalized):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    grade_level: int = Field(..., ge=0, le=6, description="0 = kindergarten")
    language_preference: str = Field(default="English", max_length=32)
    parent_email: EmailStr | None = None


class TeacherRegisterRequest(_EmailNormalized):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    subject_taught: str | None = Field(default=None, max_length=128)


class ParentRegisterRequest(_EmailNormalized):
    """Parents must name at least one existing student to link to."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    phone_number: str | None = Field(default=None, max_length=32)
    student_emails: list[EmailStr] = Field(..., min_length=1)

    @field_validator("student_emails")
    @classmethod
    def normalize_student_emails(cls, v: list[str]) -> list[str]:
        return sorted({e.lower().strip() for e in v})


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=128)


# Response schemas
class AccountResponse(BaseModel):
    """Account as seen by its owner or an admin."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: str
    is_active: bool
    grade_level: int | None = None
    created_at: datetime
    last_login_at: datetime | None = None

    @field_validator("role", mode="before")
    @classmethod
    def role_value(cls, v):
        return v.value if isinstance(v, Enum) else v


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    role: str
    user: AccountResponse
