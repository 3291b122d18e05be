from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from ..models import CustomModel
from .models import AuthorStatus


class AuthorCreate(CustomModel):
    name: str = Field(..., min_length=2, max_length=100, json_schema_extra={"example": "Jane"})
    email: EmailStr = Field(..., json_schema_extra={"example": "jane@example.com"})
    bio: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.strip().lower()


class AuthorUpdate(CustomModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    bio: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v is not None else v


class AuthorOut(CustomModel):
    id: int
    name: str
    email: str
    bio: str = ""
    status: AuthorStatus
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class AuthorSummary(CustomModel):
    """게시글 응답에 포함되는 작성자 요약"""
    id: int
    name: str
    email: str
