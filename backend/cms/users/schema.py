from pydantic import EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime

from ..models import CustomModel
from .models import UserRole

class UserBase(CustomModel):
    email: EmailStr = Field(..., json_schema_extra={"example": "admin@example.com"})
    name: str = Field(..., min_length=2, max_length=100, json_schema_extra={"example": "John Doe"})

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.strip().lower()

class UserCreate(UserBase):
    password: str = Field(..., min_length=6, json_schema_extra={"example": "strongpassword123"})

class UserRoleUpdate(CustomModel):
    role: UserRole = Field(..., json_schema_extra={"example": "super_admin"})

class UserPublic(CustomModel):
    id: int
    name: str
    email: str
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None
