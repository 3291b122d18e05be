from typing import Optional

from pydantic import EmailStr, Field, field_validator

from ..models import CustomModel
from ..users.models import UserRole
from ..users.schema import UserCreate


class LoginRequest(CustomModel):
    email: EmailStr = Field(..., json_schema_extra={"example": "admin@example.com"})
    password: str = Field(..., min_length=6, json_schema_extra={"example": "strongpassword"})

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.strip().lower()


class RegisterRequest(UserCreate):
    role: Optional[UserRole] = Field(None, json_schema_extra={"example": "admin"})


class AuthUser(CustomModel):
    id: int
    name: str
    email: str
    role: UserRole


class AuthResult(CustomModel):
    token: str
    user: AuthUser
