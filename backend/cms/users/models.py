# backend/cms/users/models.py
from enum import Enum as PyEnum
from sqlalchemy import Column, Integer, String, DateTime, Boolean, Index, Enum as SQLEnum
from sqlalchemy.sql import func
from ..database import Base


class UserRole(str, PyEnum):
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_role_active_created", "role", "is_active", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)  # 소문자로 정규화하여 저장
    hashed_password = Column(String(255), nullable=False)
    role = Column(
        SQLEnum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        default=UserRole.ADMIN,
        nullable=False,
    )
    # 비활성화(soft delete): is_active=False 이면 deleted_at이 채워져 있어야 함
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    deleted_at = Column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"User(id={self.id}, name={self.name!r}, email={self.email!r}, role={self.role!r})"
    def __str__(self) -> str:
        return f"{self.name} ({self.email})"
