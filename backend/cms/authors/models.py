# backend/cms/authors/models.py
from enum import Enum as PyEnum
from sqlalchemy import Column, Integer, String, Text, DateTime, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class AuthorStatus(str, PyEnum):
    ACTIVE = "active"
    DELETED = "deleted"


class Author(Base):
    __tablename__ = "authors"
    __table_args__ = (
        Index("ix_authors_status_created", "status", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    bio = Column(Text, nullable=False, default="")
    status = Column(
        SQLEnum(AuthorStatus, name="author_status", values_callable=lambda e: [m.value for m in e]),
        default=AuthorStatus.ACTIVE,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    deleted_at = Column(DateTime(timezone=True))

    posts = relationship("Post", back_populates="author", lazy="noload")

    def __repr__(self) -> str:
        return f"Author(id={self.id}, name={self.name!r}, email={self.email!r}, status={self.status!r})"
    def __str__(self) -> str:
        return f"{self.name} ({self.email})"
