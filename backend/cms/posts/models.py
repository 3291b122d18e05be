# backend/cms/posts/models.py
from enum import Enum as PyEnum
from typing import List
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey,
    Enum as SQLEnum, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class PostStatus(str, PyEnum):
    DRAFT = "draft"
    PUBLISHED = "published"
    DELETED = "deleted"


class Post(Base):
    __tablename__ = "posts"
    __table_args__ = (
        Index("ix_posts_status_created", "status", "created_at"),
        Index("ix_posts_author_created", "author_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    content = Column(Text, nullable=False)
    image = Column(String(1024), nullable=False)
    status = Column(
        SQLEnum(PostStatus, name="post_status", values_callable=lambda e: [m.value for m in e]),
        default=PostStatus.DRAFT,
        nullable=False,
    )
    author_id = Column(Integer, ForeignKey("authors.id"), nullable=False)

    published_at = Column(DateTime(timezone=True))  # status=published 일 때만 값이 있음
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    deleted_at = Column(DateTime(timezone=True))  # status=deleted 일 때만 값이 있음

    author = relationship("Author", back_populates="posts", lazy="selectin")
    tag_links = relationship(
        "PostTag",
        back_populates="post",
        order_by="PostTag.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def tags(self) -> List[str]:
        return [link.tag for link in self.tag_links]

    @tags.setter
    def tags(self, values: List[str]) -> None:
        # 순서를 보존하기 위해 position과 함께 다시 만듭니다.
        self.tag_links = [PostTag(tag=tag, position=i) for i, tag in enumerate(values)]

    def __repr__(self) -> str:
        return f"Post(id={self.id}, slug={self.slug!r}, status={self.status!r}, author_id={self.author_id})"
    def __str__(self) -> str:
        return f"{self.title} ({self.status})"


class PostTag(Base):
    """게시글 태그 (순서 있는 문자열 목록)"""
    __tablename__ = "post_tags"
    __table_args__ = (
        Index("ix_post_tags_tag", "tag"),
    )

    id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    tag = Column(String(100), nullable=False)
    position = Column(Integer, nullable=False)

    post = relationship("Post", back_populates="tag_links")

    def __repr__(self) -> str:
        return f"PostTag(post_id={self.post_id}, tag={self.tag!r}, position={self.position})"
