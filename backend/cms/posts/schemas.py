import json
from datetime import datetime
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import Field, field_validator

from ..authors.schemas import AuthorSummary
from ..models import CustomModel, Paginated
from .models import PostStatus


def parse_tags(value):
    """
    태그 입력 정규화.
    목록, JSON 배열 문자열, 콤마 구분 문자열(멀티파트 폼 입력)을 모두 허용합니다.
    """
    if value is None:
        return value
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return []
        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
                if isinstance(parsed, list):
                    value = parsed
            except json.JSONDecodeError:
                pass
        if isinstance(value, str):
            value = raw.split(",")
    if isinstance(value, list):
        return [tag.strip() for tag in value if isinstance(tag, str) and tag.strip()]
    return value


def check_image_url(value: Optional[str]) -> Optional[str]:
    # 비어 있으면 서비스에서 기본 이미지로 대체합니다.
    if value is None or not value.strip():
        return value
    parsed = urlparse(value.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Image must be a valid URL")
    return value.strip()


class PostCreate(CustomModel):
    title: str = Field(..., min_length=3, max_length=255, json_schema_extra={"example": "Getting started with Express"})
    slug: str = Field(..., min_length=3, max_length=255, json_schema_extra={"example": "getting-started-with-express"})
    content: str = Field(..., min_length=10)
    image: Optional[str] = None
    status: PostStatus = PostStatus.DRAFT
    tags: List[str] = Field(default_factory=list)
    author: int = Field(..., description="작성자 ID")

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, v):
        return parse_tags(v)

    @field_validator("image")
    @classmethod
    def _check_image(cls, v):
        return check_image_url(v)

    @field_validator("slug")
    @classmethod
    def _normalise_slug(cls, v: str) -> str:
        return v.strip().lower()


class PostUpdate(CustomModel):
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    slug: Optional[str] = Field(None, min_length=3, max_length=255)
    content: Optional[str] = Field(None, min_length=10)
    image: Optional[str] = None
    status: Optional[PostStatus] = None
    tags: Optional[List[str]] = None
    author: Optional[int] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, v):
        return parse_tags(v)

    @field_validator("image")
    @classmethod
    def _check_image(cls, v):
        return check_image_url(v)

    @field_validator("slug")
    @classmethod
    def _normalise_slug(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v is not None else v


class PostOut(CustomModel):
    id: int
    title: str
    slug: str
    content: str
    image: str
    status: PostStatus
    tags: List[str] = []
    author: AuthorSummary
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class AuthorPostsPage(Paginated[PostOut]):
    """작성자별 게시글 목록 응답 (author 필드가 추가됨)"""
    author: int
