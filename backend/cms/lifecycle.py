"""
리소스별 상태 전이 규칙.

각 함수는 전이에 따라 바뀌어야 할 컬럼 값(dict)을 돌려주고, 서비스는 이를
ORM 객체에 적용하거나 조건부 UPDATE 문의 values로 사용합니다.
"""
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Mapping, Optional

from .authors.models import AuthorStatus
from .exceptions import NotFound, ValidationFailed
from .posts.models import PostStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# 게시글: deleted는 종료 상태
POST_TRANSITIONS: Mapping[PostStatus, FrozenSet[PostStatus]] = {
    PostStatus.DRAFT: frozenset({PostStatus.DRAFT, PostStatus.PUBLISHED, PostStatus.DELETED}),
    PostStatus.PUBLISHED: frozenset({PostStatus.DRAFT, PostStatus.PUBLISHED, PostStatus.DELETED}),
    PostStatus.DELETED: frozenset(),
}

# 생성 시 허용되는 초기 상태
POST_INITIAL_STATES: FrozenSet[PostStatus] = frozenset({PostStatus.DRAFT, PostStatus.PUBLISHED})

AUTHOR_TRANSITIONS: Mapping[AuthorStatus, FrozenSet[AuthorStatus]] = {
    AuthorStatus.ACTIVE: frozenset({AuthorStatus.DELETED}),
    AuthorStatus.DELETED: frozenset(),
}


def _post_side_effects(target: PostStatus, now: datetime) -> Dict[str, Any]:
    if target is PostStatus.PUBLISHED:
        return {"status": target, "published_at": now, "deleted_at": None}
    if target is PostStatus.DRAFT:
        return {"status": target, "published_at": None, "deleted_at": None}
    if target is PostStatus.DELETED:
        return {"status": target, "published_at": None, "deleted_at": now}
    raise ValueError(f"Unknown post status: {target!r}")


def post_initial_state(status: Optional[PostStatus], now: Optional[datetime] = None) -> Dict[str, Any]:
    """생성 시 초기 상태와 타임스탬프. deleted로 직접 생성할 수 없습니다."""
    target = status or PostStatus.DRAFT
    if target not in POST_INITIAL_STATES:
        raise ValidationFailed(f"Cannot create a post with status '{target.value}'")
    return _post_side_effects(target, now or utcnow())


def post_transition(current: PostStatus, target: PostStatus, now: Optional[datetime] = None) -> Dict[str, Any]:
    """기존 게시글의 상태 변경. 이미 삭제된 게시글은 찾을 수 없는 것으로 취급합니다."""
    if target not in POST_TRANSITIONS[current]:
        raise NotFound("Post not found")
    return _post_side_effects(target, now or utcnow())


def post_deletion(now: Optional[datetime] = None) -> Dict[str, Any]:
    return _post_side_effects(PostStatus.DELETED, now or utcnow())


def author_deletion(current: AuthorStatus, now: Optional[datetime] = None) -> Dict[str, Any]:
    if AuthorStatus.DELETED not in AUTHOR_TRANSITIONS[current]:
        raise NotFound("Author not found")
    return {"status": AuthorStatus.DELETED, "deleted_at": now or utcnow()}


def user_deactivation(is_active: bool, now: Optional[datetime] = None) -> Dict[str, Any]:
    # 재활성화 경로는 없습니다.
    if not is_active:
        raise NotFound("User not found")
    return {"is_active": False, "deleted_at": now or utcnow()}


def apply_changes(obj: Any, changes: Mapping[str, Any]) -> None:
    for key, value in changes.items():
        setattr(obj, key, value)
