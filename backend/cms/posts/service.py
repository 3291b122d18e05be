import logging
from typing import Dict, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..authors import service as author_service
from ..config import settings
from ..exceptions import Conflict, NotFound, ValidationFailed
from ..lifecycle import apply_changes, post_deletion, post_initial_state, post_transition, utcnow
from ..query import ListingRules, ListResult, build_list_query, equals, run_list_query, sort_columns
from .models import Post, PostStatus, PostTag
from .schemas import PostCreate, PostUpdate

logger = logging.getLogger(__name__)


def has_tag(raw: str):
    return Post.id.in_(select(PostTag.post_id).where(PostTag.tag == raw))


_POST_SORT_FIELDS = sort_columns(
    Post.id, Post.title, Post.slug, Post.status, Post.published_at, Post.created_at, Post.updated_at,
)

POST_LISTING = ListingRules(
    filters={
        "status": equals(Post.status, PostStatus),
        "author": equals(Post.author_id, int),
        "tag": has_tag,
    },
    search_fields=(Post.title, Post.content, Post.slug),
    sort_fields=_POST_SORT_FIELDS,
    default_sort=Post.created_at,
    tiebreaker=Post.id,
)

# 작성자별 목록에서는 작성자가 이미 경로로 고정됩니다.
AUTHOR_POSTS_LISTING = ListingRules(
    filters={
        "status": equals(Post.status, PostStatus),
        "tag": has_tag,
    },
    search_fields=POST_LISTING.search_fields,
    sort_fields=_POST_SORT_FIELDS,
    default_sort=Post.created_at,
    tiebreaker=Post.id,
)


def _live_posts():
    return select(Post).where(Post.status != PostStatus.DELETED)


def _image_or_default(image: Optional[str]) -> str:
    return (image or "").strip() or settings.DEFAULT_POST_IMAGE


async def _load(db: AsyncSession, post_id: int) -> Optional[Post]:
    stmt = select(Post).where(Post.id == post_id).execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one_or_none()


async def _require_active_author(db: AsyncSession, author_id: int) -> None:
    if await author_service.get_by_id(db, author_id) is None:
        raise ValidationFailed(f"Author {author_id} does not exist")


async def _commit_unique(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Slug already in use")


async def get_post(db: AsyncSession, post_id: int) -> Post:
    # 삭제된 게시글은 존재하지 않는 것으로 취급합니다.
    stmt = _live_posts().where(Post.id == post_id).execution_options(populate_existing=True)
    post = (await db.execute(stmt)).scalar_one_or_none()
    if post is None:
        raise NotFound("Post not found")
    return post


async def create_post(db: AsyncSession, data: PostCreate) -> Post:
    initial = post_initial_state(data.status, utcnow())
    await _require_active_author(db, data.author)

    post = Post(
        title=data.title.strip(),
        slug=data.slug,
        content=data.content,
        image=_image_or_default(data.image),
        author_id=data.author,
    )
    post.tags = data.tags
    apply_changes(post, initial)
    db.add(post)
    await _commit_unique(db)
    logger.info(f"Created post id={post.id} status={post.status.value} author_id={post.author_id}")
    return await _load(db, post.id)


async def list_posts(db: AsyncSession, params: Mapping[str, str]) -> ListResult:
    params: Dict[str, str] = dict(params)
    # 프론트엔드는 author 대신 authorId를 보낼 수도 있습니다.
    if params.get("authorId") and not params.get("author"):
        params["author"] = params["authorId"]
    query = build_list_query(params, POST_LISTING)
    return await run_list_query(db, _live_posts(), query)


async def list_posts_by_author(db: AsyncSession, author_id: int, params: Mapping[str, str]) -> ListResult:
    query = build_list_query(params, AUTHOR_POSTS_LISTING)
    return await run_list_query(db, _live_posts().where(Post.author_id == author_id), query)


async def update_post(db: AsyncSession, post_id: int, data: PostUpdate) -> Post:
    post = await get_post(db, post_id)
    update_data = data.model_dump(exclude_unset=True)

    if "image" in update_data:
        post.image = _image_or_default(update_data.pop("image"))

    status = update_data.pop("status", None)
    if status is not None:
        apply_changes(post, post_transition(post.status, status, utcnow()))

    author_id = update_data.pop("author", None)
    if author_id is not None:
        await _require_active_author(db, author_id)
        post.author_id = author_id

    tags = update_data.pop("tags", None)
    if tags is not None:
        post.tags = tags

    for field, value in update_data.items():
        # title/slug/content는 필수 컬럼이므로 null은 무시합니다.
        if value is not None:
            setattr(post, field, value.strip() if field == "title" else value)

    await _commit_unique(db)
    if post.status is PostStatus.DELETED:
        logger.info(f"Soft-deleted post id={post_id} via status update")
    return await _load(db, post_id)


async def delete_post(db: AsyncSession, post_id: int) -> None:
    """Soft delete: 이미 삭제된 게시글이면 404."""
    result = await db.execute(
        update(Post)
        .where(Post.id == post_id, Post.status != PostStatus.DELETED)
        .values(**post_deletion(utcnow()))
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFound("Post not found")
    await db.commit()
    logger.info(f"Soft-deleted post id={post_id}")
