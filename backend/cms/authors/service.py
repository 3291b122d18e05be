import logging
from typing import Mapping, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import Conflict, NotFound, ReferentialConflict
from ..lifecycle import author_deletion, utcnow
from ..posts.models import Post, PostStatus
from ..query import ListingRules, ListResult, build_list_query, equals, run_list_query, sort_columns
from .models import Author, AuthorStatus
from .schemas import AuthorCreate, AuthorUpdate

logger = logging.getLogger(__name__)

AUTHOR_LISTING = ListingRules(
    filters={
        "name": equals(Author.name),
        "email": equals(Author.email, lambda v: v.lower()),
    },
    search_fields=(Author.name, Author.email),
    sort_fields=sort_columns(Author.id, Author.name, Author.email, Author.created_at, Author.updated_at),
    default_sort=Author.created_at,
    tiebreaker=Author.id,
)


def _active_authors():
    return select(Author).where(Author.status != AuthorStatus.DELETED)


async def get_by_id(db: AsyncSession, author_id: int) -> Optional[Author]:
    # 삭제된 작성자는 존재하지 않는 것과 같습니다.
    stmt = _active_authors().where(Author.id == author_id).execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_author(db: AsyncSession, author_id: int) -> Author:
    author = await get_by_id(db, author_id)
    if author is None:
        raise NotFound("Author not found")
    return author


async def list_authors(db: AsyncSession, params: Mapping[str, str]) -> ListResult:
    query = build_list_query(params, AUTHOR_LISTING)
    return await run_list_query(db, _active_authors(), query)


async def _commit_unique(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Email already in use")


async def create_author(db: AsyncSession, data: AuthorCreate) -> Author:
    author = Author(
        name=data.name.strip(),
        email=data.email,
        bio=data.bio or "",
        status=AuthorStatus.ACTIVE,
        deleted_at=None,
    )
    db.add(author)
    await _commit_unique(db)
    await db.refresh(author)
    logger.info(f"Created author id={author.id}")
    return author


async def update_author(db: AsyncSession, author_id: int, data: AuthorUpdate) -> Author:
    author = await get_author(db, author_id)

    update_data = data.model_dump(exclude_unset=True)
    if "name" in update_data and update_data["name"] is not None:
        update_data["name"] = update_data["name"].strip()
    if "bio" in update_data and update_data["bio"] is None:
        update_data["bio"] = ""
    # name/email은 필수 컬럼이므로 null로 지울 수 없습니다.
    update_data = {k: v for k, v in update_data.items() if v is not None}

    for field, value in update_data.items():
        setattr(author, field, value)

    await _commit_unique(db)
    await db.refresh(author)
    return author


async def count_active_posts(db: AsyncSession, author_id: int) -> int:
    stmt = select(func.count(Post.id)).where(
        Post.author_id == author_id,
        Post.status != PostStatus.DELETED,
    )
    return (await db.execute(stmt)).scalar_one()


async def can_delete_author(db: AsyncSession, author_id: int) -> bool:
    """삭제되지 않은 게시글이 하나도 없을 때만 작성자를 삭제할 수 있습니다."""
    return await count_active_posts(db, author_id) == 0


async def delete_author(db: AsyncSession, author_id: int) -> Author:
    author = await get_author(db, author_id)

    # 확인과 삭제 사이에 게시글이 생길 수 있는 좁은 경합은 허용합니다.
    if not await can_delete_author(db, author_id):
        logger.warning(f"Blocked delete of author id={author_id}: active posts remain")
        raise ReferentialConflict(
            "Cannot delete author: this author still has posts. Delete the author's posts first."
        )

    changes = author_deletion(author.status, utcnow())
    result = await db.execute(
        update(Author)
        .where(Author.id == author_id, Author.status != AuthorStatus.DELETED)
        .values(**changes)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFound("Author not found")
    await db.commit()
    await db.refresh(author)
    logger.info(f"Soft-deleted author id={author_id}")
    return author
