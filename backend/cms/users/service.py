import logging
from typing import Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from passlib.context import CryptContext

from ..config import Config
from ..exceptions import Conflict, NotFound
from ..lifecycle import user_deactivation, utcnow
from ..query import ListingRules, ListResult, build_list_query, equals, run_list_query, sort_columns
from .models import User as UserModel, UserRole
from .schema import UserCreate

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

USER_LISTING = ListingRules(
    filters={
        "name": equals(UserModel.name),
        "email": equals(UserModel.email, lambda v: v.lower()),
        "role": equals(UserModel.role, UserRole),
    },
    search_fields=(UserModel.name, UserModel.email),
    sort_fields=sort_columns(UserModel.id, UserModel.name, UserModel.email, UserModel.role, UserModel.created_at, UserModel.updated_at),
    default_sort=UserModel.created_at,
    tiebreaker=UserModel.id,
)


def _active_users():
    return select(UserModel).where(
        UserModel.is_active.is_(True),
        UserModel.role.in_([UserRole.ADMIN, UserRole.SUPER_ADMIN]),
    )


async def create_user(user_data: UserCreate, db: AsyncSession, role: UserRole = UserRole.ADMIN) -> UserModel:
    existing_user = await get_user_by_email(user_data.email, db)
    if existing_user:
        raise Conflict("Email already in use")

    db_user = UserModel(
        name=user_data.name.strip(),
        email=user_data.email,
        hashed_password=pwd_context.hash(user_data.password),
        role=role,
        is_active=True,
        deleted_at=None,
    )
    db.add(db_user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Email already in use")
    await db.refresh(db_user)
    return db_user

async def list_users(db: AsyncSession, params: Mapping[str, str]) -> ListResult:
    """활성 운영자 계정 목록 (비활성화된 계정 제외)"""
    query = build_list_query(params, USER_LISTING)
    return await run_list_query(db, _active_users(), query)

async def get_user_by_id(user_id: int, db: AsyncSession, *, include_inactive: bool = False) -> Optional[UserModel]:
    stmt = select(UserModel).where(UserModel.id == user_id)
    if not include_inactive:
        stmt = stmt.where(UserModel.is_active.is_(True))
    result = await db.execute(stmt.execution_options(populate_existing=True))
    return result.scalar_one_or_none()

async def get_user_by_email(email: str, db: AsyncSession) -> Optional[UserModel]:
    result = await db.execute(select(UserModel).where(UserModel.email == email.strip().lower()))
    return result.scalar_one_or_none()

async def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

async def deactivate_user(db: AsyncSession, user_id: int) -> UserModel:
    """비활성화(soft delete). 이미 비활성화된 계정은 404로 응답합니다."""
    user = await get_user_by_id(user_id, db)
    if user is None:
        raise NotFound("User not found")

    changes = user_deactivation(user.is_active, utcnow())
    # 동시에 들어온 중복 요청은 두 번째 요청이 0건 갱신되어 404가 됩니다.
    result = await db.execute(
        update(UserModel)
        .where(UserModel.id == user_id, UserModel.is_active.is_(True))
        .values(**changes)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFound("User not found")
    await db.commit()
    logger.info(f"Deactivated user id={user_id}")
    return await get_user_by_id(user_id, db, include_inactive=True)

async def change_role(db: AsyncSession, user_id: int, role: UserRole) -> UserModel:
    # 역할은 활성 상태와 무관하게 바꿀 수 있습니다.
    user = await get_user_by_id(user_id, db, include_inactive=True)
    if user is None:
        raise NotFound("User not found")
    user.role = role
    await db.commit()
    await db.refresh(user)
    logger.info(f"Changed role of user id={user_id} to {role.value}")
    return user

async def seed_super_admin(db: AsyncSession, config: Config) -> UserModel:
    """
    설정된 super_admin 계정을 이메일 기준으로 생성하거나 복구합니다.
    여러 번 실행해도 계정은 하나만 존재합니다.
    """
    hashed = pwd_context.hash(config.SUPER_ADMIN_PASSWORD)
    user = await get_user_by_email(config.SUPER_ADMIN_EMAIL, db)

    if user is None:
        user = UserModel(
            name=config.SUPER_ADMIN_NAME,
            email=config.SUPER_ADMIN_EMAIL,
            hashed_password=hashed,
            role=UserRole.SUPER_ADMIN,
            is_active=True,
            deleted_at=None,
        )
        db.add(user)
        logger.info(f"Seeding super admin {config.SUPER_ADMIN_EMAIL}")
    else:
        if user.name != config.SUPER_ADMIN_NAME or user.role != UserRole.SUPER_ADMIN or not user.is_active:
            logger.info(f"Restoring super admin {config.SUPER_ADMIN_EMAIL}")
        user.name = config.SUPER_ADMIN_NAME
        user.role = UserRole.SUPER_ADMIN
        user.is_active = True
        user.deleted_at = None
        user.hashed_password = hashed

    await db.commit()
    await db.refresh(user)
    return user
