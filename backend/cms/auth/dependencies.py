from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header

from ..config import settings
from .service import (
    ADMIN_ROLES,
    SUPER_ADMIN_ROLES,
    Identity,
    TokenAuthority,
    authenticate,
    require_role,
)


@lru_cache
def get_token_authority() -> TokenAuthority:
    # 설정은 기동 시 한 번 로드되므로 인스턴스도 하나만 만듭니다.
    return TokenAuthority.from_settings(settings)


async def get_current_identity(
    authorization: Optional[str] = Header(default=None),
    authority: TokenAuthority = Depends(get_token_authority),
) -> Identity:
    return authenticate(authorization, authority)

CurrentIdentity = Depends(get_current_identity)

def require_admin(
    identity: Identity = CurrentIdentity
) -> Identity:
    """
    admin 또는 super_admin 역할을 요구하는 의존성.
    권한이 없으면 403 Forbidden 에러가 발생합니다.
    """
    require_role(identity, ADMIN_ROLES)
    return identity

def require_super_admin(
    identity: Identity = CurrentIdentity
) -> Identity:
    """운영자 계정 관리는 super_admin만 가능합니다."""
    require_role(identity, SUPER_ADMIN_ROLES)
    return identity
