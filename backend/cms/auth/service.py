import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import AbstractSet, Optional

from jose import jwt, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Config
from ..exceptions import Forbidden, Unauthenticated
from ..users import service as user_service
from ..users.models import User, UserRole
from .schema import AuthResult, AuthUser, LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)

# 관리자 화면 전체에 접근 가능한 역할 / 운영자 관리 전용 역할
ADMIN_ROLES: AbstractSet[UserRole] = frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN})
SUPER_ADMIN_ROLES: AbstractSet[UserRole] = frozenset({UserRole.SUPER_ADMIN})


class InvalidToken(Exception):
    """서명 불일치, 형식 오류, 만료 등으로 검증에 실패한 토큰."""


@dataclass(frozen=True)
class Identity:
    user_id: int
    role: UserRole


class TokenAuthority:
    """서명된 만료 시간 있는 Access Token을 발급하고 검증합니다."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expires_delta: timedelta = timedelta(days=7)):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expires_delta = expires_delta

    @classmethod
    def from_settings(cls, config: Config) -> "TokenAuthority":
        return cls(
            secret_key=config.JWT_SECRET_KEY,
            algorithm=config.JWT_ALGORITHM,
            expires_delta=timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES),
        )

    def issue(self, user_id: int, role: UserRole) -> str:
        expire = datetime.now(timezone.utc) + self._expires_delta
        to_encode = {
            "sub": str(user_id),
            "role": UserRole(role).value,
            "type": "access",   # 토큰 타입 명시
            "exp": expire,
        }
        return jwt.encode(to_encode, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str) -> Identity:
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except JWTError as e:
            # 변조, 만료, 형식 오류 모두 여기로 옵니다.
            raise InvalidToken(str(e)) from e

        if payload.get("type") != "access":
            raise InvalidToken("Unexpected token type")
        try:
            return Identity(user_id=int(payload["sub"]), role=UserRole(payload["role"]))
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidToken("Malformed token claims") from e


def authenticate(authorization: Optional[str], authority: TokenAuthority) -> Identity:
    """`Authorization: Bearer <token>` 헤더로부터 호출자의 Identity를 확인합니다."""
    if not authorization:
        raise Unauthenticated("Not authorized (missing token)")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("Not authorized (missing token)")
    try:
        return authority.verify(token.strip())
    except InvalidToken:
        raise Unauthenticated("Invalid or expired token")


def require_role(identity: Identity, roles: AbstractSet[UserRole]) -> None:
    if identity.role not in roles:
        if roles == SUPER_ADMIN_ROLES:
            raise Forbidden("Forbidden (super admin only)")
        raise Forbidden("Forbidden (admin only)")


def _auth_result(user: User, authority: TokenAuthority) -> AuthResult:
    token = authority.issue(user.id, user.role)
    return AuthResult(token=token, user=AuthUser.model_validate(user))


async def register(db: AsyncSession, data: RegisterRequest, authority: TokenAuthority) -> AuthResult:
    user = await user_service.create_user(data, db, role=data.role or UserRole.ADMIN)
    logger.info(f"Registered user id={user.id} role={user.role.value}")
    return _auth_result(user, authority)


async def login(db: AsyncSession, data: LoginRequest, authority: TokenAuthority) -> AuthResult:
    user = await authenticate_user(db, data.email, data.password)
    if user is None:
        raise Unauthenticated("Invalid email or password")
    return _auth_result(user, authority)


async def authenticate_user(
    db: AsyncSession, email: str, password: str
) -> Optional[User]:
    """
    사용자 이메일과 비밀번호로 인증을 시도합니다.
    비활성화된 계정은 비밀번호가 맞더라도 인증되지 않습니다.
    """
    user = await user_service.get_user_by_email(email, db)

    if not user or not await user_service.verify_password(password, user.hashed_password):
        return None
    if not user.is_active:
        logger.info(f"Login rejected for deactivated user id={user.id}")
        return None
    return user
