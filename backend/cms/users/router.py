from typing import Dict

from fastapi import APIRouter, Depends

from ..database import SessionDep
from ..models import Envelope, Paginated
from ..query import list_params, page_payload
from .schema import UserPublic, UserRoleUpdate
from . import service as user_service
from ..auth.dependencies import get_current_identity, require_super_admin

# 운영자 계정 관리는 모두 super_admin 전용
router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(get_current_identity), Depends(require_super_admin)],
)

@router.get("", response_model=Paginated[UserPublic])
async def list_users(db: SessionDep, params: Dict[str, str] = Depends(list_params)):
    result = await user_service.list_users(db, params)
    return page_payload(result, UserPublic)

@router.patch("/{user_id}", response_model=Envelope[UserPublic])
async def deactivate_user(user_id: int, db: SessionDep):
    user = await user_service.deactivate_user(db, user_id)
    return {"data": UserPublic.model_validate(user)}

@router.patch("/{user_id}/role", response_model=Envelope[UserPublic])
async def update_user_role(user_id: int, body: UserRoleUpdate, db: SessionDep):
    user = await user_service.change_role(db, user_id, body.role)
    return {"data": UserPublic.model_validate(user)}
