from fastapi import APIRouter, Depends, status

from ..database import SessionDep
from . import service as auth_service
from .dependencies import get_token_authority
from .schema import AuthResult, LoginRequest, RegisterRequest
from .service import TokenAuthority

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/register", response_model=AuthResult, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    db: SessionDep,
    authority: TokenAuthority = Depends(get_token_authority),
):
    return await auth_service.register(db, body, authority)

@router.post("/login", response_model=AuthResult)
async def login(
    body: LoginRequest,
    db: SessionDep,
    authority: TokenAuthority = Depends(get_token_authority),
):
    return await auth_service.login(db, body, authority)
