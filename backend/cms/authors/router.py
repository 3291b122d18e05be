from typing import Dict

from fastapi import APIRouter, Depends, Response, status

from ..auth.dependencies import get_current_identity, require_admin
from ..database import SessionDep
from ..models import Envelope, Paginated
from ..query import list_params, page_payload
from . import service
from .schemas import AuthorCreate, AuthorOut, AuthorUpdate

router = APIRouter(prefix="/authors", tags=["authors"], dependencies=[Depends(get_current_identity)])


@router.post("", response_model=Envelope[AuthorOut], status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def create_author(body: AuthorCreate, db: SessionDep):
    author = await service.create_author(db, body)
    return {"data": AuthorOut.model_validate(author)}


@router.get("", response_model=Paginated[AuthorOut])
async def list_authors(db: SessionDep, params: Dict[str, str] = Depends(list_params)):
    result = await service.list_authors(db, params)
    return page_payload(result, AuthorOut)


@router.get("/{author_id}", response_model=Envelope[AuthorOut])
async def get_author(author_id: int, db: SessionDep):
    author = await service.get_author(db, author_id)
    return {"data": AuthorOut.model_validate(author)}


@router.patch("/{author_id}", response_model=Envelope[AuthorOut], dependencies=[Depends(require_admin)])
async def update_author(author_id: int, body: AuthorUpdate, db: SessionDep):
    author = await service.update_author(db, author_id, body)
    return {"data": AuthorOut.model_validate(author)}


@router.delete("/{author_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
async def delete_author(author_id: int, db: SessionDep):
    await service.delete_author(db, author_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
