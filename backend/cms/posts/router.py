from typing import Dict

from fastapi import APIRouter, Depends, Response, status

from ..auth.dependencies import get_current_identity, require_admin
from ..database import SessionDep
from ..models import Envelope, Paginated
from ..query import list_params, page_payload
from . import service
from .payload import post_create_body, post_update_body
from .schemas import AuthorPostsPage, PostCreate, PostOut, PostUpdate

router = APIRouter(prefix="/posts", tags=["posts"], dependencies=[Depends(get_current_identity)])


@router.post("", response_model=Envelope[PostOut], status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def create_post(db: SessionDep, body: PostCreate = Depends(post_create_body)):
    post = await service.create_post(db, body)
    return {"data": PostOut.model_validate(post)}


@router.get("", response_model=Paginated[PostOut])
async def list_posts(db: SessionDep, params: Dict[str, str] = Depends(list_params)):
    result = await service.list_posts(db, params)
    return page_payload(result, PostOut)


# /{post_id} 보다 먼저 등록해야 합니다.
@router.get("/author/{author_id}", response_model=AuthorPostsPage)
async def list_posts_by_author(author_id: int, db: SessionDep, params: Dict[str, str] = Depends(list_params)):
    result = await service.list_posts_by_author(db, author_id, params)
    return {"author": author_id, **page_payload(result, PostOut)}


@router.get("/{post_id}", response_model=Envelope[PostOut])
async def get_post(post_id: int, db: SessionDep):
    post = await service.get_post(db, post_id)
    return {"data": PostOut.model_validate(post)}


@router.patch("/{post_id}", response_model=Envelope[PostOut], dependencies=[Depends(require_admin)])
async def update_post(post_id: int, db: SessionDep, body: PostUpdate = Depends(post_update_body)):
    post = await service.update_post(db, post_id, body)
    return {"data": PostOut.model_validate(post)}


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
async def delete_post(post_id: int, db: SessionDep):
    await service.delete_post(db, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
