"""
게시글 생성/수정 요청 본문 처리.

관리 화면은 이미지 파일을 함께 보내기 위해 multipart/form-data를 사용하고,
API 클라이언트는 JSON을 보냅니다. 두 형식 모두 같은 PostCreate/PostUpdate로 검증합니다.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Type, TypeVar

from fastapi import Depends, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError
from starlette.datastructures import UploadFile as StarletteUploadFile

from ..exceptions import ValidationFailed
from .schemas import PostCreate, PostUpdate

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")

# 업로드된 이미지를 저장하고 공개 URL을 돌려주는 함수
ImageStore = Callable[[UploadFile], Awaitable[Optional[str]]]

M = TypeVar("M", bound=BaseModel)


async def discard_image(upload: UploadFile) -> Optional[str]:
    """저장소가 연결되지 않은 기본 구현: 파일은 버리고 기본 이미지를 사용합니다."""
    logger.warning(f"No image store configured, ignoring uploaded file {upload.filename!r}")
    await upload.close()
    return None


def get_image_store() -> ImageStore:
    return discard_image


async def _form_payload(request: Request, store: ImageStore) -> Dict[str, Any]:
    form = await request.form()
    payload: Dict[str, Any] = {}
    for key in form.keys():
        values = form.getlist(key)
        if key == "image" and isinstance(values[-1], StarletteUploadFile):
            url = await store(values[-1])
            if url:
                payload["image"] = url
            continue
        # 같은 이름의 tags 필드가 여러 개면 목록으로 받습니다.
        payload[key] = values if key == "tags" and len(values) > 1 else values[-1]
    return payload


async def _json_payload(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise ValidationFailed("Validation failed: body: Invalid JSON")
    if not isinstance(body, dict):
        raise ValidationFailed("Validation failed: body: Expected a JSON object")
    return body


async def read_payload(request: Request, schema: Type[M], store: ImageStore) -> M:
    content_type = request.headers.get("content-type", "").lower()
    if content_type.startswith(FORM_CONTENT_TYPES):
        payload = await _form_payload(request, store)
    else:
        payload = await _json_payload(request)

    try:
        return schema.model_validate(payload)
    except ValidationError as e:
        raise RequestValidationError([{**err, "loc": ("body", *err["loc"])} for err in e.errors()])


async def post_create_body(request: Request, store: ImageStore = Depends(get_image_store)) -> PostCreate:
    return await read_payload(request, PostCreate, store)


async def post_update_body(request: Request, store: ImageStore = Depends(get_image_store)) -> PostUpdate:
    return await read_payload(request, PostUpdate, store)
