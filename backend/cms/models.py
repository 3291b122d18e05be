from datetime import datetime, timezone
from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CustomModel(BaseModel):
    """
    프로젝트의 모든 Pydantic 스키마가 상속받는 공통 기본 모델.
    API 데이터 정책을 중앙에서 관리합니다.
    """
    model_config = ConfigDict(
        # 응답/요청 JSON은 camelCase, 파이썬 코드는 snake_case를 사용합니다.
        alias_generator=to_camel,
        populate_by_name=True,

        # SQLAlchemy 모델 객체를 Pydantic 스키마로 변환 가능하게 합니다.
        from_attributes=True,

        # 허용 목록에 없는 필드는 거부합니다.
        extra="forbid",
    )

    @field_serializer('*', mode="wrap", check_fields=False)
    def serialize_datetime(self, value, handler, _info):
        """datetime 객체를 UTC 기준 ISO-8601 문자열로 변환합니다."""
        if isinstance(value, datetime):
            # SQLite 등에서 읽은 naive datetime은 UTC로 간주합니다.
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            else:
                value = value.astimezone(timezone.utc)
            return value.isoformat()
        return handler(value)


class Envelope(CustomModel, Generic[T]):
    """단건 응답 래퍼: {"data": ...}"""
    data: T


class Paginated(CustomModel, Generic[T]):
    """목록 응답: {page, limit, total, totalPages, results, data}"""
    page: int
    limit: int
    total: int
    total_pages: int
    results: int
    data: List[T]
