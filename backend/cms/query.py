"""
목록 조회 공통 파이프라인: filter → search → sort → paginate.

각 단계는 불변 ListQuery를 받아 새 ListQuery를 돌려주며, 서비스는 같은
필터/검색 조건으로 건수 조회와 페이지 조회를 각각 만들어 실행합니다.
"""
import logging
import math
import re
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Tuple

from fastapi import Request
from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import ValidationFailed

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# OFFSET은 부호 있는 64비트 정수 범위를 넘을 수 없습니다.
MAX_OFFSET = 2 ** 63 - 1

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

# 필터로 취급하지 않는 예약 파라미터
RESERVED_PARAMS = frozenset({"page", "limit", "sort", "order", "q"})

FilterBuilder = Callable[[str], Any]


def equals(column, coerce: Callable[[str], Any] = str) -> FilterBuilder:
    """`column == coerce(raw)` 조건을 만드는 필터 빌더."""
    def build(raw: str):
        return column == coerce(raw)
    return build


def sort_columns(*columns) -> Dict[str, Any]:
    """컬럼 이름을 snake_case와 camelCase 모두로 정렬 키에 등록합니다."""
    mapping: Dict[str, Any] = {}
    for column in columns:
        name = column.key
        head, *rest = name.split("_")
        mapping[name] = column
        mapping[head + "".join(part.title() for part in rest)] = column
    return mapping


@dataclass(frozen=True)
class ListingRules:
    """리소스별 목록 규칙 (허용 필터, 검색 필드, 정렬 가능 컬럼)"""
    filters: Mapping[str, FilterBuilder]
    search_fields: Tuple[Any, ...]
    sort_fields: Mapping[str, Any]
    default_sort: Any
    tiebreaker: Any


@dataclass(frozen=True)
class ListQuery:
    criteria: Tuple[Any, ...] = ()
    order_by: Tuple[Any, ...] = ()
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class ListResult:
    page: int
    limit: int
    total: int
    items: List[Any] = field(default_factory=list)

    @property
    def total_pages(self) -> int:
        return max(math.ceil(self.total / self.limit), 1)


def _to_int(raw: Any, default: int) -> int:
    # 앞쪽 정수 부분만 읽습니다 ("2.5" -> 2, "3abc" -> 3).
    match = _LEADING_INT.match(str(raw))
    if not match:
        return default
    try:
        return int(match.group(1))
    except ValueError:
        # 자릿수 제한을 넘는 숫자 문자열
        return default


def apply_filter(query: ListQuery, params: Mapping[str, str], rules: ListingRules) -> ListQuery:
    criteria = list(query.criteria)
    for name, raw in params.items():
        if name in RESERVED_PARAMS or name not in rules.filters:
            continue
        if raw is None or str(raw).strip() == "":
            continue
        try:
            criteria.append(rules.filters[name](str(raw).strip()))
        except ValueError:
            raise ValidationFailed(f"Invalid value for filter '{name}': {raw}")
    return replace(query, criteria=tuple(criteria))


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def apply_search(query: ListQuery, params: Mapping[str, str], rules: ListingRules) -> ListQuery:
    term = str(params.get("q") or "").strip()
    if not term or not rules.search_fields:
        return query
    pattern = f"%{escape_like(term)}%"
    condition = or_(*[column.ilike(pattern, escape="\\") for column in rules.search_fields])
    return replace(query, criteria=query.criteria + (condition,))


def apply_sort(query: ListQuery, params: Mapping[str, str], rules: ListingRules) -> ListQuery:
    sort_field = str(params.get("sort") or "").strip()
    column = rules.sort_fields.get(sort_field)
    if column is None:
        # 정렬 필드가 없거나 알 수 없으면 최신 생성순
        return replace(query, order_by=(rules.default_sort.desc(), rules.tiebreaker.desc()))
    ascending = str(params.get("order") or "desc").strip().lower() == "asc"
    if ascending:
        return replace(query, order_by=(column.asc(), rules.tiebreaker.asc()))
    return replace(query, order_by=(column.desc(), rules.tiebreaker.desc()))


def apply_pagination(query: ListQuery, params: Mapping[str, str]) -> ListQuery:
    page = max(_to_int(params.get("page", DEFAULT_PAGE), DEFAULT_PAGE), 1)
    limit = min(max(_to_int(params.get("limit", DEFAULT_LIMIT), DEFAULT_LIMIT), 1), MAX_LIMIT)
    page = min(page, MAX_OFFSET // limit + 1)
    return replace(query, page=page, limit=limit)


def build_list_query(params: Mapping[str, str], rules: ListingRules) -> ListQuery:
    query = ListQuery()
    query = apply_filter(query, params, rules)
    query = apply_search(query, params, rules)
    query = apply_sort(query, params, rules)
    return apply_pagination(query, params)


async def run_list_query(db: AsyncSession, base: Select, query: ListQuery) -> ListResult:
    """
    같은 criteria로 건수 조회와 페이지 조회를 실행합니다.
    두 조회는 트랜잭션으로 묶이지 않으므로 그 사이의 쓰기로 total과 data가 어긋날 수 있습니다.
    """
    scoped = base.where(*query.criteria)
    count_stmt = select(func.count()).select_from(scoped.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar_one()

    page_stmt = scoped.order_by(*query.order_by).offset(query.offset).limit(query.limit)
    items = (await db.execute(page_stmt)).scalars().all()
    return ListResult(page=query.page, limit=query.limit, total=total, items=list(items))


def page_payload(result: ListResult, item_schema) -> Dict[str, Any]:
    """ListResult를 Paginated 응답 형태의 dict로 변환합니다."""
    data = [item_schema.model_validate(item) for item in result.items]
    return {
        "page": result.page,
        "limit": result.limit,
        "total": result.total,
        "total_pages": result.total_pages,
        "results": len(data),
        "data": data,
    }


async def list_params(request: Request) -> Dict[str, str]:
    """원본 쿼리 파라미터를 그대로 파이프라인에 넘기기 위한 의존성."""
    return dict(request.query_params)
