import os
import sys
from pathlib import Path
import pytest

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

# 테스트용 환경 변수 세팅 (cms 모듈 임포트 전에 적용)
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("SEED_SUPER_ADMIN", "false")

# sys.path에 backend 추가하여 'cms' 패키지 검색 가능하게 함
backend_path = Path(__file__).resolve().parents[1]
if str(backend_path) not in sys.path:
    sys.path.insert(0, str(backend_path))

from cms.main import app
from cms.database import Base
from cms.database import get_db as real_get_db
from cms.auth.dependencies import get_token_authority
from cms.users.models import UserRole


@pytest.fixture()
async def test_engine():
    # 메모리 SQLite로 빠른 테스트 (테스트마다 새 DB)
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db(test_engine):
    async_session = sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session


@pytest.fixture()
async def override_db(db):
    async def _get_db():
        yield db
    app.dependency_overrides[real_get_db] = _get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_db):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def authority():
    return get_token_authority()


@pytest.fixture()
def admin_headers(authority):
    return {"Authorization": f"Bearer {authority.issue(1, UserRole.ADMIN)}"}


@pytest.fixture()
def super_admin_headers(authority):
    return {"Authorization": f"Bearer {authority.issue(2, UserRole.SUPER_ADMIN)}"}


@pytest.fixture()
def create_author(client, admin_headers):
    async def _create(name="Jane", email="jane@example.com", **extra):
        res = await client.post("/api/authors", json={"name": name, "email": email, **extra}, headers=admin_headers)
        assert res.status_code == 201, res.text
        return res.json()["data"]
    return _create


@pytest.fixture()
def create_post(client, admin_headers):
    async def _create(author_id, slug="hello-world", **extra):
        payload = {
            "title": "Hello world",
            "slug": slug,
            "content": "Some long enough content.",
            "author": author_id,
            **extra,
        }
        res = await client.post("/api/posts", json=payload, headers=admin_headers)
        assert res.status_code == 201, res.text
        return res.json()["data"]
    return _create
