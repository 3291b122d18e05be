import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .database import engine, async_session_factory
from .db_models import *
from .config import settings
from .exceptions import register_exception_handlers
from .auth.router import router as auth_router
from .authors.router import router as authors_router
from .posts.router import router as posts_router
from .users.router import router as users_router
from .users import service as user_service

# 로깅 설정 (Docker 환경 최적화)
log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
logging.basicConfig(
    level=log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)  # stdout으로 명시적 출력
    ]
)

# 로그 설정 확인
logger = logging.getLogger(__name__)
logger.info(f"Application starting with log level: {settings.LOG_LEVEL}")

@asynccontextmanager
async def lifespan(app: FastAPI):
    # 기동 시 super_admin 계정을 한 번 생성/복구합니다.
    if settings.SEED_SUPER_ADMIN:
        try:
            async with async_session_factory() as session:
                user = await user_service.seed_super_admin(session, settings)
                logger.info(f"Super admin ready: id={user.id} email={user.email}")
        except Exception as e:
            logger.exception(f"Startup seed error: {e}")
            raise

    yield
    await engine.dispose()

app = FastAPI(lifespan=lifespan, title="CMS Admin API")

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# 라우터 등록
app.include_router(auth_router, prefix=settings.API_PREFIX)
app.include_router(authors_router, prefix=settings.API_PREFIX)
app.include_router(posts_router, prefix=settings.API_PREFIX)
app.include_router(users_router, prefix=settings.API_PREFIX)

# 간단한 헬스 체크 엔드포인트 (프로덕션 헬스체크 용도)
@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
