import json
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    # 시작 시 한 번만 로드하고 이후에는 변경하지 않습니다.
    model_config = SettingsConfigDict(env_file="../.env", env_file_encoding="utf-8", extra="ignore", frozen=True)

    # FastAPI 애플리케이션 설정
    ENVIRONMENT: str = "development"
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000
    LOG_LEVEL: str = "INFO"  # 로그 레벨 설정
    API_PREFIX: str = "/api"

    # 데이터베이스 설정
    DATABASE_URL: str = "postgresql+asyncpg://cms:postgres@db:5432/cms_db"
    POSTGRES_SSLMODE: str = "disable"

    # JWT 인증 설정
    JWT_SECRET_KEY: str = "your-secret-key"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # CORS 설정
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://localhost",
    ]

    # 이미지가 없는 게시글에 사용되는 기본 이미지
    DEFAULT_POST_IMAGE: str = (
        "https://images.unsplash.com/photo-1486312338219-ce68d2c6f44d?auto=format&fit=crop&w=1200&q=80"
    )

    # 기동 시 생성/복구되는 최상위 관리자 계정
    SEED_SUPER_ADMIN: bool = True
    SUPER_ADMIN_NAME: str = "Super Admin"
    SUPER_ADMIN_EMAIL: str = "superadmin@example.com"
    SUPER_ADMIN_PASSWORD: str = "change-me-now"

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _normalise_cors(cls, value):
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            raw = value.strip()
            if raw.startswith("[") and raw.endswith("]"):
                try:
                    parsed = json.loads(raw)
                    if isinstance(parsed, list):
                        return parsed
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in raw.split(",") if item.strip()]
        raise ValueError("CORS_ORIGINS must be a string or list of strings")

    @field_validator("SUPER_ADMIN_EMAIL")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.strip().lower()


settings = Config()
