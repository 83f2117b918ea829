import json
from functools import lru_cache
from typing import Annotated, List, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "LawCaseAI API"
    VERSION: str = "1.0.0"
    DESCRIPTION: str = "Case management, document storage and AI assistance for law firms"
    API_V1_STR: str = "/api"
    ENVIRONMENT: str = "development"

    # CORS
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = [
        "http://localhost:3000",  # Next.js development
    ]

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./lawcaseai.db"

    # Database connection pool settings (ignored for SQLite)
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 minutes
    DB_COMMAND_TIMEOUT: int = 60  # 60 seconds
    SQL_ECHO: bool = False  # Set to True to log SQL queries (development only)
    DB_CREATE_ALL: bool = True

    # Security
    JWT_SECRET: str = "change-this-secret-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_SECONDS: int = 7 * 24 * 60 * 60

    # S3-compatible object storage (AWS S3, Cloudflare R2, MinIO)
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_REGION: str = "auto"
    S3_BUCKET_NAME: str = "lawcaseai-files"
    S3_ENDPOINT_URL: Optional[str] = None
    S3_PUBLIC_URL: Optional[str] = None
    PRESIGNED_URL_EXPIRATION: int = 3600

    # Completion service
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: Optional[str] = None
    OPENAI_MODEL: str = "gpt-3.5-turbo"
    AI_MAX_TOKENS: int = 1000
    AI_TEMPERATURE: float = 0.7
    AI_TIMEOUT_SECONDS: float = 30.0

    # Mail relay
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASS: Optional[str] = None

    # Limits
    MAX_FILE_SIZE: int = 10 * 1024 * 1024  # 10MB
    CHAT_HISTORY_LIMIT: int = 50

    # Rate limiting for /api, per client IP (counters live in Redis)
    REDIS_URL: str = "redis://localhost:6379/0"
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_MAX_REQUESTS: int = 100

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    # Performance
    ENABLE_RESPONSE_COMPRESSION: bool = True

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, str):
            return json.loads(v)
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    @property
    def storage_configured(self) -> bool:
        return bool(self.AWS_ACCESS_KEY_ID and self.AWS_SECRET_ACCESS_KEY)

    @property
    def ai_configured(self) -> bool:
        return bool(self.OPENAI_API_KEY)

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_USER and self.SMTP_PASS)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Build the settings once per process from the environment.
    """
    return Settings()
