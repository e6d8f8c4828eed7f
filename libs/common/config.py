from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production", "test"] = "local"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800
    # Upper bound on waiting for a row lock (invite redemption, user row)
    DB_LOCK_TIMEOUT_MS: int = 5000

    # Supabase
    # Default placeholder keeps local/test runs from failing when Supabase
    # credentials are not required. Real deployments should override via env.
    SUPABASE_JWT_SECRET: str = "test-jwt-secret"

    # Rate limiting
    REDIS_URL: str = "memory://"
    RATE_LIMIT_ENABLED: bool = True

    # Account numbers: PREFIX + 9 digits
    ACCOUNT_NUMBER_PREFIX: str = "CQ"
    ACCOUNT_NUMBER_MAX_ATTEMPTS: int = 5

    # Invite codes
    INVITE_CODE_LENGTH: int = 8
    INVITE_CODE_MAX_ATTEMPTS: int = 5

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
            if v.startswith("sqlite://"):
                return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
