import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    PROJECT_NAME: str = "OpenMD API"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    API_V1_STR: str = "/api/v1"

    DATABASE_URL: str = "sqlite+aiosqlite:///./openmd.db"
    REDIS_URL: str = "redis://localhost:6379/0"

    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Server-side session carrying the logged-in user and unlocked resources
    SESSION_COOKIE_NAME: str = "openmd_session"
    SESSION_EXPIRE_DAYS: int = 7

    # When False, notes with neither owner nor author token become read-only
    ALLOW_OWNERLESS_MUTATION: bool = True

    SHARE_CODE_BYTES: int = 6
    PUBLIC_BASE_URL: Optional[str] = None

    ARGON2_TIME_COST: int = 2
    ARGON2_MEMORY_COST: int = 65536
    ARGON2_PARALLELISM: int = 1

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = [".env"]
        case_sensitive = True
        extra = "ignore"


def get_settings() -> Settings:
    """Pick the settings class for the ENVIRONMENT variable"""
    if os.getenv("ENVIRONMENT", "development") == "production":
        from openmd.core.config_prod import ProductionSettings
        return ProductionSettings()
    return Settings()


settings = get_settings()
