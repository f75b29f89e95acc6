from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache
from typing import Optional, List


class Settings(BaseSettings):
    # App
    APP_NAME: str = "SpendSmart Backend"
    DEBUG: bool = False
    API_V1_PREFIX: str = "/v1"

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://localhost:5432/spendsmart"
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10

    # Firebase
    FIREBASE_SERVICE_ACCOUNT: Optional[str] = None  # JSON string
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = None  # File path

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    # Database migrations
    USE_ALEMBIC: bool = True  # If True, skip create_all() in init_db() (Alembic handles migrations)

    # Guest mode (receipts kept in the local on-disk store instead of the database)
    GUEST_MODE_ENABLED: bool = True
    LOCAL_STORAGE_DIR: str = "./data/guests"

    # Dashboard
    DASHBOARD_MONTHS: int = 8
    CACHE_TTL_SECONDS: int = 300

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def convert_database_url(cls, v: str) -> str:
        """Convert postgresql:// to postgresql+asyncpg:// for async support."""
        if v and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Allow extra env variables to be ignored


@lru_cache()
def get_settings() -> Settings:
    return Settings()
