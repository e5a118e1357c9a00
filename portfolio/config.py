"""Application configuration using pydantic-settings"""
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings
from pydantic import field_validator
import logging

logger = logging.getLogger(__name__)

# Persistent development secret key - stable across restarts
# In production, this MUST be overridden via SECRET_KEY environment variable
_DEV_SECRET_KEY = "dev-secret-key-for-local-development-only-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Property Portfolio"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # API
    API_PREFIX: str = "/api"
    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./portfolio.db"
    DATABASE_ECHO: bool = False

    # JWT Authentication
    # Uses persistent dev key for stability; override with SECRET_KEY env var in production
    SECRET_KEY: str = _DEV_SECRET_KEY
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Password Requirements
    PASSWORD_MIN_LENGTH: int = 12
    PASSWORD_REQUIRE_UPPERCASE: bool = True
    PASSWORD_REQUIRE_LOWERCASE: bool = True
    PASSWORD_REQUIRE_DIGIT: bool = True
    PASSWORD_REQUIRE_SPECIAL: bool = True

    # Places
    DEFAULT_COUNTRY: str = "United States"

    # Deal promotion
    PROMOTED_PROPERTY_TYPE: str = "Land"

    # History entries (mill rates, valuations)
    HISTORY_MIN_YEAR: int = 2000
    HISTORY_MAX_YEAR: int = 2100

    # Tax payments accept years up to this many years past the current one
    TAX_PAYMENT_MIN_YEAR: int = 1900
    TAX_PAYMENT_YEARS_AHEAD: int = 10

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, v: str, info) -> str:
        environment = info.data.get("ENVIRONMENT", "development")
        if environment == "production":
            if v == _DEV_SECRET_KEY:
                raise ValueError(
                    "SECRET_KEY must be set via environment variable in production. "
                    "Do not use the default development key."
                )
            if len(v) < 32:
                raise ValueError("SECRET_KEY must be at least 32 characters in production")
        elif v == _DEV_SECRET_KEY:
            logger.warning(
                "Using default development SECRET_KEY. This is fine for development, "
                "but MUST be overridden in production via the SECRET_KEY environment variable."
            )
        return v

    @field_validator("HISTORY_MAX_YEAR")
    @classmethod
    def validate_history_range(cls, v: int, info) -> int:
        minimum = info.data.get("HISTORY_MIN_YEAR", 2000)
        if v < minimum:
            raise ValueError("HISTORY_MAX_YEAR must not be before HISTORY_MIN_YEAR")
        return v

    @property
    def allowed_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
