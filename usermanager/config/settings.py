"""
User Management API - Configuration Settings
Environment-separated settings loaded from the process environment and .env.

The JWT signing secret is read once at startup and never mutated afterwards.
"""

import os
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # Application Settings
    PROJECT_NAME: str = "User Management API"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = Field(default="development", pattern="^(development|staging|production|testing)$")
    DEBUG: bool = Field(default=False)

    # Server Configuration
    HOST: str = Field(default="127.0.0.1")
    PORT: int = Field(default=8000, ge=1, le=65535)
    API_PREFIX: str = Field(default="/api")

    # Security Settings
    ALLOWED_HOSTS: List[str] = Field(default=["localhost", "127.0.0.1"])
    CORS_ORIGINS: List[str] = Field(default=["http://localhost:3000"])

    # JWT Configuration
    JWT_SECRET_KEY: str = Field(min_length=32)
    JWT_ALGORITHM: str = Field(default="HS256")
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24, ge=1)
    JWT_AUDIENCE: str = Field(default="user-management-api")
    JWT_ISSUER: str = Field(default="user-management-auth")

    # Password hashing
    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=31)

    # Database Configuration
    DATABASE_URL: str = Field(...)
    DB_POOL_SIZE: int = Field(default=5, ge=1, le=20)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=3600)

    # Monitoring & Logging
    SENTRY_DSN: Optional[str] = Field(default=None)
    SENTRY_TRACES_SAMPLE_RATE: float = Field(default=0.1, ge=0.0, le=1.0)
    LOG_LEVEL: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    # Testing Configuration
    TESTING: bool = Field(default=False)
    TEST_DATABASE_URL: Optional[str] = Field(default=None)

    @field_validator("JWT_SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Validate the signing secret is sufficiently long."""
        if len(v) < 32:
            raise ValueError("JWT secret key must be at least 32 characters long")
        return v

    @field_validator("API_PREFIX")
    @classmethod
    def validate_api_prefix(cls, v: str) -> str:
        if v and not v.startswith("/"):
            raise ValueError("API_PREFIX must start with '/'")
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.ENVIRONMENT == "development"


class ProductionSettings(Settings):
    """Production-specific settings with enhanced security."""

    DEBUG: bool = False
    LOG_LEVEL: str = "WARNING"

    @field_validator("ALLOWED_HOSTS")
    @classmethod
    def validate_production_hosts(cls, v: List[str]) -> List[str]:
        """Ensure production hosts are properly configured."""
        if "localhost" in v or "127.0.0.1" in v:
            raise ValueError("Production cannot use localhost in ALLOWED_HOSTS")
        return v


class DevelopmentSettings(Settings):
    """Development-specific settings."""

    DEBUG: bool = True
    LOG_LEVEL: str = "DEBUG"


class TestingSettings(Settings):
    """Testing-specific settings."""

    ENVIRONMENT: str = "testing"
    TESTING: bool = True
    DEBUG: bool = True
    LOG_LEVEL: str = "DEBUG"

    # Cheap hashes keep the suite fast
    BCRYPT_ROUNDS: int = 4
    DATABASE_URL: str = "sqlite+aiosqlite:///:memory:"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance based on environment.

    Returns:
        Settings: Configured settings instance
    """
    environment = os.getenv("ENVIRONMENT", "development").lower()

    if environment == "production":
        return ProductionSettings()
    elif environment == "testing":
        return TestingSettings()
    else:
        return DevelopmentSettings()
