"""
Application configuration settings.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal, Self


# Fallback signing key for local development only
DEV_JWT_SECRET = "ansac-development-secret-change-me"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "ANSAC API"
    APP_VERSION: str = "1.0.0"
    ENV: Literal["development", "production", "test"] = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API
    API_V1_PREFIX: str = "/api/v1"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Security
    JWT_SECRET_KEY: str = Field(
        default=DEV_JWT_SECRET,
        description="JWT signing secret key (must be overridden in production)",
    )
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 1 day
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    # Only trust X-Forwarded-For when running behind a known reverse proxy
    TRUST_PROXY_HEADERS: bool = False

    # Sentry Error Tracking
    SENTRY_DSN: str = Field(
        default="",
        description="Sentry DSN for error tracking (leave empty to disable)",
    )
    SENTRY_TRACES_SAMPLE_RATE: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Sentry traces sample rate (0.0-1.0, 0.1 = 10% of transactions)",
    )

    # File uploads
    UPLOAD_DIR: str = "public/uploads"
    UPLOAD_URL_PATH: str = "/uploads"
    UPLOAD_MAX_BYTES: int = 5 * 1024 * 1024  # 5MB
    UPLOAD_ALLOWED_TYPES: List[str] = ["image/jpeg", "image/png", "image/webp"]
    # Stored images are re-encoded as WebP no wider than this
    UPLOAD_IMAGE_MAX_WIDTH: int = 1200
    UPLOAD_IMAGE_QUALITY: int = 80

    # Request body limit (multipart uploads need headroom over UPLOAD_MAX_BYTES)
    MAX_REQUEST_BODY_BYTES: int = 6 * 1024 * 1024

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = False
    RATE_LIMIT_DEFAULT_LIMIT: int = 100  # requests
    RATE_LIMIT_DEFAULT_WINDOW: int = 15 * 60  # seconds
    # Storage backend: "memory" for single-worker, "redis" for multi-worker deployments
    RATE_LIMIT_STORAGE: Literal["memory", "redis"] = "memory"
    RATE_LIMIT_REDIS_URL: str = "redis://localhost:6379/0"

    # Response cache for public listings
    CACHE_ENABLED: bool = True
    CACHE_REDIS_URL: str = ""
    CACHE_TTL_SECONDS: int = 300
    CACHE_KEY_PREFIX: str = "ansac:"

    # IP blacklist
    IP_BLACKLIST_ENABLED: bool = False
    IP_BLACKLIST_FILE: str = "data/blacklist.json"

    # Health checks
    INCLUDE_SYSTEM_INFO: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_production_secrets(self) -> Self:
        """Refuse to start in production with the development signing key."""
        if self.ENV == "production" and self.JWT_SECRET_KEY == DEV_JWT_SECRET:
            raise ValueError(
                "JWT_SECRET_KEY must be set to a unique value in production."
            )
        if self.ACCESS_TOKEN_EXPIRE_MINUTES <= 0:
            raise ValueError("ACCESS_TOKEN_EXPIRE_MINUTES must be positive")
        return self


settings = Settings()
