"""
Application configuration management using Pydantic Settings.
"""
from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    APP_NAME: str = "XENTRO"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = Field(default="development", pattern="^(development|staging|production|test)$")

    # API
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "XENTRO API"
    BACKEND_CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000"]
    )

    # Security
    SECRET_KEY: str = Field(..., min_length=32)
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "xentro-api"
    INSTITUTION_TOKEN_EXPIRE_DAYS: int = 7
    ADMIN_TOKEN_EXPIRE_MINUTES: int = 8 * 60
    INSTITUTION_COOKIE_NAME: str = "institution_token"

    # Session cache
    SESSION_CACHE_BACKEND: str = Field(default="memory", pattern="^(memory|redis)$")
    SESSION_CACHE_TTL_SECONDS: int = 300  # 5 minutes

    # Admin
    ADMIN_EMAIL: str = "admin@xentro.io"
    ADMIN_PASSWORD_HASH: Optional[str] = None

    # Database
    POSTGRES_USER: str = "xentro"
    POSTGRES_PASSWORD: str = "xentro"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "xentro"
    DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)

    # Redis
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None
    REDIS_URL: Optional[str] = Field(default=None, validate_default=True)
    REDIS_MAX_CONNECTIONS: int = 50

    # Email
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM_EMAIL: str = "noreply@xentro.io"
    SMTP_FROM_NAME: str = "XENTRO"
    SMTP_TLS: bool = True

    # URLs
    APP_BASE_URL: str = "http://localhost:3000"
    INSTITUTION_DASHBOARD_PATH: str = "/institution-dashboard"

    # Institution login
    OTP_EXPIRE_MINUTES: int = 10

    # Rate limits (requests per window)
    RATE_LIMIT_APPLICATION_SUBMIT: int = 5
    RATE_LIMIT_VERIFY: int = 20
    RATE_LIMIT_OTP_REQUEST: int = 5
    RATE_LIMIT_OTP_VERIFY: int = 10
    RATE_LIMIT_ADMIN_LOGIN: int = 5
    RATE_LIMIT_WINDOW_MS: int = 60_000

    # Sentry
    SENTRY_DSN: Optional[str] = None
    SENTRY_ENVIRONMENT: Optional[str] = None
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str], info) -> str:
        if v:
            return v
        values = info.data
        user = values.get("POSTGRES_USER")
        password = values.get("POSTGRES_PASSWORD")
        host = values.get("POSTGRES_HOST", "localhost")
        port = values.get("POSTGRES_PORT", 5432)
        db = values.get("POSTGRES_DB", "xentro")
        return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db}"

    @field_validator("REDIS_URL", mode="before")
    @classmethod
    def assemble_redis_connection(cls, v: Optional[str], info) -> str:
        if v:
            return v
        values = info.data
        host = values.get("REDIS_HOST", "localhost")
        port = values.get("REDIS_PORT", 6379)
        db = values.get("REDIS_DB", 0)
        password = values.get("REDIS_PASSWORD")
        if password:
            return f"redis://:{password}@{host}:{port}/{db}"
        return f"redis://{host}:{port}/{db}"

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str):
            return [i.strip() for i in v.split(",")]
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT == "development"

    @property
    def uses_sqlite(self) -> bool:
        """Check if the configured database is SQLite (local runs and tests)."""
        return str(self.DATABASE_URL).startswith("sqlite")

    def get_rate_limits(self) -> Dict[str, Dict[str, Any]]:
        """Get per-endpoint rate limit configuration."""
        window = self.RATE_LIMIT_WINDOW_MS
        return {
            "institution-applications:submit": {"max_requests": self.RATE_LIMIT_APPLICATION_SUBMIT, "window_ms": window},
            "institution-applications:verify": {"max_requests": self.RATE_LIMIT_VERIFY, "window_ms": window},
            "institution-auth:request-otp": {"max_requests": self.RATE_LIMIT_OTP_REQUEST, "window_ms": window},
            "institution-auth:verify-otp": {"max_requests": self.RATE_LIMIT_OTP_VERIFY, "window_ms": window},
            "admin:login": {"max_requests": self.RATE_LIMIT_ADMIN_LOGIN, "window_ms": window},
        }


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings
    """
    return Settings()


# Create a settings instance for easy import
settings = get_settings()
