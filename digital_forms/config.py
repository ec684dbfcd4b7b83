from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Project Info
    PROJECT_NAME: str = "Digital Forms API"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    ENVIRONMENT: str = Field(default="development", description="Environment: development, staging, production")

    # Database
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./data/digital_forms.db",
        description="Database URL (SQLite or PostgreSQL)"
    )
    DB_POOL_SIZE: int = Field(default=5, description="Database connection pool size")
    DB_MAX_OVERFLOW: int = Field(default=10, description="Database max overflow connections")
    DB_POOL_TIMEOUT: int = Field(default=30, description="Seconds to wait for a connection or a database lock")
    DB_POOL_RECYCLE: int = Field(default=3600, description="Database pool recycle time in seconds")

    # Security - JWT
    SECRET_KEY: str = Field(..., description="Secret key for session token signing")
    ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    ACCESS_TOKEN_EXPIRE_HOURS: int = Field(default=24, description="Session token lifetime in hours")

    @field_validator('SECRET_KEY')
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        if len(v) < 32:
            raise ValueError('SECRET_KEY must be at least 32 characters')
        return v

    # Security - Passwords
    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=31, description="bcrypt cost factor")

    # Bootstrap admin (created on first start when no admin exists)
    BOOTSTRAP_ADMIN_USERNAME: str = Field(default="admin")
    BOOTSTRAP_ADMIN_PASSWORD: str = Field(..., min_length=8, description="Initial admin password")
    BOOTSTRAP_ADMIN_EMAIL: str = Field(default="admin@digitalforms.com")
    BOOTSTRAP_ADMIN_FULL_NAME: str = Field(default="System Administrator")

    # Form links
    DEFAULT_LINK_EXPIRY_DAYS: int = Field(default=14, ge=0, description="Link lifetime when none is requested")
    MAX_LINK_EXPIRY_DAYS: int = Field(default=365, description="Upper bound for a requested link lifetime")
    PUBLIC_FORM_BASE_URL: str = Field(
        default="http://localhost:8000/form",
        description="Base URL of the public form page; the link code is appended"
    )

    # Security - CORS
    BACKEND_CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        description="Allowed CORS origins"
    )
    MAX_REQUEST_SIZE: int = Field(default=1048576, description="Max request body size in bytes (default 1MB)")

    # Server Configuration
    WORKERS: int = Field(default=4, description="Number of Uvicorn workers")
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8000, description="Server port")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    LOG_DIR: str = Field(default="./logs", description="Directory for log files")
    LOG_RETENTION_DAYS: int = Field(default=30, description="Number of days to keep log files")
    LOG_ENABLE_REQUEST_LOGGING: bool = Field(default=True, description="Enable HTTP request/response logging")

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = Field(default=True, description="Enable rate limiting")
    RATE_LIMIT_DEFAULT: str = Field(default="100/minute", description="Default rate limit")
    RATE_LIMIT_AUTH: str = Field(default="5/minute", description="Rate limit for login")
    RATE_LIMIT_PUBLIC: str = Field(default="30/minute", description="Rate limit for public form lookup and submission")
    RATE_LIMIT_STORAGE_URI: str = Field(default="memory://", description="Rate limit storage URI")

    def get_log_level(self) -> str:
        """Get log level based on environment."""
        if self.ENVIRONMENT.lower() in ["development", "dev", "test"]:
            return "DEBUG"
        return self.LOG_LEVEL.upper()

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


settings = Settings()
