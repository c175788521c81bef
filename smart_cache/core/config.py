"""
Smart Cache Configuration

Configuration management with environment variable support.
Implements secure defaults and validation for all settings.
"""

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..constants import CACHE_NAMESPACE

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Cache settings with validation and secure defaults."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # Environment settings
    ENVIRONMENT: str = Field(
        default="development", description="Application environment"
    )

    # Cache behaviour
    CACHE_NAMESPACE: str = Field(
        default=CACHE_NAMESPACE,
        description="Prefix shared by every storage key the cache owns",
    )
    CACHE_DEBUG: Optional[bool] = Field(
        default=None,
        description="Verbose HIT/MISS logging (defaults to on in development)",
    )
    CACHE_SINGLE_FLIGHT: bool = Field(
        default=False,
        description="Share one in-flight fetch per key between concurrent callers",
    )

    # Storage backend
    CACHE_STORE_BACKEND: str = Field(
        default="memory", description="Persistent store backend (memory or redis)"
    )
    CACHE_STORE_SCOPE: str = Field(
        default="", description="Key scope prepended by the store implementation"
    )

    # Redis configuration
    REDIS_URL: str = Field(
        default="redis://localhost:6379", description="Redis connection URL"
    )
    REDIS_MAX_CONNECTIONS: int = Field(
        default=10, ge=1, le=50, description="Redis connection pool size"
    )
    REDIS_CONNECTION_TIMEOUT: float = Field(
        default=10.0, gt=0, le=60, description="Redis connect timeout in seconds"
    )
    REDIS_OPERATION_TIMEOUT: float = Field(
        default=10.0, gt=0, le=60, description="Redis operation timeout in seconds"
    )

    # Development and debugging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_JSON: bool = Field(default=False, description="Render logs as JSON")

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment value."""
        allowed = ["development", "test", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"ENVIRONMENT must be one of: {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of: {allowed}")
        return v.upper()

    @field_validator("CACHE_STORE_BACKEND")
    @classmethod
    def validate_store_backend(cls, v):
        """Validate store backend name."""
        allowed = ["memory", "redis"]
        if v.lower() not in allowed:
            raise ValueError(f"CACHE_STORE_BACKEND must be one of: {allowed}")
        return v.lower()

    @field_validator("CACHE_NAMESPACE")
    @classmethod
    def validate_namespace(cls, v):
        """Validate cache namespace prefix."""
        if not v:
            raise ValueError("CACHE_NAMESPACE cannot be empty")
        if any(char.isspace() for char in v):
            raise ValueError("CACHE_NAMESPACE cannot contain whitespace")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def cache_debug(self) -> bool:
        """Effective debug flag for the cache."""
        if self.CACHE_DEBUG is None:
            return self.is_development
        return self.CACHE_DEBUG


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
