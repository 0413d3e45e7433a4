"""
Configuration system for the Catalog API.

Configuration priority (highest to lowest):
1. Environment variables (CLI or shell)
2. .env file
3. Defaults
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration with environment variable support.

    All settings can be configured via environment variables with the same name.
    Example:
        PORT=8080 LOG_LEVEL=DEBUG python run_api.py
    """

    # ============================================================
    # Server Configuration
    # ============================================================

    HOST: str = "0.0.0.0"
    PORT: int = 4000

    # ============================================================
    # Change Feed
    # ============================================================

    # Topic every catalog change is published on
    CATALOG_TOPIC: str = "catalog.changes"

    # Per-listener buffer bound. 0 = unbounded.
    # When bounded, a full listener loses its oldest buffered event.
    SUBSCRIBER_QUEUE_SIZE: int = 0

    # ============================================================
    # Logging Configuration
    # ============================================================

    # Structured JSON logs (for log aggregators) instead of text
    LOG_JSON_FORMAT: bool = False

    LOG_LEVEL: str = "INFO"

    # ============================================================
    # CORS Configuration
    # ============================================================

    CORS_ENABLED: bool = True

    # Comma-separated list of allowed origins
    CORS_ORIGINS: str = "*"

    # ============================================================
    # Rate Limiting Configuration
    # ============================================================

    # DISABLED BY DEFAULT - user must opt-in
    RATE_LIMIT_ENABLED: bool = False

    # Record writes (add, delete, update)
    RATE_LIMIT_WRITE: str = "60/minute"

    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # ============================================================
    # Development/Debug
    # ============================================================

    DEBUG: bool = False

    # Enable API documentation endpoints (/docs, /redoc)
    ENABLE_DOCS: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("SUBSCRIBER_QUEUE_SIZE")
    @classmethod
    def validate_queue_size(cls, v: int) -> int:
        if v < 0:
            raise ValueError("SUBSCRIBER_QUEUE_SIZE must be >= 0")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid LOG_LEVEL '{v}'")
        return level

    @property
    def cors_origins(self) -> list:
        """CORS_ORIGINS split into a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
