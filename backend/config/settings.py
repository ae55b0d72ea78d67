"""
Centralized Settings Management using Pydantic Settings
Process-level configuration with environment variable support.
"""

import logging
from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Use .env file for local development.
    """

    # Application
    APP_NAME: str = "BowSense Bowing Coach API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    ENVIRONMENT: str = Field(default="development", description="Environment: development, staging, production")

    # CORS
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed origins"
    )
    CORS_ALLOW_CREDENTIALS: bool = False

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_SESSIONS: str = "60/minute"
    RATE_LIMIT_CAPTURE: str = "30/minute"
    RATE_LIMIT_GLOBAL: str = "10000/hour"

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="DEBUG, INFO, WARNING, ERROR, CRITICAL")
    LOG_JSON: bool = Field(default=False, description="Emit JSON logs (production)")
    LOG_FILE: Optional[str] = Field(default=None, description="Optional JSON log file")

    # Sessions
    MAX_ACTIVE_SESSIONS: int = Field(default=32, description="Concurrent in-memory sessions")
    DIAGNOSTIC_DURATION_SEC: float = Field(default=15.0, description="Diagnostic capture window")

    @property
    def allowed_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.ENVIRONMENT.lower() == "production"

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Reject unknown logging levels"""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown LOG_LEVEL: {v}")
        return level

    @field_validator("DIAGNOSTIC_DURATION_SEC")
    @classmethod
    def validate_duration(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("DIAGNOSTIC_DURATION_SEC must be positive")
        return v

    @field_validator("MAX_ACTIVE_SESSIONS")
    @classmethod
    def validate_max_sessions(cls, v: int) -> int:
        if v < 1:
            raise ValueError("MAX_ACTIVE_SESSIONS must be at least 1")
        return v

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache for performance - settings are loaded once.
    """
    return Settings()


# Convenience function for direct access
settings = get_settings()
