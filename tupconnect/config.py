"""Central configuration for the TUPConnect match service.

This module uses Pydantic Settings for validation and env management.
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from config.category_taxonomy import CATEGORY_TAXONOMY, PREFERRED_MODELS


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class OutputShape(str, Enum):
    """Shape of the JSON the model is asked to return."""
    ARRAY = "array"
    OBJECT = "object"


class GeminiSettings(BaseSettings):
    """Generative Language API configuration."""
    model_config = SettingsConfigDict(env_prefix="GEMINI_", env_file=".env", extra="ignore")

    api_key: SecretStr | None = Field(default=None, description="Gemini API key")
    base_url: str = Field(default="https://generativelanguage.googleapis.com/v1beta")
    timeout_seconds: float = Field(default=15.0, gt=0, le=120, description="Per-call timeout")
    max_attempts: int = Field(default=10, ge=1, le=50, description="Cap on fallback candidates")
    preferred_models: list[str] = Field(default_factory=lambda: list(PREFERRED_MODELS), min_length=1)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def has_api_key(self) -> bool:
        return self.api_key is not None and bool(self.api_key.get_secret_value().strip())


class MatchingSettings(BaseSettings):
    """Classification pipeline configuration."""
    model_config = SettingsConfigDict(env_prefix="MATCHING_", env_file=".env", extra="ignore")

    output_shape: OutputShape = Field(default=OutputShape.OBJECT)
    include_negative_keywords: bool = Field(default=True)
    categories: list[str] = Field(default_factory=lambda: list(CATEGORY_TAXONOMY), min_length=1)
    max_input_chars: int = Field(default=2000, ge=50, le=20000)


class LoggingSettings(BaseSettings):
    """Logging configuration."""
    model_config = SettingsConfigDict(env_prefix="LOG_", env_file=".env", extra="ignore")

    level: str = Field(default="INFO")
    format: str = Field(default="json")
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Field(default=Environment.PRODUCTION)
    debug: bool = Field(default=False)
    app_name: str = Field(default="TUPConnect Match Service")
    version: str = Field(default="0.1.0")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "https://tupconnect.vercel.app"],
    )

    # Sub-configs
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def expose_error_details(self) -> bool:
        """Raw provider errors are only returned outside production."""
        return self.debug or self.environment == Environment.DEVELOPMENT


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
