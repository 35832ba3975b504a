"""Client configuration (settings and environment).

Single source of truth for transport, retry, cache freshness and tenant
defaults. Uses pydantic-settings with .env support; invalid combinations
are rejected at load time.
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment and .env.

    All settings have defaults; validate_ranges rejects values that would
    make retry or cache behavior meaningless.
    """

    # App
    app_name: str = "educore-client"
    app_version: str = "1.0.0"
    debug: bool = False

    # API transport
    api_base_url: str = "http://localhost:5000/api"
    api_timeout_seconds: float = 10.0
    api_retry_attempts: int = 3
    api_retry_delay_seconds: float = 1.0
    api_logging_enabled: bool = False

    # Resource cache freshness (seconds)
    cache_stale_time_seconds: float = 300.0  # 5 minutes
    cache_gc_time_seconds: float = 600.0  # 10 minutes

    # Pagination
    default_page_index: int = 0
    default_page_size: int = 10
    max_page_size: int = 100

    # Tenant defaults used when the token carries no organization/branch claims
    default_organization_id: str = ""
    default_branch_id: str = ""

    # OpenTelemetry
    telemetry_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        """Endpoints are joined as base + '/resource'; no trailing slash allowed."""
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_ranges(self) -> "Settings":
        """Validate retry, cache and pagination ranges."""
        if not self.api_base_url:
            raise ValueError("API_BASE_URL is required. Set in environment or .env file.")
        if self.api_retry_attempts < 1:
            raise ValueError(
                f"api_retry_attempts must be >= 1, got: {self.api_retry_attempts}"
            )
        if self.api_retry_delay_seconds < 0:
            raise ValueError("api_retry_delay_seconds must not be negative")
        if self.api_timeout_seconds <= 0:
            raise ValueError("api_timeout_seconds must be positive")
        if self.cache_gc_time_seconds < self.cache_stale_time_seconds:
            raise ValueError(
                "cache_gc_time_seconds must be >= cache_stale_time_seconds "
                f"({self.cache_gc_time_seconds} < {self.cache_stale_time_seconds})"
            )
        if not 1 <= self.default_page_size <= self.max_page_size:
            raise ValueError(
                f"default_page_size must be between 1 and max_page_size ({self.max_page_size})"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached client settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
