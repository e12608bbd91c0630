import logging
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    api_base_url: str = Field(default="https://pysoftware.com/v1", alias="API_BASE_URL")
    page_size: int = Field(default=10, alias="PAGE_SIZE")
    request_timeout_seconds: float = Field(default=5.0, alias="REQUEST_TIMEOUT_SECONDS")
    max_concurrency: int = Field(default=10, alias="MAX_CONCURRENCY")

    retry_attempts: int = Field(default=3, alias="RETRY_ATTEMPTS")
    retry_backoff_seconds: float = Field(default=0.5, alias="RETRY_BACKOFF_SECONDS")
    retry_backoff_max_seconds: float = Field(default=5.0, alias="RETRY_BACKOFF_MAX_SECONDS")

    log_level: str = Field(default="WARNING", alias="LOG_LEVEL")

    @model_validator(mode="after")
    def validate_runtime(self) -> "Settings":
        if not self.api_base_url.strip():
            raise ValueError("API_BASE_URL is required")
        if self.page_size < 1:
            raise ValueError("PAGE_SIZE must be >= 1")
        if self.request_timeout_seconds <= 0:
            raise ValueError("REQUEST_TIMEOUT_SECONDS must be > 0")
        if self.max_concurrency < 1:
            raise ValueError("MAX_CONCURRENCY must be >= 1")
        if self.retry_attempts < 1:
            raise ValueError("RETRY_ATTEMPTS must be >= 1")
        if self.retry_backoff_seconds < 0 or self.retry_backoff_max_seconds < 0:
            raise ValueError("retry backoff must be >= 0")
        if self.log_level.upper() not in logging.getLevelNamesMapping():
            raise ValueError(f"LOG_LEVEL {self.log_level!r} is not a logging level")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
