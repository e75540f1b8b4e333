"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from notifier.constants import (
    DEFAULT_QUEUE_NAME,
    REDIS_ERROR_BACKOFF_SECONDS,
    REDIS_POP_TIMEOUT_SECONDS,
    SQS_ERROR_BACKOFF_SECONDS,
    SQS_MAX_MESSAGES,
    SQS_WAIT_TIME_SECONDS,
    TransportKind,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Transport selection
    queue_transport: TransportKind = TransportKind.REDIS
    queue_name: str = DEFAULT_QUEUE_NAME

    # Redis (local development)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_pop_timeout_seconds: int = REDIS_POP_TIMEOUT_SECONDS
    redis_error_backoff_seconds: float = REDIS_ERROR_BACKOFF_SECONDS

    # SQS (production)
    aws_region: str = "us-east-1"
    sqs_endpoint: str | None = None  # LocalStack override
    sqs_queue_url: str | None = None
    sqs_max_messages: int = SQS_MAX_MESSAGES
    sqs_wait_time_seconds: int = SQS_WAIT_TIME_SECONDS
    sqs_error_backoff_seconds: float = SQS_ERROR_BACKOFF_SECONDS

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 3003

    # Observability
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "notification-service"
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
