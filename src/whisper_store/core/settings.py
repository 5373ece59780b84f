"""Application settings and configuration.

This module defines all configuration options for the whisper-store
persistence layer. Settings are loaded from environment variables with
sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables.

    Every service accepts explicit values and only falls back to these when
    a caller does not supply one, so tests can build isolated instances.
    """

    # Application metadata
    app_name: str = Field(default="whisper-store", alias="WHISPER_APP_NAME")
    log_level: str = Field(default="INFO", alias="WHISPER_LOG_LEVEL")

    # Durable key-value store
    store_backend: str = Field(default="sql", alias="WHISPER_STORE_BACKEND")
    database_url: str = Field(
        default="sqlite:///./whisper_store.db", alias="WHISPER_DATABASE_URL"
    )
    sql_debug: bool = Field(default=False, alias="WHISPER_SQL_DEBUG")
    redis_url: str = Field(default="redis://localhost:6379", alias="WHISPER_REDIS_URL")
    redis_key_prefix: str = Field(default="", alias="WHISPER_REDIS_KEY_PREFIX")

    # Outbound queue retry policy (milliseconds)
    retry_base_delay_ms: int = Field(default=1000, alias="WHISPER_RETRY_BASE_DELAY_MS")
    retry_max_delay_ms: int = Field(default=32_000, alias="WHISPER_RETRY_MAX_DELAY_MS")
    retry_max_attempts: int = Field(default=6, alias="WHISPER_RETRY_MAX_ATTEMPTS")

    # Queue processor
    queue_interval_seconds: float = Field(
        default=30.0, alias="WHISPER_QUEUE_INTERVAL_SECONDS"
    )
    queue_drop_exhausted: bool = Field(
        default=False, alias="WHISPER_QUEUE_DROP_EXHAUSTED"
    )

    # Ephemeral caches
    translation_cache_ttl_ms: int = Field(
        default=60 * 60 * 1000, alias="WHISPER_TRANSLATION_CACHE_TTL_MS"
    )
    translation_cache_max_entries: int = Field(
        default=100, alias="WHISPER_TRANSLATION_CACHE_MAX_ENTRIES"
    )
    translation_cache_evict_fraction: float = Field(
        default=0.2, alias="WHISPER_TRANSLATION_CACHE_EVICT_FRACTION"
    )
    detection_cache_ttl_ms: int = Field(
        default=5 * 60 * 1000, alias="WHISPER_DETECTION_CACHE_TTL_MS"
    )
    detection_cache_max_entries: int = Field(
        default=500, alias="WHISPER_DETECTION_CACHE_MAX_ENTRIES"
    )
    detection_sample_size: int = Field(default=5, alias="WHISPER_DETECTION_SAMPLE_SIZE")
    detection_default_language: str = Field(
        default="English", alias="WHISPER_DETECTION_DEFAULT_LANGUAGE"
    )
    qa_sessions_max: int = Field(default=100, alias="WHISPER_QA_SESSIONS_MAX")
    message_cache_ttl_ms: int = Field(
        default=24 * 60 * 60 * 1000, alias="WHISPER_MESSAGE_CACHE_TTL_MS"
    )
    message_cache_limit: int = Field(default=30, alias="WHISPER_MESSAGE_CACHE_LIMIT")
    display_name_cache_ttl_ms: int = Field(
        default=7 * 24 * 60 * 60 * 1000, alias="WHISPER_DISPLAY_NAME_CACHE_TTL_MS"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        populate_by_name=True,
        extra="ignore",
    )


settings = Settings()
