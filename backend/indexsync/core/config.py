"""Process-wide settings.

Values are read from the environment (and an optional ``.env`` file). Listener
specific options live in ``indexsync.platform.sync.config.ListenerConfig``.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the indexsync package.

    Attributes:
        ELASTICSEARCH_URL: URL of the Elasticsearch node or cluster
        ELASTICSEARCH_API_KEY: Optional API key for the cluster
        ELASTICSEARCH_TIMEOUT: Request timeout in seconds
        ELASTICSEARCH_MAX_RETRIES: Attempts for connection-level failures
        BULK_CHUNK_SIZE: Number of actions per bulk request
        BULK_REFRESH: Refresh policy passed to the bulk API
        LOG_LEVEL: Root log level for indexsync loggers
        LOCAL_DEVELOPMENT: Human readable logs instead of JSON
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=True)

    ELASTICSEARCH_URL: str = "http://localhost:9200"
    ELASTICSEARCH_API_KEY: Optional[str] = None
    ELASTICSEARCH_TIMEOUT: float = 10.0
    ELASTICSEARCH_MAX_RETRIES: int = Field(3, ge=1)

    BULK_CHUNK_SIZE: int = Field(500, ge=1)
    BULK_REFRESH: bool | str = False

    LOG_LEVEL: str = "INFO"
    LOCAL_DEVELOPMENT: bool = False

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the log level name."""
        level = v.upper()
        if level not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"Invalid LOG_LEVEL: {v}")
        return level

    @field_validator("BULK_REFRESH")
    @classmethod
    def validate_bulk_refresh(cls, v: bool | str) -> bool | str:
        """Only the refresh values accepted by the bulk API are allowed."""
        if isinstance(v, str) and v not in {"true", "false", "wait_for"}:
            raise ValueError(f"Invalid BULK_REFRESH: {v}")
        return v


settings = Settings()
