"""Configuration settings for the offline-first client.

Values are read from environment variables (or a local ``.env`` file) through
pydantic-settings. Import the shared ``settings`` instance rather than building
new ``Settings`` objects in library code.
"""

from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings.

    Attributes:
        ENVIRONMENT: Deployment environment name (local, test, dev, prd)
        LOCAL_DEVELOPMENT: Enables rich console logging
        LOG_LEVEL: Root level for the package logger
        API_BASE_URL: Base URL prepended to relative request URLs
        HTTP_TIMEOUT: Timeout in seconds applied to every network request
        STORAGE_BACKEND: Which document store backs the cache and the queue
        STORAGE_PATH: Root directory for the filesystem backend
        CONNECTIVITY_PROBE_URL: URL probed to decide reachability
        CONNECTIVITY_PROBE_TIMEOUT: Timeout in seconds for a single probe
        CONNECTIVITY_POLL_INTERVAL: Seconds between probes while listening
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=True)

    ENVIRONMENT: str = "local"
    LOCAL_DEVELOPMENT: bool = False
    LOG_LEVEL: str = "INFO"

    API_BASE_URL: Optional[str] = None
    HTTP_TIMEOUT: float = Field(default=30.0, gt=0)

    STORAGE_BACKEND: Literal["filesystem", "memory"] = "filesystem"
    STORAGE_PATH: str = "./local_storage"

    CONNECTIVITY_PROBE_URL: Optional[str] = None
    CONNECTIVITY_PROBE_TIMEOUT: float = Field(default=5.0, gt=0)
    CONNECTIVITY_POLL_INTERVAL: float = Field(default=10.0, gt=0)

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported LOG_LEVEL: {value}")
        return level


settings = Settings()
