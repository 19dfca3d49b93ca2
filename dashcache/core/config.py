"""Environment-driven configuration with Pydantic v2."""

from typing import List, Optional
from pathlib import Path
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from dashcache.constants import DEFAULT_SWEEP_INTERVAL_SECONDS


class Settings(BaseSettings):
    """Application settings driven entirely by environment variables."""

    # Server Configuration
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8020, ge=1024, le=65535)
    debug: bool = Field(default=False)
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:5173"])

    # Durable cache tier (SQLite via aiosqlite by default)
    cache_database_url: Optional[str] = Field(default="sqlite+aiosqlite:///./data/widget_cache.db")
    cache_durable_enabled: bool = Field(default=True)
    cache_database_echo: bool = Field(default=False)

    # Sweep of expired entries, in seconds
    cache_sweep_interval: float = Field(default=DEFAULT_SWEEP_INTERVAL_SECONDS, gt=0)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    @field_validator("cache_database_url")
    @classmethod
    def validate_cache_database_url(cls, v):
        """Ensure database directory exists for SQLite."""
        if v and v.startswith("sqlite") and ":///" in v:
            db_path = v.split("///", 1)[1]
            if db_path and db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug

    @property
    def durable_configured(self) -> bool:
        """Durable tier is enabled and has a backend URL."""
        return self.cache_durable_enabled and bool(self.cache_database_url)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "env_parse_none_str": "none",
    }
