"""Application settings loaded from environment variables."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root (src/bondly/config.py -> project root)
PROJECT_ROOT = Path(__file__).parent.parent.parent

_default_db_path = PROJECT_ROOT / "data" / "bondly.db"


class Settings(BaseSettings):
    """Runtime configuration for the Bondly API."""

    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = f"sqlite+aiosqlite:///{_default_db_path}"
    redis_url: str = "redis://localhost:6379"

    # Advice generation
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    advice_max_tokens: int = 1024
    advice_use_schema: bool = True
    advice_max_retries: int = 2
    advice_backoff_base: float = 1.0
    advice_backoff_cap: float = 60.0
    advice_backoff_floor: float = 1.0

    # Read-after-write compensation when loading responses
    response_poll_attempts: int = 3
    response_poll_delay: float = 0.5

    status_poll_interval: float = 2.0
    retention_hours: int = 24

    cron_secret: str = ""
    environment: str = "development"

    site_url: str = "http://localhost:3000"
    cors_origins_str: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")

    log_level: str = "INFO"

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from a comma-separated string."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings (built once)."""
    return Settings()
