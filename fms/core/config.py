# fms/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    DATABASE_URL: str = Field(default="sqlite:///./fms.db")
    APP_NAME: str = "FMS Ticket Engine"
    APP_DESC: str = "Ticket intake, assignment and notification fan-out"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # CORS origins, comma separated
    CORS_ORIGINS: str = "*"

    # Department fallback when a category can't be resolved
    DEFAULT_PRIORITY: str = "medium"
    DEFAULT_SLA_HOURS: int = 24

    # Push gateway; logging-only transport when unset
    PUSH_GATEWAY_URL: str | None = None
    PUSH_GATEWAY_KEY: str | None = None
    PUSH_TIMEOUT_SECONDS: float = 5.0
    NOTIFICATION_TITLE_PREFIX: str = "Autopilot FMS"

    SEED_REFERENCE_DATA: bool = True

    # Pydantic v2 style config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
