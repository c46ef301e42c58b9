from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production", "test"] = "development"
    database_url: str = "sqlite+aiosqlite:///./superfan.db"
    database_echo: bool = False
    secret_key: str = "change-me"

    # Trusted callers (payment capture, fulfillment operators)
    ledger_api_key: str = ""

    # Redemptions
    presale_hold_hours: int = Field(default=24, ge=1)

    # Tap-ins
    tap_in_override_max_points: int = Field(default=500, ge=0)

    # Hold release worker
    hold_release_worker_enabled: bool = False
    hold_release_interval_seconds: int = 300
    hold_release_batch_size: int = 100

    @field_validator("ledger_api_key", mode="before")
    @classmethod
    def _strip_api_key(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
