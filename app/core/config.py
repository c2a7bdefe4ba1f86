from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "Poll Betting Settlement"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── DATABASE ───────────
    database_url: str

    # ─────────── SETTLEMENT ───────────
    # Only used by the host service when a poll row carries no rate.
    default_house_commission_rate: Decimal = Decimal("0.05")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
