from dataclasses import dataclass
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class CacheTTL:
    """Per-resource time-to-live table, in seconds."""
    games: int = 5 * 60
    pricing: int = 5 * 60
    availability: int = 60
    activity: int = 2 * 60
    gift_card: int = 30


class Settings(BaseSettings):
    otc_key: str = Field(default="", alias="OTC_KEY")
    otc_base_url: str = Field(default="https://connect.offthecouch.io", alias="OTC_BASE_URL")
    otc_timeout_seconds: float = Field(default=10.0, alias="OTC_TIMEOUT_SECONDS")
    allowed_origins: str = Field(default="http://localhost:3000", alias="ALLOWED_ORIGINS")
    site_timezone: str = Field(default="America/New_York", alias="SITE_TIMEZONE")
    availability_window_days: int = Field(default=90, alias="AVAILABILITY_WINDOW_DAYS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    cache_ttl_games: int = Field(default=300, alias="CACHE_TTL_GAMES")
    cache_ttl_pricing: int = Field(default=300, alias="CACHE_TTL_PRICING")
    cache_ttl_availability: int = Field(default=60, alias="CACHE_TTL_AVAILABILITY")
    cache_ttl_activity: int = Field(default=120, alias="CACHE_TTL_ACTIVITY")
    cache_ttl_gift_card: int = Field(default=30, alias="CACHE_TTL_GIFT_CARD")

    model_config = SettingsConfigDict(env_file=(".env", ".env.local"), extra="ignore", populate_by_name=True)

    @property
    def allowed_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def otc_configured(self) -> bool:
        return bool(self.otc_key.strip())

    def cache_ttl(self) -> CacheTTL:
        return CacheTTL(
            games=self.cache_ttl_games,
            pricing=self.cache_ttl_pricing,
            availability=self.cache_ttl_availability,
            activity=self.cache_ttl_activity,
            gift_card=self.cache_ttl_gift_card,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
