"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Runtime
    environment: str = "development"

    # Cache
    redis_url: str | None = None
    itinerary_cache_ttl_seconds: int = 60 * 60

    # Draft generation / oracles
    ai_provider: str = "qwen"
    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o"
    dashscope_api_key: SecretStr | None = None
    qwen_model: str = "qwen-plus"
    qwen_base_url: str = "https://dashscope.aliyuncs.com/compatible-mode/v1"
    refinement_enabled: bool = True
    internationality_oracle_enabled: bool = False

    # Maps / imagery
    maps_provider: str = "amap"
    amap_rest_key: str | None = None
    google_maps_api_key: str | None = None
    google_maps_proxy_url: str | None = None
    http_timeout_seconds: float = 4.0

    # Confidence thresholds
    low_confidence_threshold: float = 0.45
    refinement_confidence_floor: float = 0.35
    media_confidence_threshold: float = 0.8

    # Media
    max_name_based_photos: int = 3

    # Budget
    default_currency: str = "CNY"

    @property
    def is_production(self) -> bool:
        """Whether degraded-path logging should be quiet."""
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
