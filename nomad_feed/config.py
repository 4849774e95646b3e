"""Feed configuration pulled from environment variables via pydantic."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the realtime city feed."""
    model_config = SettingsConfigDict(env_prefix="NOMAD_", extra="ignore")

    # No key means demo mode: every reading comes from the synthetic generator.
    openweather_api_key: str | None = None
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5"
    request_timeout_seconds: float = 10.0

    weather_ttl_seconds: int = 300
    air_quality_ttl_seconds: int = 600
    cache_max_entries: int = 100
    cache_redis_url: str | None = None
    cache_redis_prefix: str = "nomad_feed:"

    # Pacing for multi-city fetches; tuned for the free-tier rate limit.
    weather_batch_size: int = 5
    air_quality_batch_size: int = 3
    weather_batch_delay_seconds: float = 1.0
    air_quality_batch_delay_seconds: float = 1.5

    log_level: str = "INFO"

    @field_validator("openweather_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("openweather_api_key", mode="after")
    @classmethod
    def blank_key_is_none(cls, v: str | None) -> str | None:
        """Treat an empty NOMAD_OPENWEATHER_API_KEY as unset."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def upstream_enabled(self) -> bool:
        """True when upstream fetches should be attempted at all."""
        return self.openweather_api_key is not None


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4, exclude={'openweather_api_key'})}")
