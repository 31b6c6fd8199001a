from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    # App Settings
    app_name: str = "FlyTicket Fare Watch"
    env: str = "development"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./fare_watch.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Third Party: provider credentials (a provider is enabled only when its credentials are set)
    serpapi_key: str = ""
    flightapi_key: str = ""
    rapidapi_key: str = ""
    amadeus_base_url: str = "https://test.api.amadeus.com"
    amadeus_api_key: str = ""
    amadeus_api_secret: str = ""

    # Rotation order, first entry is tried first on a fresh process
    provider_order: List[str] = ["google_flights", "flightapi", "skyscanner", "amadeus"]
    provider_timeout_seconds: float = 30.0
    attempt_delay_seconds: float = 0.5

    # Price cache
    cache_ttl_minutes: int = 30
    default_currency: str = "VND"

    # Price checker sweep
    sweep_interval_minutes: int = 15
    sweep_group_delay_seconds: float = 1.0

    # CORS
    cors_origins: str = ""  # Comma-separated production origins

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

settings = Settings()
