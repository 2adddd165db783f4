"""Application configuration from environment variables."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class ConfigurationError(RuntimeError):
    """Raised when a required external-service setting is missing."""


class Settings(BaseSettings):
    # Application
    app_name: str = "JukenMap"
    debug: bool = False
    log_level: str = "INFO"

    # Data files
    schools_csv_path: Path = _PROJECT_ROOT / "scripts" / "jukenmap_schools_final.csv"
    schools_json_path: Path = _PROJECT_ROOT / "data" / "schools.json"
    geocode_cache_path: Path = _PROJECT_ROOT / "scripts" / "geocode_cache.json"
    school_sheet_csv_url: str | None = None

    # Geocoding (GSI address search)
    gsi_geocoder_url: str = "https://msearch.gsi.go.jp/address-search/AddressSearch"
    geocode_delay_seconds: float = 0.2
    geocode_retry_delay_seconds: float = 0.3
    geocode_checkpoint_interval: int = 50

    # Google Maps (transit times and directions)
    google_maps_api_key: str = ""
    google_maps_base_url: str = "https://maps.googleapis.com/maps/api"
    directions_language: str = "ja"
    directions_region: str = "jp"
    transit_batch_size: int = 25
    transit_batch_delay_seconds: float = 0.5

    # Canonical departure: next Monday 08:00 local time
    departure_timezone: str = "Asia/Tokyo"
    departure_weekday: int = 0
    departure_hour: int = 8

    # Filters
    score_min: int = 30
    score_max: int = 73

    http_timeout: float = 30.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def require_google_maps_key(self) -> str:
        """Return the Google Maps key or fail loudly if it is not configured."""
        if not self.google_maps_api_key:
            raise ConfigurationError(
                "GOOGLE_MAPS_API_KEY is not configured; transit times and directions are unavailable"
            )
        return self.google_maps_api_key


@lru_cache
def get_settings() -> Settings:
    return Settings()
