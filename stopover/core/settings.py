from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings
from pydantic import validator


class Settings(BaseSettings):
    # API Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = ["*"]

    # Maps API Keys
    GOOGLE_MAPS_API_KEY: str = ""

    # Provider calls
    PROVIDER_TIMEOUT_SECONDS: float = 8.0
    MAX_CONCURRENT_PROVIDER_CALLS: int = 5

    # OpenStreetMap geocoding fallback
    NOMINATIM_ENABLED: bool = True
    NOMINATIM_URL: str = "https://nominatim.openstreetmap.org"
    NOMINATIM_USER_AGENT: str = "stopover/0.1"

    # Stop search defaults
    MAX_WAYPOINTS: int = 8
    MAX_CANDIDATES_PER_CATEGORY: int = 8
    DEFAULT_MAX_DETOUR_MINUTES: float = 5.0
    DEFAULT_MAX_OFF_ROUTE_MILES: float = 1.0
    RELAXATION_MULTIPLIER: float = 1.5
    AVERAGE_DETOUR_SPEED_MPH: float = 30.0

    # Fuel planning
    FUEL_RESERVE_FRACTION: float = 0.2
    FUEL_STOP_WINDOW_MILES: float = 10.0

    # Environment name
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    @validator("ALLOWED_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    class Config:
        case_sensitive = True
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
