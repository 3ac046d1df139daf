"""
Configuration management for CrowdCast.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic strings scattered
throughout the codebase.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

HOUR = 60 * 60
DAY = 24 * HOUR


@dataclass(frozen=True)
class FlightAwareConfig:
    """FlightAware AeroAPI configuration for airport schedules."""
    api_key: Optional[str] = os.getenv('FLIGHTAWARE_API_KEY') or None
    base_url: str = 'https://aeroapi.flightaware.com/aeroapi'
    max_pages: int = int(os.getenv('FLIGHTAWARE_MAX_PAGES', '5'))
    timeout_seconds: int = 15

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class AviationStackConfig:
    """AviationStack API configuration for airline/aircraft enrichment."""
    api_key: Optional[str] = os.getenv('AVIATIONSTACK_API_KEY') or None
    base_url: str = 'http://api.aviationstack.com/v1'
    timeout_seconds: int = 10

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class CacheConfig:
    """Response cache settings for both tiers."""
    namespace: str = os.getenv('CACHE_NAMESPACE', 'crowdcast')

    # Server tier: in-process only, rebuilt from zero on restart
    server_default_ttl: float = float(os.getenv('SERVER_CACHE_TTL_SECONDS', str(DAY)))
    server_sweep_interval: float = HOUR

    # Client tier: memory + SQLite mirror
    client_default_ttl: float = float(os.getenv('CLIENT_CACHE_TTL_SECONDS', str(30 * 60)))
    client_sweep_interval: float = 10 * 60
    client_storage_url: str = os.getenv('CLIENT_CACHE_URL', 'sqlite:///crowdcast_cache.db')

    # TTL policy by payload class
    schedule_ttl: float = 30 * 60
    reference_ttl: float = 7 * DAY
    historical_ttl: float = 30 * DAY


@dataclass(frozen=True)
class PredictionConfig:
    """Crowd prediction settings."""
    max_days_ahead: int = int(os.getenv('MAX_DAYS_AHEAD', '7'))
    passengers_per_flight: int = 180  # Mix of short and long haul


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    flightaware: FlightAwareConfig
    aviationstack: AviationStackConfig
    cache: CacheConfig
    prediction: PredictionConfig

    # Where the dashboard client finds the API
    api_url: str

    # Flask settings
    secret_key: str
    debug: bool


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        flightaware=FlightAwareConfig(),
        aviationstack=AviationStackConfig(),
        cache=CacheConfig(),
        prediction=PredictionConfig(),
        api_url=os.getenv('CROWDCAST_API_URL', 'http://localhost:5000').rstrip('/'),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
    )


# Singleton instance
config = load_config()
