"""
CrowdCast Package.

Passport-control crowd prediction built with Flask, SQLAlchemy, and NumPy.

Modules:
    api/         REST endpoints for predictions, enrichment, and cache status
    analytics/   Non-Schengen filtering and hourly crowd analysis
    cache/       Two-tier response cache (server memory, client memory + SQLite)
    models/      SQLAlchemy model for the client cache mirror
    services/    External API integrations (FlightAware, AviationStack)
    client.py    Dashboard-side API client with a persistent cache
    config.py    Centralized configuration from environment variables
    errors.py    Upstream and persistence error types
"""

__version__ = '1.0.0'
