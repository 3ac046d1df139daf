"""
API module for CrowdCast.

Provides REST endpoints for:
- Crowd predictions
- Airline/aircraft/historical enrichment
- Cache status and maintenance
"""

from crowdcast.api.cache import cache_bp
from crowdcast.api.enrichment import enrichment_bp
from crowdcast.api.predict import predict_bp

__all__ = ['cache_bp', 'enrichment_bp', 'predict_bp']
