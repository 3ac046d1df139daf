"""
External integration services.

Handles third-party API calls and turns their failures into typed
errors. Caching is applied by the callers, not here.
"""

from crowdcast.services.aviationstack import AviationStackService
from crowdcast.services.flightaware import FlightAwareClient

__all__ = ['AviationStackService', 'FlightAwareClient']
