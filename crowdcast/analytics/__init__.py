"""
Analytics module for CrowdCast.

Turns airport schedules into passport-control crowd predictions, with
NumPy doing the hourly bucketing.
"""

from crowdcast.analytics.crowd_prediction import (
    CrowdPredictor,
    CrowdLevel,
    analyze_flights,
    filter_non_schengen,
    is_schengen_icao,
)

__all__ = [
    'CrowdPredictor',
    'CrowdLevel',
    'analyze_flights',
    'filter_non_schengen',
    'is_schengen_icao',
]
