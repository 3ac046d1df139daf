"""
Passport-control crowd prediction.

Only flights to or from outside the Schengen area pass through passport
control, so the prediction pipeline is:

1. Fetch: arrivals and departures for the airport's UTC day
2. Filter: keep flights whose other end is a non-Schengen airport
3. Bucket: count flights per UTC hour (NumPy bincount)
4. Summarize: peak hour, peak flights, crowd level, passenger estimate

Schengen membership is approximated by the two-letter ICAO region
prefix of the other airport (e.g. 'LP' Portugal, 'ED' Germany).
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, List, Dict, Tuple

import numpy as np

from crowdcast.config import config
from crowdcast.services.flightaware import FlightAwareClient

logger = logging.getLogger(__name__)

SCHENGEN_ICAO_PREFIXES = frozenset({
    'EB', 'ED', 'EE', 'EF', 'EG', 'EH', 'EI', 'EK', 'EL', 'EN',
    'EP', 'ES', 'ET', 'EV', 'EY', 'LB', 'LC', 'LD', 'LE', 'LF',
    'LG', 'LH', 'LI', 'LJ', 'LK', 'LO', 'LP', 'LQ', 'LR', 'LS',
    'LT', 'LU', 'LW', 'LX', 'LY', 'LZ',
})

PEAK_FLIGHTS_LIMIT = 10

_SCHEDULED_FIELDS = ('scheduled_out', 'scheduled_in', 'scheduled_off', 'scheduled_on')
_ESTIMATED_FIELDS = ('estimated_out', 'estimated_in', 'estimated_off', 'estimated_on')


class CrowdLevel(str, Enum):
    """Crowd level thresholds on non-Schengen flights per day."""
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    VERY_HIGH = 'very-high'


def crowd_level(total_flights: int) -> CrowdLevel:
    if total_flights < 10:
        return CrowdLevel.LOW
    if total_flights < 20:
        return CrowdLevel.MEDIUM
    if total_flights < 35:
        return CrowdLevel.HIGH
    return CrowdLevel.VERY_HIGH


def estimate_passengers(total_flights: int, per_flight: Optional[int] = None) -> int:
    per_flight = per_flight or config.prediction.passengers_per_flight
    return int(total_flights * per_flight)


def is_schengen_icao(code: Optional[str]) -> bool:
    """Check if an ICAO airport code falls in a Schengen region prefix."""
    if not code:
        return False
    return code[:2].upper() in SCHENGEN_ICAO_PREFIXES


def _first(flight: dict, fields: Tuple[str, ...]) -> Optional[str]:
    for name in fields:
        if flight.get(name):
            return flight[name]
    return None


def _place(location: Optional[dict]) -> Optional[str]:
    if not location:
        return None
    return location.get('city') or location.get('code') or location.get('name')


def filter_non_schengen(flights: List[dict], direction: str) -> List[dict]:
    """
    Keep flights whose other end is outside Schengen.

    Args:
        flights: Raw AeroAPI flight records
        direction: 'arrival' (check origin) or 'departure' (check destination)

    Returns:
        Normalized flight dicts for display
    """
    if direction not in ('arrival', 'departure'):
        raise ValueError(f"direction must be 'arrival' or 'departure', got {direction!r}")

    is_arrival = direction == 'arrival'
    result = []

    for flight in flights or []:
        location = flight.get('origin') if is_arrival else flight.get('destination')
        if not location:
            continue

        icao_code = location.get('code_icao') or location.get('code')
        if not icao_code or is_schengen_icao(icao_code):
            continue

        result.append({
            'flightNumber': flight.get('ident') or flight.get('flight_number') or 'Unknown',
            'airline': flight.get('operator') or flight.get('operator_iata') or 'Unknown',
            'origin': _place(flight.get('origin')) if is_arrival else None,
            'destination': None if is_arrival else _place(flight.get('destination')),
            'scheduledTime': _first(flight, _SCHEDULED_FIELDS),
            'estimatedTime': _first(flight, _ESTIMATED_FIELDS),
            'type': direction,
        })

    return result


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp from the API into UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_peak_hour(hour: Optional[int]) -> str:
    if hour is None:
        return 'N/A'
    return f'{hour:02d}:00 - {hour + 1:02d}:00'


def analyze_flights(arrivals: List[dict], departures: List[dict]) -> dict:
    """
    Bucket non-Schengen flights by UTC hour and find the peak.

    Flights without a usable time count toward totalFlights but are not
    placed in any hour. Ties for the peak go to the earliest hour.
    """
    all_flights = arrivals + departures
    total = len(all_flights)

    flights_by_hour: Dict[str, List[dict]] = {}
    hours = []

    for flight in all_flights:
        ts = _parse_time(flight.get('scheduledTime') or flight.get('estimatedTime'))
        if ts is None:
            continue
        hours.append(ts.hour)
        flights_by_hour.setdefault(str(ts.hour), []).append({
            **flight,
            'time': f'{ts.hour:02d}:{ts.minute:02d}',
        })

    counts = np.bincount(np.asarray(hours, dtype=np.int64), minlength=24)

    peak_hour = None
    if hours:
        peak_hour = int(np.argmax(counts))

    return {
        'arrivals': arrivals,
        'departures': departures,
        'totalFlights': total,
        'peakHour': format_peak_hour(peak_hour),
        'peakFlights': flights_by_hour[str(peak_hour)][:PEAK_FLIGHTS_LIMIT] if peak_hour is not None else [],
        'flightsByHour': dict(sorted(flights_by_hour.items(), key=lambda item: int(item[0]))),
        'hourlyCounts': counts.tolist(),
        'crowdLevel': crowd_level(total).value,
        'estimatedPassengers': estimate_passengers(total),
    }


def day_window(date: str) -> Tuple[datetime, datetime]:
    """
    Return the UTC start and end of a YYYY-MM-DD day.

    Raises ValueError for malformed dates.
    """
    day = datetime.strptime(date, '%Y-%m-%d').replace(tzinfo=timezone.utc)
    return day, day + timedelta(days=1) - timedelta(seconds=1)


class CrowdPredictor:
    """
    Builds a crowd prediction for one airport and day.

    The predictor is stateless; caching happens at the API layer so that
    upstream failures are never stored.
    """

    def __init__(self, schedules: Optional[FlightAwareClient] = None):
        self.schedules = schedules or FlightAwareClient.from_config()

    def predict(self, airport: str, date: str) -> dict:
        """
        Predict crowd levels for an airport on a date.

        Raises:
            ValueError: date is not YYYY-MM-DD
            UpstreamError: schedule lookup failed
        """
        start, end = day_window(date)
        airport = airport.strip().upper()

        logger.info(f'Fetching flights for {airport} from {start.isoformat()} to {end.isoformat()}')

        # Arrivals and departures are independent requests
        with ThreadPoolExecutor(max_workers=2) as pool:
            arrivals_future = pool.submit(self.schedules.get_airport_flights, airport, 'arrivals', start, end)
            departures_future = pool.submit(self.schedules.get_airport_flights, airport, 'departures', start, end)
            arrivals_raw = arrivals_future.result()
            departures_raw = departures_future.result()

        arrivals = filter_non_schengen(arrivals_raw, 'arrival')
        departures = filter_non_schengen(departures_raw, 'departure')

        logger.info(
            f'{airport} {date}: {len(arrivals)}/{len(arrivals_raw)} arrivals and '
            f'{len(departures)}/{len(departures_raw)} departures are non-Schengen'
        )

        analysis = analyze_flights(arrivals, departures)
        analysis['airport'] = airport
        analysis['date'] = date
        return analysis
