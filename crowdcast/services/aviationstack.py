"""
AviationStack service - airline, aircraft and historical flight lookups.

Integrates with AviationStack to get:
- Airline metadata (name, codes, fleet) plus a logo URL
- Aircraft type names and model details
- Historical departures for an airport on a given day

Responses are shaped for the dashboard. Every failure, including an
empty result, is raised so callers never cache it.
"""

import logging
from typing import Optional

import requests

from crowdcast.config import config
from crowdcast.errors import (
    NotFoundError,
    RateLimitedError,
    UnauthorizedError,
    UpstreamError,
    error_for_status,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = 'AviationStack'

LOGO_URL = 'https://content.airhex.com/content/logos/airlines_{iata}_100_100_s.png'

# AviationStack reports some failures as HTTP 200 with an error body
_RATE_LIMIT_CODES = {'usage_limit_reached', 'rate_limit_reached'}
_AUTH_CODES = {'invalid_access_key', 'missing_access_key', 'inactive_user', 'function_access_restricted'}


class AviationStackService:
    """
    Client for AviationStack enrichment endpoints.

    Free tier is 100 requests/month, so every call site goes through the
    response cache with long reference-data TTLs.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = 'http://api.aviationstack.com/v1',
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

        # Track API usage
        self._requests_made = 0

        if not self.api_key:
            logger.warning('AviationStack API key not configured - enrichment lookups disabled')

    @classmethod
    def from_config(cls) -> 'AviationStackService':
        return cls(
            api_key=config.aviationstack.api_key,
            base_url=config.aviationstack.base_url,
            timeout=config.aviationstack.timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _request(self, endpoint: str, params: dict) -> list:
        """Call an endpoint and return its data array."""
        if not self.api_key:
            raise UnauthorizedError(SERVICE_NAME, 'API key not configured')

        query = {'access_key': self.api_key, **params}

        try:
            response = self.session.get(
                f'{self.base_url}/{endpoint}',
                params=query,
                timeout=self.timeout,
            )
            self._requests_made += 1
        except requests.RequestException as e:
            logger.error(f'Failed to reach AviationStack: {e}')
            raise UpstreamError(SERVICE_NAME, str(e)) from e

        if response.status_code != 200:
            logger.warning(f'AviationStack API error: {response.status_code}')
            raise error_for_status(SERVICE_NAME, response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(SERVICE_NAME, 'Malformed JSON response') from e

        if 'error' in data:
            error = data['error'] or {}
            code = error.get('code', '')
            message = error.get('message') or code or 'Unknown error'
            logger.warning(f'AviationStack API error: {code} {message}')
            if code in _RATE_LIMIT_CODES:
                raise RateLimitedError(SERVICE_NAME, message)
            if code in _AUTH_CODES:
                raise UnauthorizedError(SERVICE_NAME, message)
            raise UpstreamError(SERVICE_NAME, message)

        return data.get('data') or []

    def get_airline(self, code: str) -> dict:
        """Look up an airline by IATA/ICAO code or name."""
        airlines = self._request('airlines', {'search': code})
        if not airlines:
            raise NotFoundError(SERVICE_NAME, f'Airline not found: {code}')

        airline = airlines[0]
        iata = airline.get('iata_code')
        return {
            'name': airline.get('airline_name'),
            'iata': iata,
            'icao': airline.get('icao_code'),
            'callsign': airline.get('callsign'),
            'country': airline.get('country_name'),
            'fleetSize': airline.get('fleet_size'),
            'fleetAge': airline.get('fleet_average_age'),
            'founded': airline.get('date_founded'),
            'status': airline.get('status'),
            'logoUrl': LOGO_URL.format(iata=iata) if iata else None,
        }

    def get_aircraft(self, code: str) -> dict:
        """Look up an aircraft type by IATA code, with model details when available."""
        aircraft_types = self._request('aircraft_types', {'search': code})
        if not aircraft_types:
            raise NotFoundError(SERVICE_NAME, f'Aircraft type not found: {code}')

        aircraft = aircraft_types[0]
        return {
            'name': aircraft.get('aircraft_name'),
            'iataCode': aircraft.get('iata_code'),
            'details': self._get_aircraft_details(code),
        }

    def _get_aircraft_details(self, code: str) -> Optional[dict]:
        """Model details are optional; a failed lookup leaves them out."""
        try:
            planes = self._request('airplanes', {'iata_type': code, 'limit': 1})
        except UpstreamError as e:
            logger.info(f'No aircraft details for {code}: {e}')
            return None

        if not planes:
            return None

        plane = planes[0]
        return {
            'modelName': plane.get('model_name'),
            'modelCode': plane.get('model_code'),
            'productionLine': plane.get('production_line'),
            'engines': plane.get('engines_type'),
            'engineCount': plane.get('engines_count'),
        }

    def get_historical(self, airport: str, date: str) -> dict:
        """Departures from an airport on a past date (YYYY-MM-DD)."""
        records = self._request('flights', {
            'flight_date': date,
            'dep_iata': airport,
            'limit': 100,
        })

        flights = []
        for flight in records:
            flights.append({
                'flightNumber': (flight.get('flight') or {}).get('iata'),
                'airline': (flight.get('airline') or {}).get('name'),
                'departure': (flight.get('departure') or {}).get('airport'),
                'arrival': (flight.get('arrival') or {}).get('airport'),
                'scheduled': (flight.get('departure') or {}).get('scheduled'),
                'actual': (flight.get('departure') or {}).get('actual'),
                'status': flight.get('flight_status'),
                'aircraft': (flight.get('aircraft') or {}).get('iata'),
            })

        return {
            'date': date,
            'airport': airport,
            'totalFlights': len(flights),
            'flights': flights,
        }

    @property
    def stats(self) -> dict:
        """Get service statistics."""
        return {
            'requests_made': self._requests_made,
            'api_configured': self.is_configured,
        }
