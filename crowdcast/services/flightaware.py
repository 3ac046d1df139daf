"""
FlightAware AeroAPI client for airport schedules.

Fetches scheduled arrivals or departures for one airport within a time
window:

    GET /airports/{airport}/flights/arrivals?start=...&end=...&max_pages=N
    GET /airports/{airport}/flights/departures?start=...&end=...&max_pages=N

Authentication is the x-apikey header. Non-200 responses are raised as
UpstreamError subclasses so the cache never stores them.
"""

import logging
from datetime import datetime
from typing import Optional, List

import requests

from crowdcast.config import config
from crowdcast.errors import UnauthorizedError, UpstreamError, error_for_status

logger = logging.getLogger(__name__)

SERVICE_NAME = 'FlightAware'

DIRECTIONS = ('arrivals', 'departures')


class FlightAwareClient:
    """
    Client for the FlightAware AeroAPI airport endpoints.

    Handles:
    - API key header authentication
    - ISO 8601 time windows
    - Mapping HTTP failures to typed errors
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = 'https://aeroapi.flightaware.com/aeroapi',
        max_pages: int = 5,
        timeout: float = 15,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.max_pages = max_pages
        self.timeout = timeout
        self.session = session or requests.Session()

        if not self.api_key:
            logger.warning('FlightAware API key not configured - schedule lookups disabled')

    @classmethod
    def from_config(cls) -> 'FlightAwareClient':
        """Create client from application configuration."""
        return cls(
            api_key=config.flightaware.api_key,
            base_url=config.flightaware.base_url,
            max_pages=config.flightaware.max_pages,
            timeout=config.flightaware.timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def get_airport_flights(
        self,
        airport: str,
        direction: str,
        start: datetime,
        end: datetime,
    ) -> List[dict]:
        """
        Fetch raw flight records for an airport.

        Args:
            airport: ICAO or IATA airport code (e.g. 'LPPT' or 'LIS')
            direction: 'arrivals' or 'departures'
            start: Window start (timezone-aware)
            end: Window end (timezone-aware)

        Returns:
            List of raw AeroAPI flight dicts

        Raises:
            UpstreamError (or a subclass) on any failure
        """
        if direction not in DIRECTIONS:
            raise ValueError(f'direction must be one of {DIRECTIONS}, got {direction!r}')

        if not self.api_key:
            raise UnauthorizedError(SERVICE_NAME, 'API key not configured')

        url = f'{self.base_url}/airports/{airport}/flights/{direction}'
        params = {
            'start': start.isoformat(),
            'end': end.isoformat(),
            'max_pages': self.max_pages,
        }
        headers = {
            'x-apikey': self.api_key,
            'Accept': 'application/json; charset=UTF-8',
        }

        logger.debug(f'Fetching {direction}: {url} params={params}')

        try:
            response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.error(f'FlightAware API timeout for {airport} {direction}')
            raise UpstreamError(SERVICE_NAME, 'Request timed out') from e
        except requests.exceptions.RequestException as e:
            logger.error(f'FlightAware request failed: {e}')
            raise UpstreamError(SERVICE_NAME, str(e)) from e

        if response.status_code != 200:
            if response.status_code == 429:
                logger.warning('FlightAware rate limit exceeded')
            else:
                logger.error(f'FlightAware API error: {response.status_code} {response.text[:200]}')
            raise error_for_status(SERVICE_NAME, response.status_code, response.text[:200])

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(SERVICE_NAME, 'Malformed JSON response', response.status_code) from e

        # Response key depends on the endpoint
        flights = data.get('arrivals') or data.get('departures') or data.get('flights') or []

        logger.info(f'Received {len(flights)} {direction} for {airport}')
        return flights
