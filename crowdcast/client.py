"""
Dashboard client for the CrowdCast API.

Calls the prediction and enrichment endpoints over HTTP and keeps the
responses in a ClientCache, so repeat lookups (and lookups after a
restart) are answered from the local SQLite mirror.

Usage:
    from crowdcast.client import DashboardClient

    with DashboardClient() as client:
        prediction = client.predict('LIS', '2025-12-31')
        print(prediction['crowdLevel'], prediction['peakHour'])
"""

import logging
from typing import Optional

import requests

from crowdcast.cache import ClientCache, fetch_with_cache
from crowdcast.config import config
from crowdcast.errors import UpstreamError, error_for_status

logger = logging.getLogger(__name__)

SERVICE_NAME = 'CrowdCast API'


class DashboardClient:
    """
    HTTP client with a persistent response cache.

    Failed responses raise UpstreamError subclasses and are not cached.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        cache: Optional[ClientCache] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
    ):
        self.base_url = (base_url or config.api_url).rstrip('/')
        self.cache = cache or ClientCache()
        self.session = session or requests.Session()
        self.timeout = timeout

    def __enter__(self) -> 'DashboardClient':
        self.cache.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Stop the cache sweeper and release the HTTP session."""
        self.cache.stop()
        self.session.close()

    def _get_json(self, path: str, params: dict) -> dict:
        url = f'{self.base_url}{path}'

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f'Request to {url} failed: {e}')
            raise UpstreamError(SERVICE_NAME, str(e)) from e

        if response.status_code != 200:
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                message = str(body.get('error', ''))
            else:
                message = response.text[:200]
            logger.warning(f'API error {response.status_code} for {path}: {message}')
            raise error_for_status(SERVICE_NAME, response.status_code, message)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(SERVICE_NAME, 'Malformed JSON response', response.status_code) from e

    def predict(self, airport: str, date: str) -> dict:
        """Crowd prediction for an airport on a YYYY-MM-DD date."""
        params = {'airport': airport.strip().upper(), 'date': date}
        return fetch_with_cache(
            self.cache,
            'prediction',
            params,
            lambda: self._get_json('/api/predict', params),
            ttl=config.cache.schedule_ttl,
        )

    def airline(self, code: str) -> dict:
        params = {'code': code.strip().upper()}
        return fetch_with_cache(
            self.cache,
            'airline',
            params,
            lambda: self._get_json('/api/aviationstack', {'type': 'airline', **params}),
            ttl=config.cache.reference_ttl,
        )

    def aircraft(self, code: str) -> dict:
        params = {'code': code.strip().upper()}
        return fetch_with_cache(
            self.cache,
            'aircraft',
            params,
            lambda: self._get_json('/api/aviationstack', {'type': 'aircraft', **params}),
            ttl=config.cache.reference_ttl,
        )

    def historical(self, airport: str, date: str) -> dict:
        params = {'airport': airport.strip().upper(), 'date': date}
        return fetch_with_cache(
            self.cache,
            'historical',
            params,
            lambda: self._get_json('/api/aviationstack', {'type': 'historical', **params}),
            ttl=config.cache.historical_ttl,
        )
