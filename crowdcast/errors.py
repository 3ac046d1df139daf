"""
Exception hierarchy for CrowdCast.

Upstream errors describe why an external lookup failed and are never
cached. Persistence errors belong to the client cache tier and never
escape the store.
"""

from typing import Optional


class CrowdCastError(Exception):
    """Base exception for CrowdCast."""


class UpstreamError(CrowdCastError):
    """An external API call failed."""

    def __init__(self, service: str, message: str = 'Upstream request failed', status_code: Optional[int] = None):
        self.service = service
        self.message = message
        self.status_code = status_code
        super().__init__(f'{service}: {message}')


class RateLimitedError(UpstreamError):
    """Provider rejected the request for exceeding its quota."""


class NotFoundError(UpstreamError):
    """Requested airport, airline or aircraft does not exist upstream."""


class UnauthorizedError(UpstreamError):
    """API key missing or rejected."""


class InvalidDateRangeError(UpstreamError):
    """Date window is malformed or outside what the provider accepts."""


class PersistenceError(CrowdCastError):
    """Persistent cache storage could not complete an operation."""


class CorruptEntryError(CrowdCastError):
    """A persisted cache entry could not be decoded."""


def error_for_status(service: str, status_code: int, message: str = '') -> UpstreamError:
    """Build the UpstreamError subclass matching an HTTP status code."""
    message = message or f'HTTP {status_code}'
    if status_code == 429:
        cls = RateLimitedError
    elif status_code == 404:
        cls = NotFoundError
    elif status_code in (401, 403):
        cls = UnauthorizedError
    elif status_code == 400:
        cls = InvalidDateRangeError
    else:
        cls = UpstreamError
    return cls(service, message, status_code=status_code)
