"""
Read-through helper used at every upstream call site.
"""

import logging
from typing import Any, Callable, Mapping, Optional, TypeVar

from crowdcast.cache.store import ExpiringStore

logger = logging.getLogger(__name__)

T = TypeVar('T')

_MISSING = object()


def fetch_with_cache(
    cache: ExpiringStore,
    prefix: str,
    params: Optional[Mapping[str, Any]],
    fetch: Callable[[], T],
    ttl: Optional[float] = None,
) -> T:
    """
    Return the cached result for (prefix, params), fetching it on a miss.

    On a hit, fetch is not called. On a miss, fetch is called exactly
    once and its result is cached for ttl seconds (store default if None).
    If fetch raises, nothing is cached and the exception propagates, so
    an upstream error is never replayed as data.

    Concurrent misses for the same key are not coalesced; each caller
    may hit the upstream once.
    """
    key = cache.key(prefix, params)

    cached = cache.get(key, _MISSING)
    if cached is not _MISSING:
        logger.debug(f'Cache hit for {key}')
        return cached

    logger.debug(f'Cache miss for {key}, fetching')
    result = fetch()
    cache.set(key, result, ttl)
    return result
