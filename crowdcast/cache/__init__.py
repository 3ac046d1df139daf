"""
Two-tier response cache.

    keys.py      Deterministic namespaced cache keys
    entry.py     Immutable cache entries and their JSON form
    storage.py   Durable key/value layer for the client tier (SQLAlchemy)
    store.py     ExpiringStore plus the ServerCache / ClientCache tiers
    sweeper.py   Background timer that evicts expired entries
    fetch.py     fetch_with_cache read-through helper
"""

from crowdcast.cache.entry import CacheEntry
from crowdcast.cache.fetch import fetch_with_cache
from crowdcast.cache.keys import build_key
from crowdcast.cache.storage import PersistentStorage, SqlPersistentStorage
from crowdcast.cache.store import ExpiringStore, ServerCache, ClientCache, PersistStatus
from crowdcast.cache.sweeper import SweepTimer

__all__ = [
    'CacheEntry',
    'fetch_with_cache',
    'build_key',
    'PersistentStorage',
    'SqlPersistentStorage',
    'ExpiringStore',
    'ServerCache',
    'ClientCache',
    'PersistStatus',
    'SweepTimer',
]
