"""
Expiring response cache shared by the server and client tiers.

One ExpiringStore implementation backs both tiers:

- ServerCache keeps entries in process memory only. Its state starts
  empty on every restart.
- ClientCache keeps the same in-memory layer and mirrors every write to
  a PersistentStorage (SQLite by default). It rebuilds the memory layer
  from storage when constructed, so it survives restarts of the client.

Entries expire at ``created_at + ttl``. Expired entries are removed
lazily on read and eagerly by sweep(), which a SweepTimer can run on an
interval between start() and stop().

Persistence is best-effort. A failed write is logged and reported through
the PersistStatus returned by set(), and the entry stays in memory. The
failure is never raised to the caller.
"""

import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Set

from crowdcast.config import config
from crowdcast.errors import CorruptEntryError, PersistenceError
from crowdcast.cache.entry import CacheEntry
from crowdcast.cache.keys import build_key
from crowdcast.cache.storage import PersistentStorage, SqlPersistentStorage
from crowdcast.cache.sweeper import SweepTimer

logger = logging.getLogger(__name__)


class PersistStatus(str, Enum):
    """Outcome of the durable half of a set()."""
    PERSISTED = 'persisted'
    TRANSIENT_ONLY = 'transient_only'  # Write failed; memory copy still serves reads
    NOT_PERSISTENT = 'not_persistent'  # Store has no durable layer


class ExpiringStore:
    """
    Thread-safe TTL cache with an optional durable mirror.

    All state changes happen under one RLock, so a sweep and a set on
    the same key never interleave. Upstream fetches happen outside the
    store (see fetch_with_cache), so the lock is never held across them.
    """

    def __init__(
        self,
        namespace: str,
        default_ttl: float,
        storage: Optional[PersistentStorage] = None,
        sweep_interval: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        if default_ttl <= 0:
            raise ValueError(f'default_ttl must be positive, got {default_ttl}')

        self.namespace = namespace
        self.default_ttl = default_ttl
        self.storage = storage
        self.sweep_interval = sweep_interval
        self._clock = clock

        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._sweeper: Optional[SweepTimer] = None

        # Statistics
        self._hits = 0
        self._misses = 0
        self._persist_failures = 0
        self._sweeps = 0
        self._last_sweep: Optional[float] = None

        if self.storage is not None:
            self._load_from_storage()

    @property
    def is_persistent(self) -> bool:
        return self.storage is not None

    @property
    def _storage_prefix(self) -> str:
        return f'{self.namespace}:'

    def key(self, prefix: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """Build a key for this store's namespace."""
        return build_key(self.namespace, prefix, params)

    # -------------------------------------------------------------------------
    # Core operations
    # -------------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get the cached payload for key.

        Returns default if the key is unknown or its entry has expired.
        An expired entry is deleted as part of the read.
        """
        with self._lock:
            entry = self._lookup(key, self._clock())

            if entry is None:
                self._misses += 1
                return default

            self._hits += 1
            return entry.payload

    def set(self, key: str, payload: Any, ttl: Optional[float] = None) -> PersistStatus:
        """
        Store payload under key for ttl seconds, replacing any existing entry.

        Uses the store's default_ttl when ttl is None. The durable write
        never raises. The returned status says whether it succeeded.

        Raises ValueError for a non-positive ttl or a key outside this
        store's namespace.
        """
        if ttl is None:
            ttl = self.default_ttl
        if ttl <= 0:
            raise ValueError(f'ttl must be positive, got {ttl}')
        if not self._owns(key):
            raise ValueError(f'Key {key!r} is outside namespace {self.namespace!r}')

        entry = CacheEntry.create(payload, self._clock(), ttl)

        with self._lock:
            self._entries[key] = entry
            if self.storage is None:
                return PersistStatus.NOT_PERSISTENT
            return self._persist(key, entry)

    def has(self, key: str) -> bool:
        """Check if key holds a non-expired entry. Does not count as a hit or miss."""
        with self._lock:
            return self._lookup(key, self._clock()) is not None

    def clear(self, key: Optional[str] = None) -> None:
        """
        Clear one key, or the whole store.

        Clearing the whole store also deletes every persisted entry in
        this namespace. Entries of other namespaces sharing the same
        storage are left alone, and a key outside this namespace is
        ignored.
        """
        with self._lock:
            if key is not None:
                if self._owns(key):
                    self._discard(key)
                return

            count = len(self._entries)
            self._entries.clear()

            if self.storage is not None:
                try:
                    keys = self.storage.list_keys(self._storage_prefix)
                except PersistenceError as e:
                    logger.warning(f'Could not list persisted keys for {self.namespace}: {e}')
                    keys = []
                for persisted_key in keys:
                    self._remove_persisted(persisted_key)
                count = max(count, len(keys))

        logger.info(f'Cleared cache namespace {self.namespace} ({count} entries)')

    def sweep(self) -> int:
        """
        Remove every expired entry.

        Returns the number of distinct keys removed. Only entries already
        expired at the moment of the sweep are touched.
        """
        now = self._clock()

        with self._lock:
            removed = self._sweep_expired(now)
            self._sweeps += 1
            self._last_sweep = now

        if removed:
            logger.info(f'Cache sweep removed {removed} expired entries from {self.namespace}')
        else:
            logger.debug(f'Cache sweep found nothing to remove in {self.namespace}')
        return removed

    # -------------------------------------------------------------------------
    # Sweep timer lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start the periodic sweep timer."""
        if not self.sweep_interval:
            logger.debug(f'No sweep interval configured for {self.namespace}')
            return

        if self._sweeper and self._sweeper.is_running:
            logger.warning(f'Sweeper already running for {self.namespace}')
            return

        self._sweeper = SweepTimer(self.sweep, self.sweep_interval, name=f'sweep-{self.namespace}')
        self._sweeper.start()

    def stop(self) -> None:
        """Stop the periodic sweep timer, if any."""
        if self._sweeper:
            self._sweeper.stop()
            self._sweeper = None

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _owns(self, key: str) -> bool:
        return key.startswith(self._storage_prefix)

    def _lookup(self, key: str, now: float) -> Optional[CacheEntry]:
        """Valid entry for key, reading through to storage on a memory miss."""
        if not self._owns(key):
            return None

        entry = self._entries.get(key)

        if entry is None and self.storage is not None:
            entry = self._read_persisted(key)
            if entry is not None:
                self._entries[key] = entry

        if entry is not None and not entry.is_valid(now):
            self._discard(key)
            logger.debug(f'Cache entry expired: {key}')
            return None

        return entry

    def _sweep_expired(self, now: float) -> int:
        removed: Set[str] = set()

        expired = [k for k, entry in self._entries.items() if not entry.is_valid(now)]
        for key in expired:
            self._discard(key)
            removed.add(key)

        if self.storage is not None:
            removed |= self._sweep_storage(now)

        return len(removed)

    def _sweep_storage(self, now: float) -> Set[str]:
        """Delete persisted entries in this namespace that expired by now."""
        try:
            keys = self.storage.list_expired(self._storage_prefix, now)
        except PersistenceError as e:
            logger.warning(f'Skipping persisted sweep for {self.namespace}: {e}')
            return set()

        for key in keys:
            self._remove_persisted(key)
        return set(keys)

    def _load_from_storage(self) -> None:
        """Rebuild the memory layer from storage, purging stale rows."""
        now = self._clock()

        try:
            keys = self.storage.list_keys(self._storage_prefix)
        except PersistenceError as e:
            logger.warning(f'Starting {self.namespace} cache empty, storage unavailable: {e}')
            return

        loaded = 0
        purged = 0
        for key in keys:
            entry = self._read_persisted(key)
            if entry is None:
                continue
            if entry.is_valid(now):
                self._entries[key] = entry
                loaded += 1
            else:
                self._remove_persisted(key)
                purged += 1

        logger.info(f'Loaded {loaded} cached entries for {self.namespace} ({purged} stale purged)')

    def _read_persisted(self, key: str) -> Optional[CacheEntry]:
        """Read a persisted entry; unreadable data counts as a miss and is removed."""
        try:
            raw = self.storage.read(key)
        except PersistenceError as e:
            logger.warning(f'Persisted read failed for {key}: {e}')
            return None

        if raw is None:
            return None

        try:
            return CacheEntry.from_json(raw)
        except CorruptEntryError as e:
            logger.warning(f'Dropping corrupt cache entry {key}: {e}')
            self._remove_persisted(key)
            return None

    def _persist(self, key: str, entry: CacheEntry) -> PersistStatus:
        try:
            raw = entry.to_json()
        except (TypeError, ValueError) as e:
            logger.warning(f'Payload for {key} is not serializable, keeping it in memory only: {e}')
            return self._degrade(key)

        try:
            self.storage.write(key, raw, entry.expires_at)
            return PersistStatus.PERSISTED
        except PersistenceError as e:
            logger.warning(f'Persisting {key} failed, sweeping and retrying once: {e}')

        self._sweep_expired(self._clock())

        try:
            self.storage.write(key, raw, entry.expires_at)
            return PersistStatus.PERSISTED
        except PersistenceError as e:
            logger.warning(f'Retry failed, keeping {key} in memory only: {e}')
            return self._degrade(key)

    def _degrade(self, key: str) -> PersistStatus:
        self._persist_failures += 1
        # An older persisted value must not resurface after a restart
        self._remove_persisted(key)
        return PersistStatus.TRANSIENT_ONLY

    def _discard(self, key: str) -> None:
        self._entries.pop(key, None)
        if self.storage is not None:
            self._remove_persisted(key)

    def _remove_persisted(self, key: str) -> None:
        try:
            self.storage.remove(key)
        except PersistenceError as e:
            logger.warning(f'Could not remove persisted entry {key}: {e}')

    @property
    def stats(self) -> dict:
        """Get cache statistics."""
        with self._lock:
            total = self._hits + self._misses
            return {
                'namespace': self.namespace,
                'entries': len(self._entries),
                'hits': self._hits,
                'misses': self._misses,
                'hit_rate': self._hits / total if total > 0 else 0,
                'persistent': self.is_persistent,
                'persist_failures': self._persist_failures,
                'sweeps': self._sweeps,
                'last_sweep': self._last_sweep,
                'sweeper': self._sweeper.stats if self._sweeper else {'running': False},
            }


class ServerCache(ExpiringStore):
    """In-process cache for upstream API responses. Empty on every start."""

    def __init__(
        self,
        namespace: Optional[str] = None,
        default_ttl: Optional[float] = None,
        sweep_interval: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(
            namespace=config.cache.namespace if namespace is None else namespace,
            default_ttl=config.cache.server_default_ttl if default_ttl is None else default_ttl,
            storage=None,
            sweep_interval=config.cache.server_sweep_interval if sweep_interval is None else sweep_interval,
            clock=clock,
        )


class ClientCache(ExpiringStore):
    """Dashboard-side cache mirrored to durable storage."""

    def __init__(
        self,
        storage: Optional[PersistentStorage] = None,
        namespace: Optional[str] = None,
        default_ttl: Optional[float] = None,
        sweep_interval: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        if storage is None:
            try:
                storage = SqlPersistentStorage(config.cache.client_storage_url)
            except PersistenceError as e:
                logger.warning(f'Client cache falling back to memory only: {e}')

        super().__init__(
            namespace=config.cache.namespace if namespace is None else namespace,
            default_ttl=config.cache.client_default_ttl if default_ttl is None else default_ttl,
            storage=storage,
            sweep_interval=config.cache.client_sweep_interval if sweep_interval is None else sweep_interval,
            clock=clock,
        )
