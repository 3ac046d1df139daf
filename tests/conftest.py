"""
Shared fixtures for CrowdCast tests.
"""

from typing import Dict, List, Optional

import pytest

from crowdcast.cache import CacheEntry, ClientCache, ServerCache, SqlPersistentStorage
from crowdcast.errors import CorruptEntryError, PersistenceError


class FakeClock:
    """Manually advanced clock in seconds."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class DictStorage:
    """In-memory PersistentStorage with switchable failures."""

    def __init__(self):
        self.rows: Dict[str, str] = {}
        self.fail_reads = False
        self.fail_writes = 0  # Number of upcoming writes to fail; -1 fails forever
        self.fail_removes = False
        self.fail_lists = False
        self.write_calls = 0

    def read(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise PersistenceError('read failed')
        return self.rows.get(key)

    def write(self, key: str, value: str, expires_at: float) -> None:
        self.write_calls += 1
        if self.fail_writes:
            if self.fail_writes > 0:
                self.fail_writes -= 1
            raise PersistenceError('quota exceeded')
        self.rows[key] = value

    def remove(self, key: str) -> None:
        if self.fail_removes:
            raise PersistenceError('remove failed')
        self.rows.pop(key, None)

    def list_keys(self, prefix: str) -> List[str]:
        if self.fail_lists:
            raise PersistenceError('list failed')
        return [k for k in self.rows if k.startswith(prefix)]

    def list_expired(self, prefix: str, now: float) -> List[str]:
        if self.fail_lists:
            raise PersistenceError('list failed')
        expired = []
        for key in self.list_keys(prefix):
            try:
                entry = CacheEntry.from_json(self.rows[key])
            except CorruptEntryError:
                continue
            if not entry.is_valid(now):
                expired.append(key)
        return expired


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def server_cache(clock):
    return ServerCache(namespace='ns', default_ttl=3600, clock=clock)


@pytest.fixture
def storage_url(tmp_path):
    return f'sqlite:///{tmp_path / "cache.db"}'


@pytest.fixture
def sql_storage(storage_url):
    storage = SqlPersistentStorage(storage_url)
    yield storage
    storage.dispose()


@pytest.fixture
def dict_storage():
    return DictStorage()


@pytest.fixture
def client_cache(sql_storage, clock):
    return ClientCache(storage=sql_storage, namespace='ns', default_ttl=1800, clock=clock)
