"""
Tests for the persistent (client) tier of ExpiringStore.
"""

import json

from crowdcast.cache import CacheEntry, ClientCache, PersistStatus, SqlPersistentStorage

KEY = 'ns:prediction:airport=LIS&date=2025-12-31'


class TestWriteThrough:

    def test_set_persists_entry(self, client_cache, sql_storage):
        status = client_cache.set(KEY, {'totalFlights': 42}, 1800)

        assert status == PersistStatus.PERSISTED
        entry = CacheEntry.from_json(sql_storage.read(KEY))
        assert entry.payload == {'totalFlights': 42}
        assert entry.expires_at == 1800

    def test_survives_restart(self, client_cache, storage_url, clock):
        client_cache.set(KEY, {'totalFlights': 42}, 1800)

        reopened_storage = SqlPersistentStorage(storage_url)
        try:
            restarted = ClientCache(storage=reopened_storage, namespace='ns', clock=clock)
            assert restarted.stats['entries'] == 1
            assert restarted.get(KEY) == {'totalFlights': 42}
        finally:
            reopened_storage.dispose()

    def test_startup_purges_expired_entries(self, client_cache, sql_storage, clock):
        client_cache.set('ns:old:', 'stale', 10)
        client_cache.set('ns:fresh:', 'ok', 100)
        clock.advance(50)

        restarted = ClientCache(storage=sql_storage, namespace='ns', clock=clock)

        assert sql_storage.list_keys('ns:') == ['ns:fresh:']
        assert restarted.stats['entries'] == 1

    def test_reads_through_to_storage(self, sql_storage, clock):
        reader = ClientCache(storage=sql_storage, namespace='ns', clock=clock)
        writer = ClientCache(storage=sql_storage, namespace='ns', clock=clock)

        writer.set(KEY, 'payload', 60)

        assert reader.get(KEY) == 'payload'

    def test_expired_persisted_entry_deleted_on_read(self, client_cache, sql_storage, clock):
        client_cache.set(KEY, 'payload', 60)
        clock.advance(60)

        assert client_cache.get(KEY) is None
        assert sql_storage.read(KEY) is None

    def test_corrupt_entry_treated_as_miss_and_removed(self, client_cache, sql_storage):
        sql_storage.write('ns:broken:', '{"payload": ', 1e12)

        assert client_cache.get('ns:broken:') is None
        assert sql_storage.read('ns:broken:') is None

    def test_startup_drops_corrupt_entries(self, sql_storage, clock):
        sql_storage.write('ns:broken:', 'not json', 1e12)

        ClientCache(storage=sql_storage, namespace='ns', clock=clock)

        assert sql_storage.read('ns:broken:') is None


class TestClear:

    def test_clear_key_removes_persisted_copy(self, client_cache, sql_storage):
        client_cache.set('ns:a:', 1)
        client_cache.set('ns:b:', 2)

        client_cache.clear('ns:a:')

        assert sql_storage.read('ns:a:') is None
        assert sql_storage.read('ns:b:') is not None

    def test_clear_all_leaves_other_namespaces(self, sql_storage, clock):
        ours = ClientCache(storage=sql_storage, namespace='ours', clock=clock)
        theirs = ClientCache(storage=sql_storage, namespace='theirs', clock=clock)
        ours.set(ours.key('airline', {'code': 'TP'}), 'tap')
        theirs.set(theirs.key('airline', {'code': 'TP'}), 'tap')

        ours.clear()

        assert sql_storage.list_keys('ours:') == []
        assert sql_storage.list_keys('theirs:') == ['theirs:airline:code=TP']
        assert theirs.get('theirs:airline:code=TP') == 'tap'

    def test_clear_all_treats_namespace_literally(self, sql_storage, clock):
        # '_' is a LIKE wildcard; 'n_' must not match 'nx'
        wildcard = ClientCache(storage=sql_storage, namespace='n_', clock=clock)
        other = ClientCache(storage=sql_storage, namespace='nx', clock=clock)
        other.set('nx:airline:', 'kept')

        wildcard.clear()

        assert sql_storage.read('nx:airline:') is not None


class TestSweep:

    def test_sweep_removes_persisted_leftovers(self, client_cache, sql_storage, clock):
        stale = CacheEntry.create('old', now=0, ttl=5)
        sql_storage.write('ns:leftover:', stale.to_json(), stale.expires_at)
        client_cache.set('ns:fresh:', 'new', 100)
        clock.advance(10)

        assert client_cache.sweep() == 1
        assert sql_storage.list_keys('ns:') == ['ns:fresh:']

    def test_sweep_counts_memory_and_storage_once(self, client_cache, clock):
        client_cache.set('ns:a:', 1, 10)
        clock.advance(10)

        assert client_cache.sweep() == 1


class TestDegradedPersistence:
    """Storage failures never reach the caller."""

    def test_write_failure_falls_back_to_memory(self, dict_storage, clock):
        cache = ClientCache(storage=dict_storage, namespace='ns', clock=clock)
        dict_storage.fail_writes = -1

        status = cache.set(KEY, 'payload')

        assert status == PersistStatus.TRANSIENT_ONLY
        assert cache.get(KEY) == 'payload'
        assert cache.stats['persist_failures'] == 1

    def test_write_retried_once_after_sweep(self, dict_storage, clock):
        cache = ClientCache(storage=dict_storage, namespace='ns', clock=clock)
        stale = CacheEntry.create('old', now=0, ttl=1)
        dict_storage.rows['ns:stale:'] = stale.to_json()
        clock.advance(5)
        dict_storage.fail_writes = 1

        status = cache.set(KEY, 'payload')

        assert status == PersistStatus.PERSISTED
        assert dict_storage.write_calls == 2
        assert 'ns:stale:' not in dict_storage.rows
        assert KEY in dict_storage.rows

    def test_failed_write_drops_older_persisted_copy(self, dict_storage, clock):
        cache = ClientCache(storage=dict_storage, namespace='ns', clock=clock)
        cache.set(KEY, 'v1')
        dict_storage.fail_writes = -1

        cache.set(KEY, 'v2')

        assert KEY not in dict_storage.rows
        assert cache.get(KEY) == 'v2'

    def test_unserializable_payload_stays_in_memory(self, dict_storage, clock):
        cache = ClientCache(storage=dict_storage, namespace='ns', clock=clock)

        status = cache.set(KEY, {'when': object()})

        assert status == PersistStatus.TRANSIENT_ONLY
        assert KEY not in dict_storage.rows
        assert cache.has(KEY)

    def test_broken_storage_never_raises(self, dict_storage, clock):
        dict_storage.fail_reads = True
        dict_storage.fail_writes = -1
        dict_storage.fail_removes = True
        dict_storage.fail_lists = True

        cache = ClientCache(storage=dict_storage, namespace='ns', clock=clock)
        assert cache.get(KEY) is None
        assert cache.set(KEY, 'payload', 10) == PersistStatus.TRANSIENT_ONLY
        assert cache.get(KEY) == 'payload'
        clock.advance(10)
        assert cache.sweep() == 1
        cache.clear()
        cache.clear(KEY)

    def test_persisted_json_shape(self, dict_storage, clock):
        cache = ClientCache(storage=dict_storage, namespace='ns', clock=clock)
        clock.now = 100

        cache.set(KEY, [1, 2, 3], 50)

        assert json.loads(dict_storage.rows[KEY]) == {
            'payload': [1, 2, 3],
            'created_at': 100,
            'expires_at': 150,
        }


class TestNamespaceIsolation:

    def test_get_ignores_other_namespace_rows(self, sql_storage, clock):
        ours = ClientCache(storage=sql_storage, namespace='ours', clock=clock)
        theirs = ClientCache(storage=sql_storage, namespace='theirs', clock=clock)
        theirs.set('theirs:airline:', 'tap', 10)
        clock.advance(10)

        assert ours.get('theirs:airline:') is None
        assert ours.stats['entries'] == 0
        # Expired, but only its own namespace may delete it
        assert sql_storage.read('theirs:airline:') is not None


class TestSqlStorage:

    def test_list_expired_uses_boundary_and_prefix(self, sql_storage):
        sql_storage.write('ns:past:', '{}', 10)
        sql_storage.write('ns:edge:', '{}', 20)
        sql_storage.write('ns:future:', '{}', 30)
        sql_storage.write('nx:past:', '{}', 10)

        assert sorted(sql_storage.list_expired('ns:', 20)) == ['ns:edge:', 'ns:past:']

    def test_list_expired_treats_prefix_literally(self, sql_storage):
        sql_storage.write('nx:past:', '{}', 10)

        assert sql_storage.list_expired('n_:', 20) == []

    def test_sweep_does_not_decode_rows(self, client_cache, sql_storage, clock, monkeypatch):
        client_cache.set('ns:a:', 1, 10)
        client_cache.set('ns:b:', 2, 100)
        clock.advance(10)
        reads = []
        original_read = sql_storage.read
        monkeypatch.setattr(sql_storage, 'read', lambda key: reads.append(key) or original_read(key))

        assert client_cache.sweep() == 1
        assert reads == []
        assert sql_storage.list_keys('ns:') == ['ns:b:']
