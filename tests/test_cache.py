"""Testes para xgate_sdk.cache (MemoryCache, FileCache, RedisCache)."""

import json
import os

from conftest import FakeRedis

from xgate_sdk.cache import FileCache, MemoryCache, RedisCache


class TestMemoryCache:
    """Testes para MemoryCache."""

    def test_set_get_delete(self, memory_cache: MemoryCache) -> None:
        memory_cache.set('k', {'a': 1})
        assert memory_cache.get('k') == {'a': 1}
        memory_cache.delete('k')
        assert memory_cache.get('k') is None

    def test_default_for_missing_key(self, memory_cache: MemoryCache) -> None:
        assert memory_cache.get('ausente', 'padrão') == 'padrão'

    def test_entry_expires_after_ttl(self, memory_cache: MemoryCache, clock) -> None:
        memory_cache.set('k', 'v', ttl=10)
        clock.advance(9)
        assert memory_cache.get('k') == 'v'
        clock.advance(1)
        assert memory_cache.get('k') is None

    def test_clear(self, memory_cache: MemoryCache) -> None:
        memory_cache.set('a', 1)
        memory_cache.set('b', 2)
        memory_cache.clear()
        assert memory_cache.get('a') is None
        assert memory_cache.get('b') is None


class TestFileCache:
    """Testes para FileCache."""

    def test_values_survive_new_instance(self, tmp_path, clock) -> None:
        FileCache(str(tmp_path), clock=clock).set('token', {'token': 'abc'}, ttl=60)
        assert FileCache(str(tmp_path), clock=clock).get('token') == {'token': 'abc'}

    def test_expired_entry_is_removed(self, tmp_path, clock) -> None:
        cache = FileCache(str(tmp_path), clock=clock)
        cache.set('k', 'v', ttl=5)
        clock.advance(5)
        assert cache.get('k') is None
        assert not os.path.exists(cache._path('k'))

    def test_corrupted_file_is_discarded(self, tmp_path, clock) -> None:
        cache = FileCache(str(tmp_path), clock=clock)
        cache.set('k', 'v')
        with open(cache._path('k'), 'w', encoding='utf-8') as fh:
            fh.write('{nao e json')
        assert cache.get('k', 'padrão') == 'padrão'
        assert not os.path.exists(cache._path('k'))

    def test_delete_missing_key_is_noop(self, tmp_path) -> None:
        FileCache(str(tmp_path)).delete('ausente')

    def test_no_temporary_files_left(self, tmp_path) -> None:
        cache = FileCache(str(tmp_path), namespace='ns')
        cache.set('a', 1)
        cache.set('b', 2)
        files = os.listdir(os.path.join(str(tmp_path), 'ns'))
        assert len(files) == 2
        assert all(name.endswith('.json') for name in files)


class TestRedisCache:
    """Testes para RedisCache com cliente falso."""

    def test_values_are_json_with_prefix(self) -> None:
        redis = FakeRedis()
        cache = RedisCache(redis, prefix='teste:')
        cache.set('k', {'a': 1}, ttl=30)

        assert json.loads(redis.store['teste:k']) == {'a': 1}
        assert redis.expirations['teste:k'] == 30
        assert cache.get('k') == {'a': 1}

    def test_fractional_ttl_rounds_up(self) -> None:
        redis = FakeRedis()
        RedisCache(redis).set('k', 1, ttl=0.2)
        assert redis.expirations['xgate:k'] == 1

    def test_missing_and_delete(self) -> None:
        cache = RedisCache(FakeRedis())
        assert cache.get('k', 'padrão') == 'padrão'
        cache.set('k', 'v')
        cache.delete('k')
        assert cache.get('k') is None
