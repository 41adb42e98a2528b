"""
Theme Park Wait Time Reconciler - TTL Cache Unit Tests

Tests TTLCache get/set, expiry, get_or_fetch and invalidation.
"""

from unittest.mock import Mock, patch

import pytest

from utils.cache import TTLCache


class TestTTLCache:
    """Test TTLCache behavior."""

    def test_set_and_get(self):
        cache = TTLCache(ttl_seconds=60)
        cache.set('waittimes:abc', [{'id': 'x'}])

        assert cache.get('waittimes:abc') == [{'id': 'x'}]
        assert cache.hits == 1

    def test_missing_key_returns_none(self):
        cache = TTLCache()

        assert cache.get('missing') is None
        assert cache.misses == 1

    def test_entry_expires(self):
        """Entries read at or after their expiry are dropped."""
        cache = TTLCache(ttl_seconds=300)

        with patch('utils.cache.time.monotonic', return_value=1000.0):
            cache.set('key', 'value')

        with patch('utils.cache.time.monotonic', return_value=1299.0):
            assert cache.get('key') == 'value'

        with patch('utils.cache.time.monotonic', return_value=1300.0):
            assert cache.get('key') is None

        assert len(cache) == 0

    def test_zero_ttl_never_caches(self):
        cache = TTLCache(ttl_seconds=0)
        cache.set('key', 'value')

        assert cache.get('key') is None


class TestGetOrFetch:
    """Test TTLCache.get_or_fetch()."""

    def test_fetches_once_within_ttl(self):
        cache = TTLCache(ttl_seconds=60)
        fetch = Mock(return_value=[{'id': 'uuid-space'}])

        first = cache.get_or_fetch('park', fetch)
        second = cache.get_or_fetch('park', fetch)

        assert first == second == [{'id': 'uuid-space'}]
        fetch.assert_called_once()

    def test_empty_list_is_cached(self):
        cache = TTLCache(ttl_seconds=60)
        fetch = Mock(return_value=[])

        cache.get_or_fetch('park', fetch)
        cache.get_or_fetch('park', fetch)

        fetch.assert_called_once()

    def test_fetch_error_stores_nothing(self):
        cache = TTLCache(ttl_seconds=60)

        with pytest.raises(RuntimeError):
            cache.get_or_fetch('park', Mock(side_effect=RuntimeError('provider down')))

        assert len(cache) == 0


class TestInvalidate:
    """Test TTLCache.invalidate()."""

    def test_invalidate_single_key(self):
        cache = TTLCache()
        cache.set('a', 1)
        cache.set('b', 2)

        cache.invalidate('a')

        assert cache.get('a') is None
        assert cache.get('b') == 2

    def test_invalidate_all(self):
        cache = TTLCache()
        cache.set('a', 1)
        cache.set('b', 2)

        cache.invalidate()

        assert len(cache) == 0
