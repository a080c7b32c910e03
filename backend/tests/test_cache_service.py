"""
Tests for the Redis cache service and its fallback behaviour.

Redis is replaced by a MagicMock client, so these run without a server:
1. JSON round trip of cached values
2. Cache miss behaviour (returns None)
3. Every operation degrades to a miss when Redis is unavailable
4. Pattern deletion used for snapshot invalidation
"""
import json
import pytest
from datetime import datetime
from unittest.mock import MagicMock, patch

from app.services.cache import CacheService


pytestmark = pytest.mark.unit


@pytest.fixture
def redis_client():
    client = MagicMock()
    client.ping.return_value = True
    return client


@pytest.fixture
def service(redis_client):
    with patch("app.services.cache.redis.from_url", return_value=redis_client):
        return CacheService(redis_url="redis://test:6379/0")


class TestCacheGetSet:
    """Basic get/set operations."""

    def test_set_serializes_json_with_ttl(self, service, redis_client):
        assert service.set("coingecko:coin_list", [{"id": "bitcoin"}], ttl_seconds=60) is True
        redis_client.setex.assert_called_once_with(
            "coingecko:coin_list", 60, json.dumps([{"id": "bitcoin"}])
        )

    def test_set_stringifies_datetimes(self, service, redis_client):
        service.set("key", {"at": datetime(2026, 1, 1)})
        stored = redis_client.setex.call_args.args[2]
        assert json.loads(stored) == {"at": "2026-01-01 00:00:00"}

    def test_get_deserializes(self, service, redis_client):
        redis_client.get.return_value = json.dumps({"total_value_usd": 75000})
        assert service.get("portfolio_snapshot:u:w") == {"total_value_usd": 75000}

    def test_get_miss(self, service, redis_client):
        redis_client.get.return_value = None
        assert service.get("missing") is None

    def test_get_corrupt_value_is_miss(self, service, redis_client):
        redis_client.get.return_value = "{not json"
        assert service.get("corrupt") is None


class TestCacheUnavailable:
    """Redis down: every call is a no-op."""

    @pytest.fixture
    def unavailable(self):
        with patch("app.services.cache.redis.from_url", side_effect=ConnectionError("refused")):
            return CacheService(redis_url="redis://nowhere:6379/0")

    def test_flagged_unavailable(self, unavailable):
        assert unavailable.available is False

    def test_operations_degrade(self, unavailable):
        assert unavailable.get("key") is None
        assert unavailable.set("key", "value") is False
        assert unavailable.delete("key") is False
        assert unavailable.clear_pattern("key:*") == 0

    def test_errors_during_calls_degrade(self, service, redis_client):
        redis_client.get.side_effect = ConnectionError("lost")
        redis_client.setex.side_effect = ConnectionError("lost")
        assert service.get("key") is None
        assert service.set("key", 1) is False


class TestCacheDelete:

    def test_delete(self, service, redis_client):
        redis_client.delete.return_value = 1
        assert service.delete("key") is True
        redis_client.delete.return_value = 0
        assert service.delete("key") is False

    def test_clear_pattern(self, service, redis_client):
        redis_client.scan_iter.return_value = iter(["portfolio_snapshot:u:a", "portfolio_snapshot:u:b"])
        redis_client.delete.return_value = 2

        assert service.clear_pattern("portfolio_snapshot:u:*") == 2
        redis_client.scan_iter.assert_called_once_with(match="portfolio_snapshot:u:*")
        redis_client.delete.assert_called_once_with("portfolio_snapshot:u:a", "portfolio_snapshot:u:b")

    def test_clear_pattern_no_keys(self, service, redis_client):
        redis_client.scan_iter.return_value = iter([])
        assert service.clear_pattern("nothing:*") == 0
        redis_client.delete.assert_not_called()


class TestCachePing:

    def test_ping(self, service, redis_client):
        assert service.ping() is True
        redis_client.ping.side_effect = ConnectionError("lost")
        assert service.ping() is False

    def test_ping_unavailable(self):
        with patch("app.services.cache.redis.from_url", side_effect=ConnectionError("refused")):
            assert CacheService(redis_url="redis://nowhere:6379/0").ping() is False
