"""
Redis-backed JSON cache.

Holds the CoinGecko coin list and per-wallet portfolio snapshots. Redis is
optional: when it cannot be reached every read is a miss and every write is
dropped.
"""
import json
import logging
from typing import Any, Optional
import redis
from app.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """Thin JSON layer over a Redis client."""

    def __init__(self, redis_url: Optional[str] = None):
        try:
            self.redis_client = redis.from_url(
                redis_url or settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_keepalive=True,
            )
            self.redis_client.ping()
            self.available = True
            logger.info("Connected to Redis cache")
        except Exception as e:
            self.redis_client = None
            self.available = False
            logger.warning(f"Redis cache unavailable, continuing without it: {e}")

    def ping(self) -> bool:
        """True when Redis answers right now."""
        if not self.available:
            return False
        try:
            return bool(self.redis_client.ping())
        except Exception as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    def get(self, key: str) -> Optional[Any]:
        """
        Read and decode a cached value.

        Returns:
            The decoded value, or None on a miss, a corrupt entry or a Redis error
        """
        if not self.available:
            return None

        try:
            raw = self.redis_client.get(key)
            return None if raw is None else json.loads(raw)
        except Exception as e:
            logger.debug(f"Cache read failed for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl_seconds: int = 3600) -> bool:
        """Store ``value`` as JSON for ``ttl_seconds``; datetimes and decimals are stringified."""
        if not self.available:
            return False

        try:
            self.redis_client.setex(key, ttl_seconds, json.dumps(value, default=str))
            return True
        except Exception as e:
            logger.debug(f"Cache write failed for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        if not self.available:
            return False

        try:
            return self.redis_client.delete(key) > 0
        except Exception as e:
            logger.debug(f"Cache delete failed for {key}: {e}")
            return False

    def clear_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern such as ``portfolio_snapshot:user-1:*``."""
        if not self.available:
            return 0

        try:
            keys = list(self.redis_client.scan_iter(match=pattern))
            return self.redis_client.delete(*keys) if keys else 0
        except Exception as e:
            logger.debug(f"Cache pattern delete failed for {pattern}: {e}")
            return 0


cache = CacheService()
