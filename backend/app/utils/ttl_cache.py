"""
Process-local TTL cache.

Entries expire lazily: an expired entry is only dropped when it is read.
There is no size bound. Concurrent writers for the same key simply
overwrite each other (last write wins).
"""
import logging
import threading
import time
from typing import Any, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)


class TTLCache:
    """Simple in-memory cache with a fixed time-to-live per entry."""

    def __init__(self, ttl_seconds: float = 300, name: str = "cache"):
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._cache: Dict[Hashable, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        """Get cached value if not expired."""
        with self._lock:
            if key in self._cache:
                value, stored_at = self._cache[key]
                age = time.monotonic() - stored_at
                if age < self.ttl_seconds:
                    logger.debug(f"{self.name}: hit for {key} (age: {age:.1f}s)")
                    return value
                logger.debug(f"{self.name}: expired {key} (age: {age:.1f}s)")
                del self._cache[key]
        return None

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._cache[key] = (value, time.monotonic())

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear all cached data."""
        with self._lock:
            self._cache.clear()
            logger.debug(f"{self.name}: cleared")

    def __len__(self) -> int:
        return len(self._cache)
