"""
Key/value cache with TTL, used for suggestion payloads and Google responses.

Values must be JSON-compatible (dicts, lists, str, numbers, bools) so that the
Redis backend can hold them. `None` is never stored; it means "miss".
"""

import copy
import json
import threading
import time
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

import redis

from ..utils.exceptions import CacheError, ConfigurationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class CacheBackend(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    def delete(self, key: str) -> None: ...

    def remember(self, key: str, ttl_seconds: int, factory: Callable[[], Any]) -> Any: ...


class _RememberMixin:
    """Cache-aside: serve a hit, otherwise compute, store and return."""

    def remember(self, key: str, ttl_seconds: int, factory: Callable[[], Any]) -> Any:
        cached = self.get(key)
        if cached is not None:
            logger.debug("cache_hit", key=key)
            return cached

        logger.debug("cache_miss", key=key)
        value = factory()
        if value is not None:
            self.set(key, value, ttl_seconds)
        return value


class MemoryCache(_RememberMixin):
    """
    Process-local cache.

    Expired entries are dropped when read and swept on every write. Past
    `max_entries` the oldest written entries are evicted first.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, max_entries: int = 10000):
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self.max_entries = max(1, int(max_entries))

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return copy.deepcopy(value)

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        with self._lock:
            now = self._clock()
            for stale in [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]:
                del self._entries[stale]
            # re-insert so the key counts as the newest write
            self._entries.pop(key, None)
            while len(self._entries) >= self.max_entries:
                del self._entries[next(iter(self._entries))]
            self._entries[key] = (now + ttl_seconds, copy.deepcopy(value))

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RedisCache(_RememberMixin):
    """
    redis-py backed cache storing JSON strings with SETEX.

    Redis being down must not break suggestions: read/write failures are
    logged and behave like a miss / a no-op.
    """

    def __init__(self, client: redis.Redis, prefix: str = "triptailor:"):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str) -> "RedisCache":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Any:
        try:
            raw = self.client.get(self._key(key))
        except redis.RedisError as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("cache_entry_corrupt", key=key)
            return None

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise CacheError("Cache value is not JSON serializable", context={"key": key, "error": str(e)}) from e
        try:
            self.client.setex(self._key(key), int(ttl_seconds), payload)
        except redis.RedisError as e:
            logger.warning("cache_write_failed", key=key, error=str(e))

    def delete(self, key: str) -> None:
        try:
            self.client.delete(self._key(key))
        except redis.RedisError as e:
            logger.warning("cache_delete_failed", key=key, error=str(e))


def build_cache(settings) -> CacheBackend:
    """Instantiate the cache backend selected by `settings.cache_backend`."""
    backend = (settings.cache_backend or "memory").lower()
    if backend == "memory":
        return MemoryCache()
    if backend == "redis":
        logger.info("cache_backend_redis", url=settings.redis_url.split("@")[-1])
        return RedisCache.from_url(settings.redis_url)
    raise ConfigurationError(f"Unknown cache backend: {settings.cache_backend}", context={"backend": backend})
