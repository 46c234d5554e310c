"""
Cache store, read-through cache helpers, token revocation set and the
fixed-window request counter.

Redis is used when ``REDIS_URL`` is configured, an in-process
``cachetools`` store otherwise. The cache is an optimisation only: every
read or write failure is logged and treated as a miss.
"""

import fnmatch
import logging
import math
import threading
import time
from functools import lru_cache
from typing import Any, Callable, Optional, Protocol, Tuple, TypeVar

import pydantic
import redis
from cachetools import TLRUCache

from shipquote.application.errors import DependencyFailure
from shipquote.core_settings import Settings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

CACHE_ERRORS = (redis.RedisError, OSError)


class CacheStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str, ttl: int) -> None: ...

    def delete(self, *keys: str) -> None: ...

    def delete_pattern(self, pattern: str) -> int: ...

    def incr(self, key: str, ttl: int) -> Tuple[int, int]: ...

    def ping(self) -> None: ...


class RedisCacheStore:
    def __init__(self, client: redis.Redis):
        self.client = client

    def get(self, key: str) -> Optional[str]:
        return self.client.get(key)

    def set(self, key: str, value: str, ttl: int) -> None:
        self.client.setex(key, ttl, value)

    def delete(self, *keys: str) -> None:
        if keys:
            self.client.delete(*keys)

    def delete_pattern(self, pattern: str) -> int:
        removed = 0
        for key in self.client.scan_iter(match=pattern):
            removed += self.client.delete(key)
        return removed

    def incr(self, key: str, ttl: int) -> Tuple[int, int]:
        """Returns the new count and the seconds left before the key expires."""
        count = self.client.incr(key)
        if count == 1:
            self.client.expire(key, ttl)
            return count, ttl
        remaining = self.client.ttl(key)
        if remaining < 0:
            # Expiry lost between INCR and EXPIRE
            self.client.expire(key, ttl)
            remaining = ttl
        return count, remaining

    def ping(self) -> None:
        self.client.ping()


class LocalCacheStore:
    """In-process store with per-key expiry; values are ``(payload, expires_at)``."""

    def __init__(self, maxsize: int = 4096, timer: Callable[[], float] = time.monotonic):
        self.timer = timer
        self._cache = TLRUCache(maxsize=maxsize, ttu=lambda _key, value, _now: value[1], timer=timer)
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._cache.get(key)
        return entry[0] if entry is not None else None

    def set(self, key: str, value: str, ttl: int) -> None:
        with self._lock:
            self._cache[key] = (value, self.timer() + ttl)

    def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._cache.pop(key, None)

    def delete_pattern(self, pattern: str) -> int:
        with self._lock:
            matched = [key for key in list(self._cache.keys()) if fnmatch.fnmatchcase(key, pattern)]
            for key in matched:
                self._cache.pop(key, None)
        return len(matched)

    def incr(self, key: str, ttl: int) -> Tuple[int, int]:
        with self._lock:
            now = self.timer()
            entry = self._cache.get(key)
            if entry is None:
                self._cache[key] = ("1", now + ttl)
                return 1, ttl
            count = int(entry[0]) + 1
            # Keep the window's original expiry
            self._cache[key] = (str(count), entry[1])
            return count, max(1, math.ceil(entry[1] - now))

    def ping(self) -> None:
        return None


class CacheLayer:
    """Read-through cache with invalidate-on-write; never raises."""

    def __init__(self, store: CacheStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()

    @staticmethod
    def user_shipments_key(user_id: int) -> str:
        return f"shipments:user:{user_id}"

    @staticmethod
    def shipment_key(shipment_id: int) -> str:
        return f"shipment:{shipment_id}"

    @staticmethod
    def quotation_key(*parts: Any) -> str:
        return "quotation:" + ":".join(str(part) for part in parts)

    def get(self, key: str, adapter: pydantic.TypeAdapter) -> Optional[Any]:
        try:
            raw = self.store.get(key)
        except CACHE_ERRORS as exc:
            logger.warning(f"Cache read failed for {key}: {exc}")
            return None
        if raw is None:
            return None
        try:
            return adapter.validate_json(raw)
        except pydantic.ValidationError:
            logger.warning(f"Discarding unreadable cache entry {key}")
            self.invalidate(key)
            return None

    def set(self, key: str, value: Any, adapter: pydantic.TypeAdapter, ttl: int) -> None:
        try:
            self.store.set(key, adapter.dump_json(value).decode(), ttl)
        except CACHE_ERRORS as exc:
            logger.warning(f"Cache write failed for {key}: {exc}")

    def invalidate(self, *keys: str) -> None:
        try:
            self.store.delete(*keys)
        except CACHE_ERRORS as exc:
            logger.warning(f"Cache invalidation failed for {keys}: {exc}")

    def invalidate_pattern(self, pattern: str) -> None:
        try:
            self.store.delete_pattern(pattern)
        except CACHE_ERRORS as exc:
            logger.warning(f"Cache invalidation failed for {pattern}: {exc}")

    def read_through(self, key: str, adapter: pydantic.TypeAdapter, ttl: int, loader: Callable[[], T]) -> T:
        cached = self.get(key, adapter)
        if cached is not None:
            return cached
        value = loader()
        self.set(key, value, adapter, ttl)
        return value


class TokenRevocationSet:
    """
    Revoked credential ids, each kept for the remainder of its natural lifetime.

    When the store cannot be reached ``is_revoked`` answers ``not fail_open``:
    with ``fail_open=True`` (the default) an outage lets every unexpired
    credential through. This trades security for availability and is
    controlled by ``TOKEN_REVOCATION_FAIL_OPEN``.
    """

    PREFIX = "revoked:"

    def __init__(self, store: CacheStore, fail_open: bool = True):
        self.store = store
        self.fail_open = fail_open

    def revoke(self, token_id: str, ttl: int) -> None:
        if ttl <= 0:
            return
        try:
            self.store.set(self.PREFIX + token_id, "1", ttl)
        except CACHE_ERRORS as exc:
            logger.error(f"Could not record token revocation: {exc}", exc_info=True)
            raise DependencyFailure() from exc

    def is_revoked(self, token_id: str) -> bool:
        try:
            return self.store.get(self.PREFIX + token_id) is not None
        except CACHE_ERRORS as exc:
            logger.warning(
                f"Revocation store unavailable, failing {'open' if self.fail_open else 'closed'}: {exc}"
            )
            return not self.fail_open


class FixedWindowLimiter:
    """Counts requests per key inside a fixed window; lets requests through on store errors."""

    def __init__(self, store: CacheStore):
        self.store = store

    def hit(self, key: str, limit: int, window_seconds: int) -> Tuple[bool, int, int]:
        """Returns ``(allowed, remaining, seconds until the window resets)``."""
        try:
            count, reset = self.store.incr(f"rate_limit:{key}", window_seconds)
        except CACHE_ERRORS as exc:
            logger.warning(f"Rate limiting skipped: {exc}")
            return True, limit, window_seconds
        return count <= limit, max(0, limit - count), reset


@lru_cache
def get_cache_store() -> CacheStore:
    settings = get_settings()
    if settings.REDIS_URL:
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=settings.REDIS_TIMEOUT_SECONDS,
            socket_connect_timeout=settings.REDIS_TIMEOUT_SECONDS,
        )
        return RedisCacheStore(client)
    logger.info("REDIS_URL not set, using in-process cache")
    return LocalCacheStore()
