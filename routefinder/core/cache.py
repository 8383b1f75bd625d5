"""Result caches memoizing optimization results per (target chain, amount, user)."""

from __future__ import annotations

import json
import threading
import time
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

import redis

from routefinder.config import RouterConfig
from routefinder.core.models import RouteOptimizationResult
from routefinder.core.utils import format_amount, get_logger

LOGGER = get_logger("routefinder.cache")


def route_cache_key(target_chain: int, required_amount: Decimal, user_address: str) -> str:
    """Build the cache key for a route request, e.g. ``route:137:100:0xabc...``."""
    return f"route:{target_chain}:{format_amount(required_amount)}:{user_address.lower()}"


class ResultCache(Protocol):
    def get(self, key: str) -> Optional[RouteOptimizationResult]:
        ...

    def set(self, key: str, result: RouteOptimizationResult, ttl_seconds: Optional[int] = None) -> None:
        ...


class NullResultCache:
    """Cache that never stores anything."""

    def get(self, key: str) -> Optional[RouteOptimizationResult]:
        return None

    def set(self, key: str, result: RouteOptimizationResult, ttl_seconds: Optional[int] = None) -> None:
        return None


class MemoryResultCache:
    """In-process TTL cache.

    ``get_or_compute`` holds a per-key lock so concurrent requests for the
    same key compute the result only once. A key's lock lives only while
    some thread holds or waits on it, and expired entries are swept on
    every ``set``.
    """

    def __init__(self, default_ttl: int = 30, clock: Callable[[], float] = time.monotonic) -> None:
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[float, RouteOptimizationResult]] = {}
        self._lock = threading.Lock()
        self._key_locks: Dict[str, Tuple[threading.Lock, int]] = {}

    def get(self, key: str) -> Optional[RouteOptimizationResult]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, result = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return result

    def set(self, key: str, result: RouteOptimizationResult, ttl_seconds: Optional[int] = None) -> None:
        ttl = ttl_seconds or self.default_ttl
        with self._lock:
            now = self._clock()
            self._sweep(now)
            self._entries[key] = (now + ttl, result)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def _sweep(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]

    def _acquire_key_lock(self, key: str) -> threading.Lock:
        with self._lock:
            lock, users = self._key_locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._key_locks[key] = (lock, users + 1)
        lock.acquire()
        return lock

    def _release_key_lock(self, key: str, lock: threading.Lock) -> None:
        with self._lock:
            _, users = self._key_locks[key]
            if users <= 1:
                del self._key_locks[key]
            else:
                self._key_locks[key] = (lock, users - 1)
        lock.release()

    def get_or_compute(
        self,
        key: str,
        compute: Callable[[], RouteOptimizationResult],
        ttl_seconds: Optional[int] = None,
    ) -> RouteOptimizationResult:
        cached = self.get(key)
        if cached is not None:
            return cached
        lock = self._acquire_key_lock(key)
        try:
            cached = self.get(key)
            if cached is not None:
                return cached
            result = compute()
            if result.success:
                self.set(key, result, ttl_seconds)
            return result
        finally:
            self._release_key_lock(key, lock)


class RedisResultCache:
    """Redis-backed cache storing results as JSON with ``SETEX``.

    Redis errors are logged and behave like a miss so the cache never fails
    a request.
    """

    def __init__(self, client: Any, default_ttl: int = 30) -> None:
        self.client = client
        self.default_ttl = default_ttl

    @classmethod
    def from_url(cls, redis_url: str, default_ttl: int = 30) -> "RedisResultCache":
        return cls(redis.from_url(redis_url, decode_responses=True), default_ttl=default_ttl)

    def get(self, key: str) -> Optional[RouteOptimizationResult]:
        try:
            data = self.client.get(key)
        except redis.RedisError as exc:
            LOGGER.warning("Cache get error for %s: %s", key, exc)
            return None
        if not data:
            return None
        try:
            return RouteOptimizationResult.from_dict(json.loads(data))
        except (ValueError, KeyError, TypeError) as exc:
            LOGGER.warning("Discarding unreadable cache entry %s: %s", key, exc)
            return None

    def set(self, key: str, result: RouteOptimizationResult, ttl_seconds: Optional[int] = None) -> None:
        ttl = ttl_seconds or self.default_ttl
        try:
            self.client.setex(key, ttl, json.dumps(result.to_dict()))
        except redis.RedisError as exc:
            LOGGER.warning("Cache set error for %s: %s", key, exc)

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.RedisError as exc:
            LOGGER.warning("Cache delete error for %s: %s", key, exc)


def build_result_cache(config: RouterConfig) -> ResultCache:
    """Return the cache backend selected by ``config.cache``."""
    ttl = config.defaults.cache_ttl
    if config.cache == "redis":
        return RedisResultCache.from_url(str(config.redis_url), default_ttl=ttl)
    if config.cache == "none":
        return NullResultCache()
    return MemoryResultCache(default_ttl=ttl)


__all__ = [
    "MemoryResultCache",
    "NullResultCache",
    "RedisResultCache",
    "ResultCache",
    "build_result_cache",
    "route_cache_key",
]
