"""
Sliding-window rate limiter.

Each key holds the timestamps of its admitted requests. On every check the
timestamps older than the window are evicted; the request is admitted and
recorded only while fewer than ``max_requests`` remain. Eviction, count and
append happen as one atomic step against the store, so two concurrent checks
for the same key can never both take the last slot.
"""
import logging
import threading
import time
import uuid
from datetime import timedelta
from functools import lru_cache
from typing import Callable, Protocol

import redis

from memberauth.config import get_settings
from memberauth.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

# KEYS[1] = window key; ARGV = now_ms, window_ms, max_requests, member
SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])
redis.call('ZREMRANGEBYSCORE', key, 0, now - window)
if redis.call('ZCARD', key) >= limit then
    return 0
end
redis.call('ZADD', key, now, ARGV[4])
redis.call('PEXPIRE', key, window)
return 1
"""


class WindowStore(Protocol):
    def hit(self, key: str, now_ms: int, window_ms: int, max_requests: int) -> bool: ...

    def reset(self, key: str) -> None: ...


class RedisWindowStore:
    """
    Sorted-set windows in Redis, one ZSET per key scored by milliseconds.

    The whole check runs server-side as a Lua script: a single round trip,
    atomic with respect to every other client of the same Redis.
    """

    def __init__(self, client: "redis.Redis") -> None:
        self.r = client
        self._script = self.r.register_script(SLIDING_WINDOW_SCRIPT)

    @classmethod
    def from_url(cls, url: str) -> "RedisWindowStore":
        logger.debug("New Redis connection at %s", url)
        return cls(redis.Redis.from_url(url))

    def hit(self, key: str, now_ms: int, window_ms: int, max_requests: int) -> bool:
        # Members must be unique even for requests landing in the same millisecond
        member = f"{now_ms}-{uuid.uuid4().hex[:12]}"
        try:
            return bool(self._script(keys=[key], args=[now_ms, window_ms, max_requests, member]))
        except redis.exceptions.ConnectionError as e:
            raise StoreUnavailable(f"Connection failed: {e}") from e
        except redis.exceptions.RedisError as e:
            raise StoreUnavailable(f"Rate limit check failed: {e}") from e

    def reset(self, key: str) -> None:
        try:
            self.r.delete(key)
        except redis.exceptions.RedisError as e:
            raise StoreUnavailable(f"Failed to reset: {e}") from e


class MemoryWindowStore:
    """
    In-process windows for single-worker deployments and tests.

    Like ``PEXPIRE`` on the Redis side, every key expires one window after
    its latest admitted request. Expired keys are swept out at most once per
    ``sweep_interval_ms``, so idle keys do not pile up.
    """

    def __init__(self, sweep_interval_ms: int = 60_000) -> None:
        self._windows: dict[str, list[int]] = {}
        self._expires: dict[str, int] = {}
        self._sweep_interval_ms = sweep_interval_ms
        self._last_sweep_ms: int | None = None
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def _sweep(self, now_ms: int) -> None:
        if self._last_sweep_ms is not None and now_ms - self._last_sweep_ms < self._sweep_interval_ms:
            return
        self._last_sweep_ms = now_ms
        for key in [k for k, expires in self._expires.items() if expires <= now_ms]:
            self._windows.pop(key, None)
            self._expires.pop(key, None)

    def hit(self, key: str, now_ms: int, window_ms: int, max_requests: int) -> bool:
        cutoff = now_ms - window_ms
        with self._lock:
            self._sweep(now_ms)
            stamps = [t for t in self._windows.get(key, []) if t > cutoff]
            if len(stamps) >= max_requests:
                if stamps:
                    self._windows[key] = stamps
                else:
                    self._windows.pop(key, None)
                    self._expires.pop(key, None)
                return False
            stamps.append(now_ms)
            self._windows[key] = stamps
            self._expires[key] = now_ms + window_ms
            return True

    def reset(self, key: str) -> None:
        with self._lock:
            self._windows.pop(key, None)
            self._expires.pop(key, None)


class RateLimiter:
    def __init__(self, store: WindowStore, clock: Callable[[], float] = time.time) -> None:
        self.store = store
        self._clock = clock

    def allow(self, key: str, max_requests: int, window: timedelta) -> bool:
        """Admit and record one request for ``key``, or refuse without recording it."""
        now_ms = int(self._clock() * 1000)
        window_ms = int(window.total_seconds() * 1000)
        allowed = self.store.hit(key, now_ms, window_ms, max_requests)
        if not allowed:
            logger.info("Rate limit exceeded for key=%s (max=%d window=%ss)", key, max_requests, int(window.total_seconds()))
        return allowed

    def reset(self, key: str) -> None:
        """Forget every recorded request for ``key``. Administrative use only."""
        self.store.reset(key)


@lru_cache
def get_rate_limiter() -> RateLimiter:
    settings = get_settings()
    if settings.rate_limit_backend == "memory":
        return RateLimiter(MemoryWindowStore())
    if settings.rate_limit_backend != "redis":
        raise ValueError(f"Unknown rate_limit_backend: {settings.rate_limit_backend!r}")
    return RateLimiter(RedisWindowStore.from_url(settings.redis_url))
