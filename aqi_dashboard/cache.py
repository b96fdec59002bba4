"""
Response cache and per-client rate limiter for the HTTP layer.

The cache is Flask-Caching's SimpleCache; the limiter is a plain object.
Both are handed to ``create_app`` so a deployment can swap in a shared
backend (e.g. ``CACHE_TYPE='RedisCache'``) without touching the routes.
"""
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Hashable, Optional

from flask_caching import Cache


def init_cache(app, cache: Optional[Cache] = None) -> Cache:
    """Bind ``cache`` (or a new SimpleCache) to ``app``; TTL comes from CACHE_TTL_SECONDS."""
    app.config.setdefault("CACHE_TYPE", "SimpleCache")
    app.config.setdefault("CACHE_DEFAULT_TIMEOUT", int(app.config["CACHE_TTL_SECONDS"]))
    cache = cache if cache is not None else Cache()
    cache.init_app(app)
    return cache


class RateLimiter:
    """Allow at most ``limit`` calls per key within the trailing ``window_seconds``.

    Keys with no hit inside the window are dropped, so the table only holds
    clients seen during the last window.
    """

    def __init__(self, limit: int, window_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[Hashable, Deque[float]] = {}
        self._last_sweep = clock()
        self._lock = threading.Lock()

    def _prune(self, hits: Deque[float], now: float) -> None:
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        for key in list(self._hits):
            hits = self._hits[key]
            self._prune(hits, now)
            if not hits:
                del self._hits[key]
        self._last_sweep = now

    def allow(self, key: Hashable) -> bool:
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            hits = self._hits.setdefault(key, deque())
            self._prune(hits, now)
            if len(hits) >= self.limit:
                return False
            hits.append(now)
            return True

    def __len__(self) -> int:
        return len(self._hits)
