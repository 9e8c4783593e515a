from __future__ import annotations

import math
import threading
import time
from collections import defaultdict, deque
from typing import Callable

from fastapi import HTTPException, Request, status


class InMemoryRateLimiter:
    """Sliding-window request counter per key."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._events: dict[str, deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()
        self._clock = clock

    def check(self, key: str, limit: int, window_seconds: int) -> tuple[bool, int]:
        """Record a hit if allowed. Returns (allowed, seconds until the next slot frees)."""
        now = self._clock()
        window = max(1, window_seconds)
        with self._lock:
            hits = self._events[key]
            while hits and hits[0] <= now - window:
                hits.popleft()
            if len(hits) < max(1, limit):
                hits.append(now)
                return True, 0
            return False, max(1, math.ceil(hits[0] + window - now))

    def allow(self, key: str, limit: int, window_seconds: int) -> bool:
        return self.check(key, limit, window_seconds)[0]

    def reset(self) -> None:
        with self._lock:
            self._events.clear()


rate_limiter = InMemoryRateLimiter()


def build_rate_limit_dependency(prefix: str, limit: int, window_seconds: int, limiter: InMemoryRateLimiter | None = None):
    async def _dependency(request: Request):
        client_ip = request.client.host if request.client else 'unknown'
        allowed, retry_after = (limiter or rate_limiter).check(f'{prefix}:{client_ip}', limit, window_seconds)
        if allowed:
            return
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                'error_code': 'RATE_LIMITED',
                'message': 'Too many sync requests',
                'details': {
                    'limit': int(limit),
                    'window_seconds': int(window_seconds),
                    'retry_after_seconds': retry_after,
                    'scope': prefix,
                },
            },
            headers={'Retry-After': str(retry_after)},
        )

    return _dependency
