"""
Short-lived key/value store for sync job status.

Entries expire after a TTL; nothing here is an audit log. The in-process
store is private to one process; readers then fall back to the sync_jobs
row for the job phase. Set STATUS_STORE_URL to a redis:// URL to share live
progress between the API and the worker.
"""
from __future__ import annotations

import time
from collections import OrderedDict
from threading import Lock
from typing import Callable

import redis

from app.core.config import settings

_MAX_ENTRIES = 10000


class MemoryStatusStore:
    shared = False

    def __init__(self, max_entries: int = _MAX_ENTRIES, clock: Callable[[], float] = time.time) -> None:
        # key -> (value, expiry_ts)
        self._entries: OrderedDict[str, tuple[str, float]] = OrderedDict()
        self._max_entries = max_entries
        self._clock = clock
        self._lock = Lock()

    def _get_locked(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if not entry:
            return None
        value, expiry = entry
        if self._clock() > expiry:
            self._entries.pop(key, None)
            return None
        return value

    def _put_locked(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = (value, self._clock() + max(1, int(ttl_seconds)))
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._get_locked(key)

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._put_locked(key, value, ttl_seconds)

    def update(self, key: str, fn: Callable[[str | None], str | None], ttl_seconds: int) -> str | None:
        """Read-modify-write under the store lock; ``fn`` returning None leaves the key untouched."""
        with self._lock:
            new_value = fn(self._get_locked(key))
            if new_value is not None:
                self._put_locked(key, new_value, ttl_seconds)
            return new_value

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class RedisStatusStore:
    shared = True

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> 'RedisStatusStore':
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> str | None:
        return self._client.get(key)

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        self._client.set(key, value, ex=max(1, int(ttl_seconds)))

    def update(self, key: str, fn: Callable[[str | None], str | None], ttl_seconds: int) -> str | None:
        def _apply(pipe) -> str | None:
            new_value = fn(pipe.get(key))
            if new_value is not None:
                pipe.multi()
                pipe.set(key, new_value, ex=max(1, int(ttl_seconds)))
            return new_value

        return self._client.transaction(_apply, key, value_from_callable=True)

    def delete(self, key: str) -> None:
        self._client.delete(key)

    def ping(self) -> bool:
        return bool(self._client.ping())


_store = None
_store_lock = Lock()


def get_status_store():
    global _store
    with _store_lock:
        if _store is None:
            url = str(settings.status_store_url or '').strip()
            _store = RedisStatusStore.from_url(url) if url else MemoryStatusStore()
        return _store


def set_status_store(store) -> None:
    global _store
    with _store_lock:
        _store = store
