# keyadmin/infrastructure/cache/memory_lock_backend.py

import time
from typing import Callable


class InMemoryLockBackend:
    """
    Single-process lock backend with the same contract as RedisClient's lock
    operations. Used when no Redis URL is configured. Coroutines never yield
    between check and set, so SET NX semantics hold within one event loop.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._store: dict[str, tuple[str, float]] = {}
        self._clock = clock

    def _live(self, key: str) -> str | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._store[key]
            return None
        return value

    async def set_nx_ex(self, key: str, value: str, ttl: int) -> bool:
        if self._live(key) is not None:
            return False
        self._store[key] = (value, self._clock() + ttl)
        return True

    async def get(self, key: str) -> str | None:
        return self._live(key)

    async def delete_if_value(self, key: str, value: str) -> bool:
        if self._live(key) == value:
            del self._store[key]
            return True
        return False
