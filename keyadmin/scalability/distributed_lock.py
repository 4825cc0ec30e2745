"""Keyed mutual exclusion over a SET NX EX backend. Serializes operations on one customer across workers."""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, Mapping, Optional, Protocol


class LockBackend(Protocol):
    """Minimal SET NX EX operations. Redis in production, in-process otherwise."""

    async def set_nx_ex(self, key: str, value: str, ttl: int) -> bool: ...
    async def get(self, key: str) -> str | None: ...
    async def delete_if_value(self, key: str, value: str) -> bool: ...


LOCK_PREFIX = "lock:"


class DistributedLock:
    """
    Non-blocking keyed lock. A unique token per acquire means only the holder
    can release; the TTL bounds how long a crashed holder can block a key.
    The instance keeps no per-key state, so concurrent requests can share it.
    """

    def __init__(self, backend: LockBackend, key_prefix: str = LOCK_PREFIX) -> None:
        self._backend = backend
        self._prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def acquire(self, key: str, ttl: int) -> Optional[str]:
        """Try once to take `key`. Returns the holder token, or None if someone else holds it."""
        token = str(uuid.uuid4())
        if await self._backend.set_nx_ex(self._key(key), token, ttl):
            return token
        return None

    async def release(self, key: str, token: str) -> bool:
        """Release the lock only if `token` still holds it (atomic compare-and-delete)."""
        return await self._backend.delete_if_value(self._key(key), token)

    @asynccontextmanager
    async def held(self, key: str, ttl: int) -> AsyncIterator[bool]:
        """Yield whether `key` was acquired; release on exit if it was."""
        token = await self.acquire(key, ttl)
        try:
            yield token is not None
        finally:
            if token is not None:
                await self.release(key, token)

    async def acquire_many(self, keys: Iterable[str], ttl: int) -> Dict[str, str]:
        """Acquire what is free, skip what is held. Returns held keys mapped to their tokens."""
        held: Dict[str, str] = {}
        for key in keys:
            token = await self.acquire(key, ttl)
            if token is not None:
                held[key] = token
        return held

    async def release_many(self, held: Mapping[str, str]) -> None:
        for key, token in held.items():
            await self.release(key, token)
