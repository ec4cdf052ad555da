"""
Per-ride mutual exclusion.

Every read-check-write on a ride's seat counter (and every booking on
that ride) runs while holding the ride's lock.  Two backends:

* ``LocalLockManager`` -- one ``asyncio.Lock`` per key, for a single
  API process.
* ``RedisLockManager`` -- Redis ``SET NX EX`` lock shared by several API
  processes; release is an atomic check-and-delete Lua script.

Acquisition is bounded by ``timeout_seconds``; on expiry the caller gets
``LockTimeoutError`` and nothing has been written.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator

import redis.asyncio as aioredis

from src.domain.errors import LockTimeoutError

logger = logging.getLogger(__name__)


def ride_lock_key(ride_id: str) -> str:
    return f"ride:{ride_id}"


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, key: str, ttl_seconds: int = 30
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.token = str(uuid.uuid4())

    async def acquire(self) -> bool:
        """Try to acquire. Returns True on success."""
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua)."""
        lua = """
        if redis.call("get", KEYS[1]) == ARGV[1] then
            return redis.call("del", KEYS[1])
        else
            return 0
        end
        """
        await self.redis.eval(lua, 1, self.key, self.token)


class LockManager(ABC):
    """Interface: ``async with manager.hold(key): ...``"""

    def __init__(self, timeout_seconds: float = 5.0):
        self.timeout = timeout_seconds

    @abstractmethod
    def hold(self, key: str) -> AsyncContextManager[None]: ...

    def _timed_out(self, key: str) -> LockTimeoutError:
        logger.warning("Timed out after %.2fs waiting for lock %s", self.timeout, key)
        return LockTimeoutError(key, self.timeout)


class LocalLockManager(LockManager):
    """
    One ``asyncio.Lock`` per key, dropped again once nobody holds or
    waits for it.
    """

    def __init__(self, timeout_seconds: float = 5.0):
        super().__init__(timeout_seconds)
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            try:
                async with asyncio.timeout(self.timeout):
                    await lock.acquire()
            except TimeoutError:
                raise self._timed_out(key) from None
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


class RedisLockManager(LockManager):
    def __init__(
        self,
        client: aioredis.Redis,
        ttl_seconds: int = 30,
        timeout_seconds: float = 5.0,
        retry_interval: float = 0.05,
    ):
        super().__init__(timeout_seconds)
        self.redis = client
        self.ttl = ttl_seconds
        self.retry_interval = retry_interval

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = DistributedLock(self.redis, key, ttl_seconds=self.ttl)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout
        while not await lock.acquire():
            if loop.time() >= deadline:
                raise self._timed_out(key)
            await asyncio.sleep(self.retry_interval)
        try:
            yield
        finally:
            await lock.release()


def build_lock_manager(settings) -> LockManager:
    if settings.lock_backend == "redis":
        from src.infrastructure.redis_client import get_redis

        return RedisLockManager(
            get_redis(),
            ttl_seconds=settings.lock_ttl_seconds,
            timeout_seconds=settings.lock_timeout_seconds,
        )
    return LocalLockManager(timeout_seconds=settings.lock_timeout_seconds)
