"""Per-user publish locks: Redis when configured, in-process otherwise."""

from __future__ import annotations

import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional
from uuid import UUID

import redis.asyncio as redis
from redis.asyncio import Redis

from src.richmenu.domain.exceptions import PublishInProgressError
from src.shared.config import get_settings
from src.shared.logging import get_logger

logger = get_logger(__name__)


class RedisPublishLock:
    """
    SET NX + EX lock on `richmenu:publish:<user_id>`.

    The TTL bounds how long a crashed worker can block the user. Release is
    an atomic check-and-delete so an expired holder never frees a lock
    someone else now owns.
    """

    _UNLOCK_LUA = """
    -- KEY[1] = lock key
    -- ARGV[1] = expected owner token
    local v = redis.call('GET', KEYS[1])
    if v == ARGV[1] then
      return redis.call('DEL', KEYS[1])
    else
      return 0
    end
    """

    def __init__(
        self,
        client: Redis,
        *,
        ttl_seconds: int = 600,
        wait_seconds: float = 5.0,
        poll_interval: float = 0.1,
    ):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.wait_seconds = wait_seconds
        self.poll_interval = poll_interval

    @staticmethod
    def key_for(user_id: UUID) -> str:
        return f"richmenu:publish:{user_id}"

    async def _acquire(self, key: str, token: str) -> bool:
        deadline = time.monotonic() + self.wait_seconds
        while True:
            if await self.client.set(key, token, nx=True, ex=self.ttl_seconds):
                return True
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(self.poll_interval)

    @asynccontextmanager
    async def hold(self, user_id: UUID) -> AsyncIterator[None]:
        key = self.key_for(user_id)
        token = uuid.uuid4().hex
        if not await self._acquire(key, token):
            logger.info("Publish lock busy", user_id=str(user_id))
            raise PublishInProgressError(user_id)
        try:
            yield
        finally:
            await self.client.eval(self._UNLOCK_LUA, 1, key, token)


class InMemoryPublishLock:
    """asyncio.Lock per user; only serializes publishes within one process."""

    def __init__(self, *, wait_seconds: float = 5.0):
        self.wait_seconds = wait_seconds
        self._locks: Dict[UUID, asyncio.Lock] = {}
        self._users: Dict[UUID, int] = {}

    @asynccontextmanager
    async def hold(self, user_id: UUID) -> AsyncIterator[None]:
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        self._users[user_id] = self._users.get(user_id, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.wait_seconds)
            except asyncio.TimeoutError:
                logger.info("Publish lock busy", user_id=str(user_id))
                raise PublishInProgressError(user_id) from None
            try:
                yield
            finally:
                lock.release()
        finally:
            # Drop the entry once no holder or waiter references it
            self._users[user_id] -= 1
            if not self._users[user_id]:
                del self._users[user_id]
                del self._locks[user_id]


_lock: Optional[object] = None


def get_publish_lock():
    """Process-wide lock, chosen by whether REDIS_URL is configured."""
    global _lock
    if _lock is None:
        settings = get_settings()
        if settings.redis_url:
            client = redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
            _lock = RedisPublishLock(
                client,
                ttl_seconds=settings.publish_lock_ttl_seconds,
                wait_seconds=settings.publish_lock_wait_seconds,
            )
            logger.info("Publish lock backend selected", backend="redis")
        else:
            _lock = InMemoryPublishLock(wait_seconds=settings.publish_lock_wait_seconds)
            logger.info("Publish lock backend selected", backend="memory")
    return _lock
