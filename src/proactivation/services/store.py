"""Key-value store backends for tokens and entitlement flags."""

import fnmatch
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

import redis.asyncio as redis

from proactivation.config import settings

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract base class for key-value stores.

    Only single-key operations are used; every invariant the service relies on
    holds per key, so no multi-key transactions are needed.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Get a value, or None if missing or expired."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        """Set a value, optionally expiring after ttl_seconds."""
        pass

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys and return how many existed."""
        pass

    @abstractmethod
    async def keys(self, pattern: str) -> list[str]:
        """List keys matching a glob-style pattern."""
        pass

    async def ping(self) -> bool:
        """Check connectivity."""
        return True

    async def close(self) -> None:
        """Release any held connections."""
        return None


class RedisKeyValueStore(KeyValueStore):
    """Store backed by Redis."""

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisKeyValueStore":
        return cls(redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> str | None:
        value = await self.client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        await self.client.set(key, value, ex=ttl_seconds)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self.client.delete(*keys)

    async def keys(self, pattern: str) -> list[str]:
        # SCAN instead of KEYS so large keyspaces don't block the server
        return [
            k.decode("utf-8") if isinstance(k, bytes) else k
            async for k in self.client.scan_iter(match=pattern)
        ]

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def close(self) -> None:
        await self.client.aclose()


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store with TTL support.

    Note: Suitable for development and tests only. Data is lost on restart
    and is not shared between processes.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        # key -> (value, expires_at or None)
        self._data: dict[str, tuple[str, float | None]] = {}

    def _expired(self, key: str) -> bool:
        entry = self._data.get(key)
        if entry is None:
            return True
        _, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return True
        return False

    async def get(self, key: str) -> str | None:
        if self._expired(key):
            return None
        return self._data[key][0]

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        self._data[key] = (value, expires_at)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if not self._expired(key):
                del self._data[key]
                removed += 1
        return removed

    async def keys(self, pattern: str) -> list[str]:
        return [k for k in list(self._data) if not self._expired(k) and fnmatch.fnmatchcase(k, pattern)]

    def clear(self) -> None:
        """Remove everything. Useful for testing."""
        self._data.clear()


def get_store() -> KeyValueStore:
    """Get the configured key-value store."""
    if settings.store_backend == "redis":
        return RedisKeyValueStore.from_url(settings.redis_url)
    elif settings.store_backend == "memory":
        logger.warning("Using in-memory key-value store; data will not survive restarts")
        return InMemoryKeyValueStore()
    else:
        raise ValueError(f"Unknown store backend: {settings.store_backend}")
