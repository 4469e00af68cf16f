"""
Redis cache accessor.

This module provides:
- CacheService: JSON get/set/delete/exists/increment/scan over redis.asyncio
- CacheAside: read-through helpers that degrade to "no cache" on failure
- NamespaceVersion: version counters used to invalidate families of keys
"""
import json
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional
from uuid import UUID

import redis.asyncio as redis
from redis.exceptions import RedisError

from storefront.base_service import BaseService


class CacheUnavailable(Exception):
    """The cache server could not be reached or rejected the command."""


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, UUID):
        return str(value)
    raise TypeError(f"Object of type {value.__class__.__name__} is not JSON serializable")


def dumps(value: Any) -> str:
    return json.dumps(value, default=_json_default, separators=(",", ":"))


class CacheService(BaseService):
    """
    Key-value cache over a redis.asyncio client.

    Values are JSON-serialized on write and deserialized on read. Every
    operation raises CacheUnavailable when the server cannot serve it.
    """

    def __init__(self, client: redis.Redis):
        super().__init__("cache")
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "CacheService":
        return cls(redis.from_url(url, decode_responses=True))

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        payload = dumps(value)
        try:
            if ttl:
                await self.client.set(key, payload, ex=int(ttl))
            else:
                await self.client.set(key, payload)
        except RedisError as exc:
            raise CacheUnavailable(str(exc)) from exc
        self.logger.debug("Cache set key=%s ttl=%s", key, ttl)

    async def get(self, key: str) -> Any:
        try:
            raw = await self.client.get(key)
        except RedisError as exc:
            raise CacheUnavailable(str(exc)) from exc
        if raw is None:
            self.logger.debug("Cache miss key=%s", key)
            return None
        self.logger.debug("Cache hit key=%s", key)
        return json.loads(raw)

    async def delete(self, key: str) -> bool:
        """Delete one exact key. Glob characters are not expanded."""
        try:
            removed = await self.client.delete(key)
        except RedisError as exc:
            raise CacheUnavailable(str(exc)) from exc
        self.logger.debug("Cache delete key=%s deleted=%s", key, removed > 0)
        return removed > 0

    async def exists(self, key: str) -> bool:
        try:
            return await self.client.exists(key) == 1
        except RedisError as exc:
            raise CacheUnavailable(str(exc)) from exc

    async def expire(self, key: str, ttl: int) -> bool:
        try:
            return bool(await self.client.expire(key, int(ttl)))
        except RedisError as exc:
            raise CacheUnavailable(str(exc)) from exc

    async def ttl(self, key: str) -> int:
        try:
            return int(await self.client.ttl(key))
        except RedisError as exc:
            raise CacheUnavailable(str(exc)) from exc

    async def increment(self, key: str) -> int:
        try:
            return int(await self.client.incr(key))
        except RedisError as exc:
            raise CacheUnavailable(str(exc)) from exc

    async def keys_matching(self, pattern: str) -> List[str]:
        """Keys matching a glob pattern, collected with SCAN."""
        try:
            keys = [key async for key in self.client.scan_iter(match=pattern, count=500)]
        except RedisError as exc:
            raise CacheUnavailable(str(exc)) from exc
        self.logger.debug("Cache scan pattern=%s count=%d", pattern, len(keys))
        return keys

    async def delete_matching(self, pattern: str) -> int:
        """Scan for ``pattern`` and delete every match. Returns the number removed."""
        keys = await self.keys_matching(pattern)
        if not keys:
            return 0
        try:
            removed = await self.client.delete(*keys)
        except RedisError as exc:
            raise CacheUnavailable(str(exc)) from exc
        self.log_event("cache.bulk_delete", {"pattern": pattern, "removed": removed})
        return int(removed)

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError) as exc:
            self.log_error(exc, context="Cache ping")
            return False

    async def close(self) -> None:
        await self.client.aclose()


class CacheAside:
    """
    Cache-aside helpers for workflows.

    Reads return None when the cache is down so the caller falls back to the
    database. Writes and deletes log the failure and carry on.
    """

    def __init__(self, cache: CacheService, logger: logging.Logger):
        self.cache = cache
        self.logger = logger

    async def read(self, key: str) -> Any:
        try:
            return await self.cache.get(key)
        except CacheUnavailable as exc:
            self.logger.warning("Cache read failed for %s, falling back to database: %s", key, exc)
            return None

    async def write(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        try:
            await self.cache.set(key, value, ttl)
        except CacheUnavailable as exc:
            self.logger.error("Cache write failed for %s: %s", key, exc)

    async def drop(self, key: str) -> bool:
        try:
            return await self.cache.delete(key)
        except CacheUnavailable as exc:
            self.logger.error("Cache delete failed for %s: %s", key, exc)
            return False


class NamespaceVersion:
    """
    Monotonic version counter for a key namespace.

    Keys built with ``key()`` embed the current version; ``bump()`` moves every
    reader to a fresh key space and leaves old entries to expire on their TTL.
    """

    def __init__(self, cache: CacheService, namespace: str):
        self.cache = cache
        self.namespace = namespace
        self.counter_key = f"{namespace}:version"

    async def current(self) -> int:
        try:
            value = await self.cache.get(self.counter_key)
        except CacheUnavailable:
            return 0
        return int(value) if value is not None else 0

    async def key(self, *parts: str) -> str:
        version = await self.current()
        return ":".join([self.namespace, f"v{version}", *parts])

    async def bump(self) -> Optional[int]:
        try:
            return await self.cache.increment(self.counter_key)
        except CacheUnavailable as exc:
            self.cache.log_error(exc, context="Namespace version bump", namespace=self.namespace)
            return None
