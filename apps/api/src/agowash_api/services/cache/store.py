"""Redis-backed key/value cache with TTLs and cursor-based bulk invalidation."""

from __future__ import annotations

import json
from typing import Any

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError, ResponseError

from agowash_api.core.errors import CacheUnavailable
from agowash_api.core.settings import settings


class CacheKeys:
    """Key prefixes; keys are structured as ``prefix:identifier[:sub]``."""

    POINTS = "points"
    NFT = "nft"
    FREE_WASH = "freeWash"
    ACTIVITY = "activity"
    ADMINS = "admins"


def cache_key(prefix: str, identifier: str, *sub: object) -> str:
    parts = [prefix, identifier, *(str(part) for part in sub)]
    return ":".join(parts)


class CacheStore:
    """Advisory cache in front of the ledger.

    Entries may disappear at any time (TTL expiry or LRU eviction), so callers
    must treat every read as a possible miss. Redis failures surface as
    :class:`CacheUnavailable` and are never retried here.
    """

    def __init__(
        self,
        redis_client: Redis | None = None,
        *,
        default_ttl_seconds: int | None = None,
        scan_batch_size: int | None = None,
        maxmemory: str | None = None,
        maxmemory_policy: str | None = None,
    ) -> None:
        self._redis = redis_client or Redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        self.default_ttl_seconds = default_ttl_seconds or settings.cache_default_ttl_seconds
        self._scan_batch_size = scan_batch_size or settings.cache_scan_batch_size
        self._maxmemory = maxmemory if maxmemory is not None else settings.cache_maxmemory
        self._maxmemory_policy = (
            maxmemory_policy if maxmemory_policy is not None else settings.cache_maxmemory_policy
        )

    async def start(self) -> None:
        """Verify connectivity and apply the memory budget and eviction policy."""

        try:
            await self._redis.ping()
        except (RedisError, OSError) as exc:
            logger.error("Cache store unreachable at startup", category="cache", error=str(exc))
            return

        try:
            if self._maxmemory:
                await self._redis.config_set("maxmemory", self._maxmemory)
            if self._maxmemory_policy:
                await self._redis.config_set("maxmemory-policy", self._maxmemory_policy)
        except ResponseError as exc:
            # Managed Redis offerings commonly reject CONFIG SET.
            logger.warning(
                "Cache eviction policy could not be applied",
                category="cache",
                maxmemory=self._maxmemory,
                policy=self._maxmemory_policy,
                error=str(exc),
            )
        logger.info(
            "Cache store connected",
            category="cache",
            default_ttl_seconds=self.default_ttl_seconds,
            policy=self._maxmemory_policy,
        )

    async def stop(self) -> None:
        try:
            await self._redis.aclose()
        except (RedisError, OSError) as exc:
            logger.warning("Cache store close failed", category="cache", error=str(exc))
        else:
            logger.info("Cache store closed", category="cache")

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except (RedisError, OSError):
            return False

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self._redis.get(key)
        except (RedisError, OSError) as exc:
            raise CacheUnavailable(f"cache get failed for {key}: {exc}") from exc
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            logger.warning("Discarding undecodable cache payload", category="cache", key=key)
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        ttl = ttl_seconds or self.default_ttl_seconds
        payload = json.dumps(value)
        try:
            await self._redis.set(key, payload, ex=ttl)
        except (RedisError, OSError) as exc:
            raise CacheUnavailable(f"cache set failed for {key}: {exc}") from exc

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return int(await self._redis.delete(*keys))
        except (RedisError, OSError) as exc:
            raise CacheUnavailable(f"cache delete failed for {', '.join(keys)}: {exc}") from exc

    async def delete_by_pattern(self, pattern: str) -> int:
        """Delete keys matching a glob pattern using incremental SCAN batches."""

        deleted = 0
        batch: list[str] = []
        try:
            async for key in self._redis.scan_iter(match=pattern, count=self._scan_batch_size):
                batch.append(key)
                if len(batch) >= self._scan_batch_size:
                    deleted += int(await self._redis.delete(*batch))
                    batch = []
            if batch:
                deleted += int(await self._redis.delete(*batch))
        except (RedisError, OSError) as exc:
            raise CacheUnavailable(f"cache pattern delete failed for {pattern}: {exc}") from exc
        logger.debug("Invalidated cache keys by pattern", category="cache", pattern=pattern, count=deleted)
        return deleted


__all__ = ["CacheKeys", "CacheStore", "cache_key"]
