"""Read-through / write-invalidate gateway in front of the loyalty ledger."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Literal, TypeVar

from loguru import logger

from agowash_api.core.errors import CacheUnavailable, DataIntegrityError, LedgerUnavailable
from agowash_api.observability.ledger import LedgerObservabilityStore, get_ledger_store
from agowash_api.observability.tracing import get_tracer
from agowash_api.services.cache import CacheKeys, CacheStore, cache_key
from agowash_api.services.ledger.chain import ChainClient, ChainReceipt
from agowash_api.services.ledger.records import (
    ActiveFreeWash,
    ActivityEntry,
    FreeWashCoupon,
    NFTMetadata,
    checked_int,
)

T = TypeVar("T")

ADMINS_KEY = cache_key(CacheKeys.ADMINS, "list")


def normalize_address(address: str) -> str:
    return address.strip().lower()


class LedgerGateway:
    """Single point of contact with the chain.

    Reads consult the cache first and populate it on a miss. Writes call the
    chain and, only once it has committed, delete every affected key before
    returning. Cache failures are logged and behave like misses; chain
    failures propagate as :class:`LedgerUnavailable` without touching the cache.
    """

    def __init__(
        self,
        chain: ChainClient,
        cache: CacheStore,
        *,
        metrics: LedgerObservabilityStore | None = None,
    ) -> None:
        self._chain = chain
        self._cache = cache
        self._metrics = metrics or get_ledger_store()
        self._tracer = get_tracer()

    # ------------------------------------------------------------------
    # cache plumbing

    async def _cache_get(self, key: str, prefix: str) -> Any | None:
        try:
            value = await self._cache.get(key)
        except CacheUnavailable as exc:
            self._metrics.record_cache_error("get")
            logger.warning("Cache read failed, falling back to ledger", category="cache", key=key, error=str(exc))
            return None
        if value is None:
            self._metrics.record_cache_miss(prefix)
        else:
            self._metrics.record_cache_hit(prefix)
        return value

    async def _cache_set(self, key: str, value: Any) -> None:
        try:
            await self._cache.set(key, value)
        except CacheUnavailable as exc:
            self._metrics.record_cache_error("set")
            logger.warning("Cache write failed", category="cache", key=key, error=str(exc))

    async def _invalidate(self, *keys: str, patterns: tuple[str, ...] = ()) -> None:
        removed = 0
        try:
            if keys:
                removed += await self._cache.delete(*keys)
            for pattern in patterns:
                removed += await self._cache.delete_by_pattern(pattern)
        except CacheUnavailable as exc:
            self._metrics.record_cache_error("invalidate")
            logger.error(
                "Cache invalidation failed",
                category="cache",
                keys=list(keys),
                patterns=list(patterns),
                error=str(exc),
            )
            return
        self._metrics.record_invalidation(removed)

    async def _call_chain(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        self._metrics.record_chain_call(operation)
        with self._tracer.start_as_current_span(f"ledger.{operation}"):
            try:
                return await call()
            except (LedgerUnavailable, DataIntegrityError) as exc:
                self._metrics.record_chain_failure(operation)
                logger.error("Ledger call failed", category="blockchain", operation=operation, error=str(exc))
                raise
            except Exception as exc:
                self._metrics.record_chain_failure(operation)
                logger.error("Ledger call failed", category="blockchain", operation=operation, error=str(exc))
                raise LedgerUnavailable(f"{operation} failed: {exc}", operation=operation) from exc

    async def _read_through(
        self,
        key: str,
        prefix: str,
        operation: str,
        fetch: Callable[[], Awaitable[Any]],
        convert: Callable[[Any], T],
        dump: Callable[[T], Any],
    ) -> T:
        cached = await self._cache_get(key, prefix)
        if cached is not None:
            try:
                return convert(cached)
            except DataIntegrityError:
                logger.warning("Discarding invalid cached ledger value", category="cache", key=key)
        raw = await self._call_chain(operation, fetch)
        value = convert(raw)
        await self._cache_set(key, dump(value))
        return value

    async def _write(
        self,
        operation: str,
        call: Callable[[], Awaitable[ChainReceipt]],
        *keys: str,
        patterns: tuple[str, ...] = (),
    ) -> ChainReceipt:
        receipt = await self._call_chain(operation, call)
        # Once the chain has committed, invalidation must complete even if the
        # caller is cancelled or times out.
        await asyncio.shield(self._invalidate(*keys, patterns=patterns))
        logger.info(
            "Ledger write committed",
            category="blockchain",
            operation=operation,
            tx_ref=receipt.tx_ref,
        )
        return receipt

    # ------------------------------------------------------------------
    # reads

    async def read_points(self, address: str) -> int:
        address = normalize_address(address)
        return await self._read_through(
            cache_key(CacheKeys.POINTS, address),
            CacheKeys.POINTS,
            "getUserPoints",
            lambda: self._chain.get_user_points(address),
            lambda raw: checked_int(raw, field="points"),
            lambda value: value,
        )

    async def read_nft_metadata(self, address: str) -> NFTMetadata:
        address = normalize_address(address)
        return await self._read_through(
            cache_key(CacheKeys.NFT, address),
            CacheKeys.NFT,
            "getNFTMetadata",
            lambda: self._chain.get_nft_metadata(address),
            NFTMetadata.from_chain,
            NFTMetadata.to_payload,
        )

    async def read_free_wash_status(self, address: str) -> FreeWashCoupon:
        address = normalize_address(address)
        return await self._read_through(
            cache_key(CacheKeys.FREE_WASH, address),
            CacheKeys.FREE_WASH,
            "getFreeWashStatus",
            lambda: self._chain.get_free_wash_status(address),
            FreeWashCoupon.from_chain,
            FreeWashCoupon.to_payload,
        )

    async def read_activity_log(
        self, address: str, page: int = 1, page_size: int = 10
    ) -> list[ActivityEntry]:
        """Return one page of activity; ``page`` is 1-based, the chain is 0-based."""

        address = normalize_address(address)
        page = max(page, 1)
        return await self._read_through(
            cache_key(CacheKeys.ACTIVITY, address, page, page_size),
            CacheKeys.ACTIVITY,
            "getActivityLog",
            lambda: self._chain.get_activity_log(address, page - 1, page_size),
            lambda raw: [ActivityEntry.from_chain(item) for item in raw],
            lambda entries: [entry.to_payload() for entry in entries],
        )

    async def read_admins(self) -> list[str]:
        async def fetch() -> list[str]:
            admins = await self._chain.get_admins()
            owner = await self._chain.get_owner()
            return [*admins, owner] if owner else list(admins)

        def convert(raw: Any) -> list[str]:
            if not isinstance(raw, list):
                raise DataIntegrityError("admins: expected a list of addresses")
            seen: dict[str, None] = {}
            for item in raw:
                if item:
                    seen.setdefault(normalize_address(str(item)), None)
            return list(seen)

        return await self._read_through(
            ADMINS_KEY,
            CacheKeys.ADMINS,
            "getAdmins",
            fetch,
            convert,
            lambda admins: admins,
        )

    async def is_admin(self, address: str | None) -> bool:
        if not address:
            return False
        return normalize_address(address) in await self.read_admins()

    async def read_active_free_wash_users(self, page: int = 1, page_size: int = 50) -> list[ActiveFreeWash]:
        page = max(page, 1)
        raw = await self._call_chain(
            "getActiveFreeWashUsers",
            lambda: self._chain.get_active_free_wash_users(page - 1, page_size),
        )
        return [ActiveFreeWash.from_chain(item) for item in raw]

    async def sign_redeem_package(self, address: str, package_type: int, nonce: int) -> str:
        address = normalize_address(address)
        return await self._call_chain(
            "signRedeemPackage",
            lambda: self._chain.sign_redeem_package(address, package_type, nonce),
        )

    # ------------------------------------------------------------------
    # writes

    async def invalidate_user(self, address: str) -> None:
        """Drop every cached view of ``address`` after a change made outside this gateway."""

        address = normalize_address(address)
        await self._invalidate(
            cache_key(CacheKeys.POINTS, address),
            cache_key(CacheKeys.FREE_WASH, address),
            cache_key(CacheKeys.NFT, address),
            patterns=(cache_key(CacheKeys.ACTIVITY, address, "*"),),
        )

    async def write_transaction(self, address: str, timestamp: int) -> ChainReceipt:
        address = normalize_address(address)
        return await self._write(
            "recordTransaction",
            lambda: self._chain.record_transaction(address, timestamp),
            cache_key(CacheKeys.POINTS, address),
            cache_key(CacheKeys.FREE_WASH, address),
            cache_key(CacheKeys.NFT, address),
            patterns=(cache_key(CacheKeys.ACTIVITY, address, "*"),),
        )

    async def write_nft_metadata(self, address: str, uri: str, tier: str, points: int) -> ChainReceipt:
        address = normalize_address(address)
        return await self._write(
            "updateNFTMetadata",
            lambda: self._chain.update_nft_metadata(address, uri, tier, points),
            cache_key(CacheKeys.NFT, address),
        )

    async def mint_loyalty_nft(self, address: str, uri: str) -> ChainReceipt:
        address = normalize_address(address)
        return await self._write(
            "mintLoyaltyNFT",
            lambda: self._chain.mint_loyalty_nft(address, uri),
            cache_key(CacheKeys.NFT, address),
        )

    async def write_admin(self, action: Literal["add", "remove"], address: str) -> ChainReceipt:
        address = normalize_address(address)
        if action == "add":
            operation, call = "addAdmin", self._chain.add_admin
        elif action == "remove":
            operation, call = "removeAdmin", self._chain.remove_admin
        else:
            raise ValueError(f"Unsupported admin action: {action}")
        return await self._write(operation, lambda: call(address), ADMINS_KEY)


__all__ = ["ADMINS_KEY", "LedgerGateway", "normalize_address"]
