"""Explicitly constructed process-wide services."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agowash_api.core.settings import Settings, get_settings
from agowash_api.observability.ledger import LedgerObservabilityStore, get_ledger_store
from agowash_api.services.background import BackgroundTaskRunner
from agowash_api.services.blob import BlobStore, InMemoryBlobStore, IpfsBlobStore
from agowash_api.services.broadcast import Broadcaster
from agowash_api.services.cache import CacheStore
from agowash_api.services.ledger import ChainClient, HttpChainClient, InMemoryChainClient, LedgerGateway
from agowash_api.services.loyalty import FreeWashTracker, NFTService, RedemptionService
from agowash_api.services.notifications import EmailBackend, NotificationService
from agowash_api.services.prices import PriceService
from agowash_api.services.transactions import TransactionOrchestrator
from agowash_api.workers import FreeWashExpiryWatcher


class ChainRelayNotConfigured(RuntimeError):
    """Raised at startup when a deployed environment has no chain relay."""


def _build_chain(settings: Settings) -> ChainClient:
    if settings.chain_rpc_url:
        return HttpChainClient(
            settings.chain_rpc_url,
            api_key=settings.chain_api_key,
            timeout_seconds=settings.chain_timeout_seconds,
        )
    if settings.environment != "development":
        raise ChainRelayNotConfigured(
            f"chain_rpc_url must be set in {settings.environment}; the in-process ledger is for development only"
        )
    logger.warning("No chain relay configured, using in-process ledger", environment=settings.environment)
    return InMemoryChainClient(
        owner=settings.chain_dev_owner_address,
        admins=list(settings.chain_dev_admin_addresses),
        points_per_transaction=settings.chain_dev_points_per_transaction,
    )


def _build_blob_store(settings: Settings) -> BlobStore:
    if settings.ipfs_api_url:
        return IpfsBlobStore(
            settings.ipfs_api_url,
            gateway_url=settings.ipfs_gateway_url,
            project_id=settings.ipfs_project_id,
            project_secret=settings.ipfs_project_secret,
        )
    logger.warning("No IPFS API configured, metadata documents are kept in memory")
    return InMemoryBlobStore(gateway_url=settings.ipfs_gateway_url)


@dataclass
class ServiceContainer:
    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    cache: CacheStore
    chain: ChainClient
    gateway: LedgerGateway
    blob_store: BlobStore
    notifier: NotificationService
    broadcaster: Broadcaster
    tasks: BackgroundTaskRunner
    free_washes: FreeWashTracker
    nft_service: NFTService
    redemptions: RedemptionService
    orchestrator: TransactionOrchestrator
    watcher: FreeWashExpiryWatcher
    metrics: LedgerObservabilityStore

    @classmethod
    def build(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        settings: Settings | None = None,
        redis_client: Redis | None = None,
        chain: ChainClient | None = None,
        blob_store: BlobStore | None = None,
        email_backend: EmailBackend | None = None,
        metrics: LedgerObservabilityStore | None = None,
    ) -> "ServiceContainer":
        settings = settings or get_settings()
        metrics = metrics or get_ledger_store()
        cache = CacheStore(
            redis_client or Redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True),
            default_ttl_seconds=settings.cache_default_ttl_seconds,
            scan_batch_size=settings.cache_scan_batch_size,
            maxmemory=settings.cache_maxmemory,
            maxmemory_policy=settings.cache_maxmemory_policy,
        )
        chain = chain or _build_chain(settings)
        gateway = LedgerGateway(chain, cache, metrics=metrics)
        blob_store = blob_store or _build_blob_store(settings)
        notifier = NotificationService(email_backend, admin_email=settings.admin_email)
        broadcaster = Broadcaster(queue_size=settings.broadcast_queue_size)
        tasks = BackgroundTaskRunner(failure_log_size=settings.background_failure_log_size)
        nft_service = NFTService(
            gateway,
            blob_store,
            broadcaster,
            session_factory,
            default_photo_url=settings.default_photo_url,
        )
        orchestrator = TransactionOrchestrator(
            gateway,
            notifier,
            broadcaster,
            tasks,
            chain_timeout_seconds=settings.chain_timeout_seconds,
            nft_service=nft_service,
            auto_refresh_nft=settings.nft_auto_refresh_on_tier_change,
        )
        watcher = FreeWashExpiryWatcher(
            gateway,
            notifier,
            broadcaster,
            session_factory,
            interval_seconds=settings.free_wash_watcher_interval_seconds,
            page_size=settings.free_wash_watcher_page_size,
        )
        return cls(
            settings=settings,
            session_factory=session_factory,
            cache=cache,
            chain=chain,
            gateway=gateway,
            blob_store=blob_store,
            notifier=notifier,
            broadcaster=broadcaster,
            tasks=tasks,
            free_washes=FreeWashTracker(gateway),
            nft_service=nft_service,
            redemptions=RedemptionService(gateway, notifier, session_factory),
            orchestrator=orchestrator,
            watcher=watcher,
            metrics=metrics,
        )

    async def start(self) -> None:
        await self.cache.start()
        async with self.session_factory() as session:
            await PriceService(session).seed_defaults()
        if self.settings.free_wash_watcher_enabled:
            self.watcher.start()
        else:
            logger.info("Free wash expiry watcher disabled", reason="free_wash_watcher_enabled is false")

    async def stop(self) -> None:
        if self.watcher.is_running:
            await self.watcher.stop()
        drained = await self.tasks.drain(timeout=self.settings.shutdown_grace_seconds)
        if not drained:
            logger.warning(
                "Shutdown grace period elapsed with background work outstanding",
                grace_seconds=self.settings.shutdown_grace_seconds,
            )
        await self.cache.stop()
        await self.chain.aclose()
        await self.blob_store.aclose()


__all__ = ["ChainRelayNotConfigured", "ServiceContainer"]
