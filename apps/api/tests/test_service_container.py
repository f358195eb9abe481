import pytest

from agowash_api.core.settings import Settings
from agowash_api.services.blob import InMemoryBlobStore
from agowash_api.services.container import ChainRelayNotConfigured, ServiceContainer
from agowash_api.services.ledger import InMemoryChainClient
from agowash_api.services.notifications import InMemoryEmailBackend
from agowash_api.services.prices import PriceService


def test_dev_admin_addresses_parse_from_comma_separated_string() -> None:
    settings = Settings(chain_dev_admin_addresses=" 0xAA , ,0xBb")

    assert settings.chain_dev_admin_addresses == ["0xaa", "0xbb"]


def test_in_process_ledger_used_without_relay(session_factory, fake_redis) -> None:
    settings = Settings(
        environment="development",
        chain_rpc_url=None,
        ipfs_api_url=None,
        chain_dev_admin_addresses="0x00000000000000000000000000000000000000cc",
        chain_dev_points_per_transaction=25,
    )

    container = ServiceContainer.build(session_factory, settings=settings, redis_client=fake_redis)

    assert isinstance(container.chain, InMemoryChainClient)
    assert container.chain.admins == ["0x00000000000000000000000000000000000000cc"]
    assert container.chain.points_per_transaction == 25
    assert isinstance(container.blob_store, InMemoryBlobStore)


@pytest.mark.asyncio
async def test_start_seeds_prices_and_runs_watcher_until_stop(session_factory, fake_redis, chain) -> None:
    settings = Settings(
        free_wash_watcher_enabled=True,
        free_wash_watcher_interval_seconds=3600,
        shutdown_grace_seconds=0.5,
        cache_maxmemory="32mb",
    )
    container = ServiceContainer.build(
        session_factory,
        settings=settings,
        redis_client=fake_redis,
        chain=chain,
        blob_store=InMemoryBlobStore(),
        email_backend=InMemoryEmailBackend(),
    )

    await container.start()
    try:
        assert container.watcher.is_running
        assert fake_redis.config["maxmemory"] == "32mb"
        async with session_factory() as session:
            prices = await PriceService(session).list_prices()
        assert prices["mobil"]["bodyOnly"]["besar"] == 65000
    finally:
        await container.stop()

    assert not container.watcher.is_running
    assert fake_redis.closed


@pytest.mark.parametrize("environment", ["staging", "production"])
def test_deployed_environments_require_chain_relay(session_factory, fake_redis, environment) -> None:
    settings = Settings(environment=environment, chain_rpc_url=None)

    with pytest.raises(ChainRelayNotConfigured, match="chain_rpc_url"):
        ServiceContainer.build(session_factory, settings=settings, redis_client=fake_redis)


def test_deployed_environment_accepts_injected_chain(session_factory, fake_redis, chain) -> None:
    settings = Settings(environment="production", chain_rpc_url=None)

    container = ServiceContainer.build(session_factory, settings=settings, redis_client=fake_redis, chain=chain)

    assert container.chain is chain
