import fnmatch
import sys
import time
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


def _configure_path() -> None:
    src_path = Path(__file__).resolve().parents[1] / "src"
    if src_path.exists():
        sys.path.insert(0, str(src_path))


_configure_path()

from agowash_api import models  # noqa: E402,F401
from agowash_api.app import create_app  # noqa: E402
from agowash_api.core.settings import Settings  # noqa: E402
from agowash_api.db.base import Base  # noqa: E402
from agowash_api.db.session import get_session  # noqa: E402
from agowash_api.models import User  # noqa: E402
from agowash_api.observability.ledger import LedgerObservabilityStore  # noqa: E402
from agowash_api.services.blob import InMemoryBlobStore  # noqa: E402
from agowash_api.services.cache import CacheStore  # noqa: E402
from agowash_api.services.container import ServiceContainer  # noqa: E402
from agowash_api.services.ledger import InMemoryChainClient, LedgerGateway  # noqa: E402
from agowash_api.services.notifications import InMemoryEmailBackend  # noqa: E402

OWNER = "0x00000000000000000000000000000000000000aa"
ADMIN = "0x00000000000000000000000000000000000000bb"
MEMBER = "0x1111111111111111111111111111111111111111"
API_KEY = "test-key"


class FakeRedis:
    """Dictionary-backed stand-in for ``redis.asyncio.Redis`` with TTL support."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.expires_at: dict[str, float | None] = {}
        self.config: dict[str, str] = {}
        self.scan_counts: list[int | None] = []
        self.closed = False

    def _alive(self, key: str) -> bool:
        deadline = self.expires_at.get(key)
        if deadline is not None and deadline <= time.monotonic():
            self.store.pop(key, None)
            self.expires_at.pop(key, None)
        return key in self.store

    def ttl_of(self, key: str) -> float | None:
        deadline = self.expires_at.get(key)
        return None if deadline is None else deadline - time.monotonic()

    async def ping(self) -> bool:
        return True

    async def config_set(self, name: str, value: str) -> bool:
        self.config[name] = value
        return True

    async def get(self, key: str) -> str | None:
        return self.store.get(key) if self._alive(key) else None

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.store[key] = value
        self.expires_at[key] = time.monotonic() + ex if ex else None
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._alive(key):
                del self.store[key]
                self.expires_at.pop(key, None)
                removed += 1
        return removed

    async def scan_iter(self, match: str | None = None, count: int | None = None):
        self.scan_counts.append(count)
        for key in list(self.store):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def aclose(self) -> None:
        self.closed = True


class UnavailableRedis:
    """Every command fails as if the server were down."""

    def __init__(self) -> None:
        self.calls = 0

    def _fail(self):
        self.calls += 1
        raise RedisConnectionError("connection refused")

    async def ping(self):
        self._fail()

    async def get(self, key):
        self._fail()

    async def set(self, key, value, ex=None):
        self._fail()

    async def delete(self, *keys):
        self._fail()

    async def scan_iter(self, match=None, count=None):
        self._fail()
        yield  # pragma: no cover

    async def aclose(self):
        return None


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def unavailable_redis() -> UnavailableRedis:
    return UnavailableRedis()


@pytest.fixture
def member_address() -> str:
    return MEMBER


@pytest.fixture
def admin_address() -> str:
    return ADMIN


@pytest.fixture
def owner_address() -> str:
    return OWNER


@pytest.fixture
def chain() -> InMemoryChainClient:
    return InMemoryChainClient(owner=OWNER, admins=[ADMIN])


@pytest.fixture
def metrics() -> LedgerObservabilityStore:
    return LedgerObservabilityStore()


@pytest.fixture
def cache(fake_redis) -> CacheStore:
    return CacheStore(fake_redis, default_ttl_seconds=600, scan_batch_size=100)


@pytest.fixture
def gateway(chain, cache, metrics) -> LedgerGateway:
    return LedgerGateway(chain, cache, metrics=metrics)


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        api_key=API_KEY,
        admin_email="ops@agowash.test",
        chain_timeout_seconds=1.0,
        shutdown_grace_seconds=1.0,
        free_wash_watcher_enabled=False,
        nft_auto_refresh_on_tier_change=False,
    )


@pytest_asyncio.fixture
async def services(session_factory, fake_redis, chain, metrics, test_settings):
    container = ServiceContainer.build(
        session_factory,
        settings=test_settings,
        redis_client=fake_redis,
        chain=chain,
        blob_store=InMemoryBlobStore(),
        email_backend=InMemoryEmailBackend(),
        metrics=metrics,
    )
    try:
        yield container
    finally:
        await container.tasks.drain(timeout=1.0)


@pytest_asyncio.fixture
async def app_with_services(services, session_factory):
    app = create_app(services)

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    try:
        yield app, services
    finally:
        app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app_with_services):
    app, _ = app_with_services
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {API_KEY}"},
    ) as http_client:
        yield http_client


@pytest.fixture
def create_member(session_factory):
    """Insert a registered member directly, bypassing the registration flow."""

    async def _create(address: str = MEMBER, **overrides) -> User:
        values = {
            "user_address": address.lower(),
            "name": "Budi",
            "motorbike_type": "Honda Vario",
            "date_of_birth": "1994-02-03",
            "email": "budi@example.com",
            "photo_url": "https://ipfs.io/ipfs/photo",
            "metadata_uri": None,
        }
        values.update(overrides)
        async with session_factory() as session:
            user = User(**values)
            session.add(user)
            await session.commit()
            return user

    return _create
