import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

from clanhall.clans.sockets import server as clan_sockets
from clanhall.domain.messages import sockets as dm_sockets
from clanhall.infra import postgres
from clanhall.main import app
from clanhall.settings import settings
from clan_fakes import ClanWorld, FakeClansRepository, FakeMessagesRepository


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from clanhall.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""API tests authenticate via X-User-Id headers, which are only accepted in dev mode."""
	original_env = settings.environment
	settings.environment = "dev"
	try:
		yield
	finally:
		settings.environment = original_env


@pytest.fixture(autouse=True)
def detach_namespaces():
	"""Services publish realtime events; keep them inert unless a test installs a namespace."""
	clan_sockets.set_namespace(None)
	dm_sockets.set_namespace(None)
	yield
	clan_sockets.set_namespace(None)
	dm_sockets.set_namespace(None)


@pytest.fixture()
def clans_repo() -> FakeClansRepository:
	return FakeClansRepository()


@pytest_asyncio.fixture
async def world(clans_repo) -> ClanWorld:
	return await ClanWorld(clans_repo).build()


@pytest.fixture()
def messages_repo() -> FakeMessagesRepository:
	return FakeMessagesRepository()


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
