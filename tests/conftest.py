import asyncio
from datetime import UTC, datetime

import pytest

from rota.config import RotaConfig
from rota.services.store.memory_slot_store import InMemorySlotStore

COLLECTION = "artifacts/TEST_APP/public/data/family_care_rota_v2"


@pytest.fixture
def rota_config():
    return RotaConfig(
        app_id="TEST_APP",
        collection_key=COLLECTION,
        tasks=("Breakfast", "Lunch", "Dinner"),
        weeks_to_display=8,
        timezone="Europe/London",
        store_backend="memory",
    )


@pytest.fixture
def collection():
    return COLLECTION


@pytest.fixture
def memory_store():
    return InMemorySlotStore()


@pytest.fixture
def fixed_clock():
    moment = datetime(2024, 1, 3, 9, 30, tzinfo=UTC)

    def _clock():
        return moment

    return _clock


class FakePubSub:
    def __init__(self, redis: "FakeRedis"):
        self.redis = redis
        self.channels: set[str] = set()
        self.messages: asyncio.Queue = asyncio.Queue()
        self.closed = False

    async def subscribe(self, channel: str):
        self.channels.add(channel)
        self.redis.pubsubs.append(self)
        self.messages.put_nowait({"type": "subscribe", "channel": channel, "data": 1})

    async def unsubscribe(self, channel: str):
        self.channels.discard(channel)

    async def aclose(self):
        self.closed = True
        if self in self.redis.pubsubs:
            self.redis.pubsubs.remove(self)

    async def listen(self):
        while True:
            message = await self.messages.get()
            if isinstance(message, Exception):
                raise message
            yield message


class FakePipeline:
    def __init__(self, redis: "FakeRedis"):
        self.redis = redis
        self.ops: list[tuple[str, tuple, dict]] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def __getattr__(self, name):
        def _queue(*args, **kwargs):
            self.ops.append((name, args, kwargs))
            return self

        return _queue

    async def execute(self):
        if self.redis.fail_with is not None:
            raise self.redis.fail_with
        results = []
        for name, args, kwargs in self.ops:
            results.append(await getattr(self.redis, name)(*args, **kwargs))
        self.ops = []
        return results


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the slot and name stores."""

    def __init__(self):
        self.hashes: dict[str, dict[str, str]] = {}
        self.sets: dict[str, set[str]] = {}
        self.store: dict[str, str] = {}
        self.pubsubs: list[FakePubSub] = []
        self.published: list[tuple[str, str]] = []
        self.fail_with: Exception | None = None

    def pipeline(self, transaction: bool = True):
        return FakePipeline(self)

    def pubsub(self):
        return FakePubSub(self)

    async def ping(self):
        return True

    async def hset(self, key: str, mapping: dict[str, str]):
        self.hashes.setdefault(key, {}).update(mapping)
        return len(mapping)

    async def hgetall(self, key: str):
        return dict(self.hashes.get(key, {}))

    async def delete(self, key: str):
        existed = key in self.hashes or key in self.store
        self.hashes.pop(key, None)
        self.store.pop(key, None)
        return int(existed)

    async def sadd(self, key: str, member: str):
        self.sets.setdefault(key, set()).add(member)
        return 1

    async def srem(self, key: str, member: str):
        members = self.sets.get(key, set())
        existed = member in members
        members.discard(member)
        return int(existed)

    async def smembers(self, key: str):
        return set(self.sets.get(key, set()))

    async def publish(self, channel: str, message: str):
        self.published.append((channel, message))
        receivers = 0
        for pubsub in list(self.pubsubs):
            if channel in pubsub.channels:
                pubsub.messages.put_nowait({"type": "message", "channel": channel, "data": message})
                receivers += 1
        return receivers

    async def get(self, key: str):
        return self.store.get(key)

    async def set(self, key: str, value: str):
        self.store[key] = value
        return True

    async def aclose(self):
        return None


class FakeRedisClient:
    """Stands in for FastRedisClient with an already initialized pool."""

    def __init__(self, redis: FakeRedis | None = None, initialized: bool = True):
        self.client = redis or FakeRedis()
        self._initialized = initialized
        self.closed = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def pipeline(self, transaction: bool = True):
        return self.client.pipeline(transaction=transaction)

    def pubsub(self):
        return self.client.pubsub()

    async def smembers(self, key: str):
        return await self.client.smembers(key)

    async def ping(self) -> bool:
        return self._initialized

    async def get(self, key: str):
        return await self.client.get(key)

    async def set(self, key: str, value: str) -> bool:
        return await self.client.set(key, value)

    async def close(self):
        self.closed = True
        self._initialized = False


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def fake_redis_client(fake_redis):
    return FakeRedisClient(fake_redis)


@pytest.fixture
def disconnected_redis_client():
    return FakeRedisClient(initialized=False)
