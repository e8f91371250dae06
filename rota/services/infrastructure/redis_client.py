# rota/services/infrastructure/redis_client.py
from urllib.parse import urlparse

import redis.asyncio as redis
from redis.asyncio.client import PubSub
from redis.asyncio.connection import ConnectionPool

from rota.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class FastRedisClient:
    """
    Pooled async Redis connection shared by the slot store and name store.

    Slot traffic goes through pipeline() and pubsub(), which require a live
    pool. Name lookups go through get()/set(), which log and degrade instead
    of raising.
    """

    def __init__(self, redis_url: str, pool_config: dict | None = None):
        self.redis_url = redis_url
        self.pool_config = pool_config or {}
        self.pool = None
        self.client = None
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def host(self) -> str:
        """host:port only, the URL may carry a password."""
        parsed = urlparse(self.redis_url)
        return f"{parsed.hostname or '?'}:{parsed.port or 6379}"

    async def initialize(self):
        """
        Open the pool and check it with a PING.

        Raises:
            RuntimeError: If Redis cannot be reached
        """
        if self._initialized:
            return

        logger.info("Connecting to slot store", host=self.host)
        try:
            self.pool = ConnectionPool.from_url(
                self.redis_url,
                retry_on_timeout=True,
                retry_on_error=[redis.ConnectionError, redis.TimeoutError],
                decode_responses=True,
                **self.pool_config,
            )
            self.client = redis.Redis(connection_pool=self.pool)
            await self.client.ping()
        except Exception as e:
            logger.error("Slot store connection failed", host=self.host, error=str(e))
            self._initialized = False
            raise RuntimeError("Redis initialization failed") from e

        self._initialized = True
        logger.info(
            "Slot store connected",
            host=self.host,
            max_connections=self.pool_config.get("max_connections"),
        )

    async def close(self):
        try:
            if self.client:
                await self.client.aclose()
            if self.pool:
                await self.pool.disconnect()
            logger.info("Slot store connection closed", host=self.host)
        except Exception as e:
            logger.error("Error closing Redis client", error=str(e))
        finally:
            self._initialized = False

    def _require_client(self) -> redis.Redis:
        if not self._initialized or self.client is None:
            raise redis.ConnectionError("Redis client not initialized")
        return self.client

    def pipeline(self, transaction: bool = True):
        """Pipeline on the shared pool; transaction=True wraps it in MULTI/EXEC."""
        return self._require_client().pipeline(transaction=transaction)

    def pubsub(self) -> PubSub:
        return self._require_client().pubsub()

    async def smembers(self, key: str) -> set[str]:
        return await self._require_client().smembers(key)

    async def ping(self) -> bool:
        try:
            return bool(await self._require_client().ping())
        except Exception as e:
            logger.error("Redis ping failed", error=str(e))
            return False

    async def get(self, key: str) -> str | None:
        try:
            return await self._require_client().get(key) or None
        except Exception as e:
            logger.error("Redis GET failed", key=key[:40], error=str(e))
            return None

    async def set(self, key: str, value: str) -> bool:
        try:
            return bool(await self._require_client().set(key, value))
        except Exception as e:
            logger.error("Redis SET failed", key=key[:40], error=str(e))
            return False
