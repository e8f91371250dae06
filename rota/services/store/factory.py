"""
Slot store selection.

The store implementation is chosen exactly once, at startup, from RotaConfig.
A live store that cannot be initialized degrades to the offline store instead
of failing the process.
"""

from rota.config import RotaConfig
from rota.infrastructure.observability.logging import get_logger
from rota.services.infrastructure.redis_client import FastRedisClient
from rota.services.store.memory_slot_store import InMemorySlotStore
from rota.services.store.offline_slot_store import OfflineSlotStore
from rota.services.store.redis_slot_store import RedisSlotStore
from rota.services.store.slot_store import SlotStore

logger = get_logger(__name__)


async def build_slot_store(config: RotaConfig, redis_client: FastRedisClient | None = None) -> SlotStore:
    """Pick and initialize the store for this deployment."""
    if config.store_backend == "memory":
        logger.info("Using in-memory slot store")
        return InMemorySlotStore()

    if config.offline or redis_client is None:
        logger.warning("No live store configured, running in offline mode")
        return OfflineSlotStore("store not configured")

    try:
        await redis_client.initialize()
    except RuntimeError as e:
        logger.error("Live store unavailable, running in offline mode", error=str(e))
        return OfflineSlotStore("store initialization failed")

    return RedisSlotStore(redis_client)
