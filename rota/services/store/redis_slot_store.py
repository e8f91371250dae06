"""
Live slot store on Redis.

Layout per collection:
    <collection>:slot:<slot_id>   hash with the four claim fields ("" = null)
    <collection>:index            set of slot ids that currently hold a record
    <collection>:changes          pub/sub channel, one message per write

A release (all four claim fields null) deletes the hash and its index entry,
so the re-read cost follows the live claims rather than the rota's history.

Every change notification triggers a re-read of the whole collection, so
subscribers always receive full snapshots, never diffs.
"""

from collections.abc import Mapping
from typing import Any

from redis.exceptions import RedisError

from rota.infrastructure.observability.logging import get_logger
from rota.models.domain.slot_domain import CLAIM_FIELDS, CLAIMED_AT
from rota.services.infrastructure.redis_client import FastRedisClient
from rota.services.store.slot_store import (
    Deliver,
    SlotStore,
    SlotSubscription,
    SlotWriteError,
    Snapshot,
    StoreUnavailableError,
    SubscriptionError,
)

logger = get_logger(__name__)


def _slot_key(collection_key: str, slot_id: str) -> str:
    return f"{collection_key}:slot:{slot_id}"


def _index_key(collection_key: str) -> str:
    return f"{collection_key}:index"


def _channel(collection_key: str) -> str:
    return f"{collection_key}:changes"


def _encode(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _is_release(fields: Mapping[str, Any]) -> bool:
    """True when the write nulls every claim field."""
    return set(CLAIM_FIELDS) <= set(fields) and all(value is None for value in fields.values())


def _decode(row: Mapping[str, str]) -> dict[str, Any]:
    record: dict[str, Any] = {}
    for field, raw in row.items():
        if raw == "":
            record[field] = None
        elif field == CLAIMED_AT and raw.lstrip("-").isdigit():
            record[field] = int(raw)
        else:
            record[field] = raw
    return record


class RedisSlotStore(SlotStore):
    backend = "redis"

    def __init__(self, redis_client: FastRedisClient):
        self.redis = redis_client

    @property
    def available(self) -> bool:
        return self.redis.initialized

    async def ping(self) -> bool:
        return await self.redis.ping()

    async def read_snapshot(self, collection_key: str) -> Snapshot:
        """Read every record in the collection."""
        slot_ids = sorted(await self.redis.smembers(_index_key(collection_key)))
        if not slot_ids:
            return {}

        async with self.redis.pipeline(transaction=False) as pipe:
            for slot_id in slot_ids:
                pipe.hgetall(_slot_key(collection_key, slot_id))
            rows = await pipe.execute()

        return {slot_id: _decode(row) for slot_id, row in zip(slot_ids, rows) if row}

    def subscribe(self, collection_key: str) -> SlotSubscription:
        channel = _channel(collection_key)

        async def produce(deliver: Deliver) -> None:
            if not self.available:
                raise SubscriptionError("Redis client not initialized")

            pubsub = self.redis.pubsub()
            try:
                await pubsub.subscribe(channel)
                logger.info("Subscribed to slot changes", channel=channel)

                await deliver(await self.read_snapshot(collection_key))

                async for message in pubsub.listen():
                    if message.get("type") != "message":
                        continue
                    await deliver(await self.read_snapshot(collection_key))

                raise SubscriptionError("Redis change stream closed")

            except RedisError as e:
                raise SubscriptionError(f"Redis subscription failed: {e}") from e

            finally:
                try:
                    await pubsub.unsubscribe(channel)
                    await pubsub.aclose()
                except RedisError as e:
                    logger.warning("Error closing slot subscription", channel=channel, error=str(e))

        return SlotSubscription(collection_key, produce).start()

    async def write(
        self,
        collection_key: str,
        slot_id: str,
        fields: Mapping[str, Any],
        merge: bool = True,
    ) -> None:
        if not self.available:
            raise StoreUnavailableError("Redis client not initialized")

        slot_key = _slot_key(collection_key, slot_id)
        mapping = {field: _encode(value) for field, value in fields.items()}
        released = _is_release(fields)

        try:
            # Batched for a single round trip; no read-modify-write happens here
            async with self.redis.pipeline(transaction=True) as pipe:
                if released:
                    pipe.delete(slot_key)
                    pipe.srem(_index_key(collection_key), slot_id)
                else:
                    if not merge:
                        pipe.delete(slot_key)
                    pipe.hset(slot_key, mapping=mapping)
                    pipe.sadd(_index_key(collection_key), slot_id)
                pipe.publish(_channel(collection_key), slot_id)
                await pipe.execute()
        except RedisError as e:
            logger.error("Redis slot write failed", slot_id=slot_id, error=str(e))
            raise SlotWriteError(f"Failed to write slot {slot_id}: {e}") from e

        logger.debug("Slot written", slot_id=slot_id, fields=sorted(mapping), released=released)

    async def close(self) -> None:
        await self.redis.close()
