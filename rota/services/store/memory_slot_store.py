"""
In-process slot store.

Shares one collection between every subscriber in the same process. Used for
local development (ROTA_STORE_BACKEND=memory) and as the store in tests.
"""

import asyncio
import copy
from collections.abc import Mapping
from typing import Any

from rota.infrastructure.observability.logging import get_logger
from rota.services.store.slot_store import (
    Deliver,
    SlotStore,
    SlotSubscription,
    SlotWriteError,
    Snapshot,
    SubscriptionError,
)

logger = get_logger(__name__)


class InMemorySlotStore(SlotStore):
    backend = "memory"

    def __init__(self):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._listeners: dict[str, set[asyncio.Queue]] = {}
        self.writes: list[tuple[str, str, dict[str, Any]]] = []
        self.fail_writes_with: str | None = None

    @property
    def available(self) -> bool:
        return True

    def snapshot(self, collection_key: str) -> Snapshot:
        """Copy of the current records in a collection."""
        return copy.deepcopy(self._collections.get(collection_key, {}))

    def subscribe(self, collection_key: str) -> SlotSubscription:
        async def produce(deliver: Deliver) -> None:
            changes: asyncio.Queue = asyncio.Queue()
            listeners = self._listeners.setdefault(collection_key, set())
            listeners.add(changes)
            try:
                await deliver(self.snapshot(collection_key))
                while True:
                    change = await changes.get()
                    if isinstance(change, BaseException):
                        raise change
                    await deliver(self.snapshot(collection_key))
            finally:
                listeners.discard(changes)

        return SlotSubscription(collection_key, produce).start()

    async def write(
        self,
        collection_key: str,
        slot_id: str,
        fields: Mapping[str, Any],
        merge: bool = True,
    ) -> None:
        # Let other tasks run first, like a network round trip would
        await asyncio.sleep(0)

        if self.fail_writes_with:
            raise SlotWriteError(self.fail_writes_with)

        records = self._collections.setdefault(collection_key, {})
        if merge and slot_id in records:
            records[slot_id].update(dict(fields))
        else:
            records[slot_id] = dict(fields)

        self.writes.append((collection_key, slot_id, dict(fields)))
        logger.debug("Slot written", collection=collection_key, slot_id=slot_id)

        for listener in self._listeners.get(collection_key, ()):
            listener.put_nowait(slot_id)

    def disconnect(self, collection_key: str, reason: str = "connection lost") -> None:
        """End every live subscription on a collection with a SubscriptionError."""
        for listener in list(self._listeners.get(collection_key, ())):
            listener.put_nowait(SubscriptionError(reason))

    @property
    def subscriber_count(self) -> int:
        return sum(len(listeners) for listeners in self._listeners.values())
