"""
Inert slot store for degraded mode.

Selected when no live store is configured or the live store could not be
initialized. Behaves as a permanent subscription to an empty collection and
rejects every write.
"""

import asyncio
from collections.abc import Mapping
from typing import Any

from rota.infrastructure.observability.logging import get_logger
from rota.services.store.slot_store import (
    Deliver,
    SlotStore,
    SlotSubscription,
    StoreUnavailableError,
)

logger = get_logger(__name__)


class OfflineSlotStore(SlotStore):
    backend = "offline"

    def __init__(self, reason: str = "store not configured"):
        self.reason = reason

    @property
    def available(self) -> bool:
        return False

    def subscribe(self, collection_key: str) -> SlotSubscription:
        async def produce(deliver: Deliver) -> None:
            await deliver({})
            # Never changes; park until cancelled
            await asyncio.Event().wait()

        return SlotSubscription(collection_key, produce).start()

    async def write(
        self,
        collection_key: str,
        slot_id: str,
        fields: Mapping[str, Any],
        merge: bool = True,
    ) -> None:
        logger.warning("Write rejected in offline mode", slot_id=slot_id, reason=self.reason)
        raise StoreUnavailableError(f"Rota is offline: {self.reason}")
