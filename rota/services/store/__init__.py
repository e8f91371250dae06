"""
Slot store clients: live (Redis), in-memory and offline implementations of a
shared keyed collection with live full-snapshot subscriptions.
"""

from rota.services.store.factory import build_slot_store
from rota.services.store.memory_slot_store import InMemorySlotStore
from rota.services.store.offline_slot_store import OfflineSlotStore
from rota.services.store.redis_slot_store import RedisSlotStore
from rota.services.store.slot_store import (
    SlotStore,
    SlotStoreError,
    SlotSubscription,
    SlotWriteError,
    Snapshot,
    StoreUnavailableError,
    SubscriptionError,
)

__all__ = [
    "InMemorySlotStore",
    "OfflineSlotStore",
    "RedisSlotStore",
    "SlotStore",
    "SlotStoreError",
    "SlotSubscription",
    "SlotWriteError",
    "Snapshot",
    "StoreUnavailableError",
    "SubscriptionError",
    "build_slot_store",
]
