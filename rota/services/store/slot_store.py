"""
Slot Store Client abstraction.

A remote, shared, multi-reader/multi-writer collection of slot records keyed
by slot id. Implementations:

- RedisSlotStore: live store shared by every client (hashes + pub/sub)
- InMemorySlotStore: single-process store for local development and tests
- OfflineSlotStore: inert store used when no live store can be reached

Writes are merge-style and not transactional: concurrent writers to the same
slot race and the store keeps whichever write it commits last.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from rota.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

# slot_id -> raw wire record
Snapshot = dict[str, dict[str, Any]]
Deliver = Callable[[Snapshot], Awaitable[None]]
Producer = Callable[[Deliver], Awaitable[None]]


class SlotStoreError(Exception):
    """Base exception for slot store failures."""

    pass


class SubscriptionError(SlotStoreError):
    """The live subscription ended with an error."""

    pass


class SlotWriteError(SlotStoreError):
    """A single keyed write was not committed."""

    pass


class StoreUnavailableError(SlotWriteError):
    """The store cannot accept writes at all (offline mode)."""

    pass


class _Closed:
    def __init__(self, error: BaseException | None = None):
        self.error = error


class SlotSubscription:
    """
    Live stream of full snapshots for one collection.

    Iterate with ``async for``; each item is the complete set of records at
    that point. Iteration ends with SubscriptionError when the underlying
    stream fails. ``cancel()`` (or leaving an ``async with`` block) stops the
    producer and releases its resources; nothing is delivered afterwards.
    """

    def __init__(self, collection_key: str, producer: Producer):
        self.collection_key = collection_key
        self._producer = producer
        self._queue: asyncio.Queue[Snapshot | _Closed] = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self._cancelled = False
        self._finished = False

    def start(self) -> "SlotSubscription":
        if self._task is None and not self._cancelled:
            self._task = asyncio.create_task(self._run(), name=f"slot-subscription:{self.collection_key}")
        return self

    @property
    def active(self) -> bool:
        return self._task is not None and not self._cancelled and not self._finished

    async def _deliver(self, snapshot: Snapshot) -> None:
        if not self._cancelled:
            self._queue.put_nowait(snapshot)

    async def _run(self) -> None:
        try:
            await self._producer(self._deliver)
            self._queue.put_nowait(_Closed())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "Slot subscription failed",
                collection=self.collection_key,
                error=str(e),
            )
            error = e if isinstance(e, SubscriptionError) else SubscriptionError(str(e))
            if error is not e:
                error.__cause__ = e
            self._queue.put_nowait(_Closed(error))

    def __aiter__(self):
        return self

    async def __anext__(self) -> Snapshot:
        if self._cancelled or self._finished:
            raise StopAsyncIteration
        self.start()

        item = await self._queue.get()
        if isinstance(item, _Closed):
            self._finished = True
            if item.error is not None:
                raise item.error
            raise StopAsyncIteration
        if self._cancelled:
            raise StopAsyncIteration
        return item

    async def cancel(self) -> None:
        """Stop receiving snapshots and release the producer."""
        if self._cancelled:
            return
        self._cancelled = True

        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        # Drop anything queued and wake a reader blocked in __anext__
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_Closed())
        logger.debug("Slot subscription cancelled", collection=self.collection_key)

    async def __aenter__(self) -> "SlotSubscription":
        return self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cancel()


class SlotStore(ABC):
    """Polymorphic slot store client, chosen once at startup."""

    backend: str = "abstract"

    @property
    @abstractmethod
    def available(self) -> bool:
        """Whether writes can currently be attempted."""

    @abstractmethod
    def subscribe(self, collection_key: str) -> SlotSubscription:
        """Open a live subscription delivering full snapshots."""

    @abstractmethod
    async def write(
        self,
        collection_key: str,
        slot_id: str,
        fields: Mapping[str, Any],
        merge: bool = True,
    ) -> None:
        """
        Apply a keyed update to one slot.

        Raises:
            SlotWriteError: If the store did not commit the write
        """

    async def ping(self) -> bool:
        return self.available

    async def close(self) -> None:
        """Release connections held by the store."""
        return None
