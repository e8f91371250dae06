"""
Reconciliation of remote snapshots into the local claimed-slot view.

The reconciler owns the only genuinely mutable rota state: the mapping of
currently claimed slots. Each snapshot replaces it wholesale; absence from the
mapping means Unclaimed.
"""

import asyncio
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any

from rota.infrastructure.observability.logging import get_logger, log_sync_status
from rota.models.domain.slot_domain import CLAIMED_BY, SlotClaim
from rota.services.store.slot_store import SlotSubscription, SubscriptionError

logger = get_logger(__name__)


class SyncStatus(str, Enum):
    CONNECTING = "connecting"
    LIVE = "live"
    SYNC_LOST = "sync_lost"
    OFFLINE = "offline"
    STOPPED = "stopped"


def reconcile(snapshot: Mapping[str, Mapping[str, Any]]) -> dict[str, SlotClaim]:
    """
    Reduce a full snapshot to its fully claimed slots.

    Records with an empty claimedBy are unclaimed and omitted. Records with
    claimedBy set but any companion field missing are malformed and omitted
    too, so a partial claim can never reach the view.
    """
    claims: dict[str, SlotClaim] = {}
    for slot_id, record in snapshot.items():
        claim = SlotClaim.from_record(slot_id, record)
        if claim is not None:
            claims[slot_id] = claim
        elif isinstance(record, Mapping) and record.get(CLAIMED_BY):
            logger.warning("Dropping partially populated slot record", slot_id=slot_id)
    return claims


class SlotReconciler:
    """Holds the latest reconciled view and follows a subscription."""

    def __init__(self, offline: bool = False):
        self._claims: MappingProxyType[str, SlotClaim] = MappingProxyType({})
        self._version = 0
        self._changed = asyncio.Condition()
        self._offline = offline
        self.status = SyncStatus.OFFLINE if offline else SyncStatus.CONNECTING
        self.last_error: str | None = None
        self._ended = False

    @property
    def claims(self) -> Mapping[str, SlotClaim]:
        """Read-only view of the claimed slots from the last snapshot."""
        return self._claims

    @property
    def version(self) -> int:
        """Number of snapshots applied so far."""
        return self._version

    def claim_for(self, slot_id: str) -> SlotClaim | None:
        return self._claims.get(slot_id)

    def _set_status(self, status: SyncStatus) -> None:
        if status is self.status:
            return
        previous, self.status = self.status, status
        log_sync_status(previous.value, status.value, self._version, self.last_error)

    def apply(self, snapshot: Mapping[str, Mapping[str, Any]]) -> Mapping[str, SlotClaim]:
        """Replace the whole view with the claims found in a snapshot."""
        self._claims = MappingProxyType(reconcile(snapshot))
        self._version += 1
        if not self._offline:
            self._set_status(SyncStatus.LIVE)
        logger.debug(
            "Snapshot reconciled",
            documents=len(snapshot),
            claimed=len(self._claims),
            version=self._version,
        )
        return self._claims

    async def _notify(self) -> None:
        async with self._changed:
            self._changed.notify_all()

    async def wait_for_update(self, after_version: int, timeout: float | None = None) -> bool:
        """
        Wait until a snapshot newer than after_version has been applied.

        Returns False on timeout, or when the subscription ends first.
        """
        async with self._changed:
            try:
                await asyncio.wait_for(
                    self._changed.wait_for(lambda: self._version > after_version or self._ended),
                    timeout,
                )
            except TimeoutError:
                return False
            return self._version > after_version

    async def run(self, subscription: SlotSubscription) -> None:
        """
        Apply every snapshot from the subscription until it ends.

        A failing subscription leaves the view frozen at its last known state
        and marks the status as sync lost.
        """
        try:
            async for snapshot in subscription:
                self.apply(snapshot)
                await self._notify()
        except SubscriptionError as e:
            self.last_error = str(e)
            self._set_status(SyncStatus.SYNC_LOST)
            self._ended = True
            await self._notify()
            return

        if not self._offline:
            self._set_status(SyncStatus.STOPPED)
        self._ended = True
        await self._notify()
