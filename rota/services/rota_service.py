"""
Rota Service
Wires the slot store, the reconciler, the claim protocol and name persistence
for one deployment, and owns the lifetime of the live subscription.
"""

import asyncio
from dataclasses import dataclass
from datetime import date, datetime

from rota.config import RotaConfig
from rota.infrastructure.observability.logging import get_logger
from rota.models.domain.calendar_domain import Week
from rota.models.domain.identity_domain import Identity
from rota.models.domain.slot_domain import ClaimState, SlotClaim, claim_state
from rota.services.calendar.week_generator import generate_weeks
from rota.services.claim_service import ClaimService, Clock, ToggleResult, utc_now
from rota.services.identity.name_store import DisplayNameStore
from rota.services.reconciliation_service import SlotReconciler, SyncStatus
from rota.services.store.slot_store import SlotStore, SlotSubscription

logger = get_logger(__name__)

FIRST_SNAPSHOT_TIMEOUT = 10.0


@dataclass(frozen=True, slots=True)
class SlotView:
    slot_id: str
    task: str
    state: ClaimState
    claim: SlotClaim | None


class RotaService:
    def __init__(
        self,
        config: RotaConfig,
        store: SlotStore,
        names: DisplayNameStore,
        clock: Clock = utc_now,
    ):
        self.config = config
        self.store = store
        self.names = names
        self.clock = clock
        self.reconciler = SlotReconciler(offline=not store.available)
        self.claims = ClaimService(config, store, self.reconciler, clock)
        self._subscription: SlotSubscription | None = None
        self._sync_task: asyncio.Task | None = None

    @property
    def mode(self) -> str:
        return "live" if self.store.available else "offline"

    @property
    def sync_status(self) -> SyncStatus:
        return self.reconciler.status

    @property
    def running(self) -> bool:
        return self._sync_task is not None and not self._sync_task.done()

    async def start(self, first_snapshot_timeout: float | None = FIRST_SNAPSHOT_TIMEOUT) -> None:
        """
        Open the collection subscription and wait for the first snapshot.

        Toggles stay NOT_READY until that snapshot is reconciled, so a slow
        store delays claims but never lets a toggle act on an empty view.
        """
        if self.running:
            return

        self._subscription = self.store.subscribe(self.config.collection_key)
        self._sync_task = asyncio.create_task(
            self.reconciler.run(self._subscription),
            name="rota-sync",
        )
        logger.info(
            "Rota sync started",
            collection=self.config.collection_key,
            backend=self.store.backend,
            mode=self.mode,
        )

        if not await self.reconciler.wait_for_update(0, timeout=first_snapshot_timeout):
            logger.warning(
                "First snapshot not received yet, claims disabled until it arrives",
                timeout=first_snapshot_timeout,
                status=self.sync_status.value,
            )

    async def stop(self) -> None:
        """Cancel the subscription and release the store."""
        if self._subscription is not None:
            await self._subscription.cancel()
            self._subscription = None

        if self._sync_task is not None:
            await self._sync_task
            self._sync_task = None

        await self.store.close()
        logger.info("Rota sync stopped")

    # ---------- identity ----------
    async def identity_for(self, user_id: str | None) -> Identity:
        name = await self.names.get(user_id) if user_id else ""
        return Identity(user_id=user_id, display_name=name)

    async def rename(self, identity: Identity, display_name: str) -> Identity:
        """
        Persist a new display name.

        Raises:
            DisplayNameError: If the name is blank or too long
        """
        stored = await self.names.set(identity.user_id, display_name)
        logger.info("Display name updated", user_id=identity.user_id)
        return identity.renamed(stored)

    # ---------- grid ----------
    def now(self) -> datetime:
        return self.clock().astimezone(self.config.tz)

    def weeks(self, week_count: int | None = None) -> list[Week]:
        return generate_weeks(
            self.now(),
            week_count or self.config.weeks_to_display,
            self.config.tasks,
        )

    def slot_views(self, week: Week, identity: Identity) -> dict[date, list[SlotView]]:
        """Derived slot state per day of a week, keyed by date."""
        views: dict[date, list[SlotView]] = {}
        for day in week.days:
            slots = []
            for task, slot_id in day.slot_ids():
                claim = self.reconciler.claim_for(slot_id)
                slots.append(
                    SlotView(
                        slot_id=slot_id,
                        task=task,
                        state=claim_state(claim, identity.user_id),
                        claim=claim,
                    )
                )
            views[day.date] = slots
        return views

    # ---------- claims ----------
    def can_claim(self, identity: Identity) -> bool:
        return self.claims.can_claim(identity)

    async def toggle(self, identity: Identity, slot_id: str) -> ToggleResult:
        return await self.claims.toggle(identity, slot_id)
