"""
Claim Protocol
Turns a toggle on one slot into at most one keyed store write.

Claim state is never stored locally: it is derived at decision time from the
reconciled view and the acting identity. The local view is not touched here;
callers see the outcome only once the next snapshot is reconciled. Two toggles
issued before that snapshot arrives both act on the same stale state.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from rota.config import RotaConfig
from rota.infrastructure.observability.logging import log_slot_toggle
from rota.models.domain.identity_domain import Identity
from rota.models.domain.slot_domain import (
    ClaimState,
    SlotClaim,
    claim_state,
    empty_record,
    parse_slot_id,
)
from rota.services.reconciliation_service import SlotReconciler
from rota.services.store.slot_store import SlotStore, SlotWriteError

Clock = Callable[[], datetime]


class ToggleStatus(str, Enum):
    CLAIMED = "claimed"
    RELEASED = "released"
    IGNORED = "ignored"
    NOT_READY = "not_ready"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ToggleResult:
    slot_id: str
    status: ToggleStatus
    previous_state: ClaimState | None = None
    error: str | None = None

    @property
    def wrote(self) -> bool:
        return self.status in (ToggleStatus.CLAIMED, ToggleStatus.RELEASED)


def utc_now() -> datetime:
    return datetime.now(UTC)


def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class ClaimService:
    """Claim/unclaim state machine for a single rota collection."""

    def __init__(
        self,
        config: RotaConfig,
        store: SlotStore,
        view: SlotReconciler,
        clock: Clock = utc_now,
    ):
        self.config = config
        self.store = store
        self.view = view
        self.clock = clock

    def state_of(self, slot_id: str, identity: Identity) -> ClaimState:
        return claim_state(self.view.claim_for(slot_id), identity.user_id)

    @property
    def synced(self) -> bool:
        """True once the first snapshot has been reconciled."""
        return self.view.version > 0

    def can_claim(self, identity: Identity) -> bool:
        return identity.is_ready and self.store.available and self.synced

    async def toggle(self, identity: Identity, slot_id: str) -> ToggleResult:
        """
        Claim an unclaimed slot, release my own claim, ignore anyone else's.

        Raises:
            InvalidSlotIdError: If slot_id is malformed
        """
        parse_slot_id(slot_id)

        if not self.can_claim(identity):
            if not self.store.available:
                reason = "store unavailable"
            elif not self.synced:
                reason = "waiting for first snapshot"
            else:
                reason = "identity not ready"
            log_slot_toggle(slot_id, identity.user_id, ToggleStatus.NOT_READY.value, reason)
            return ToggleResult(slot_id=slot_id, status=ToggleStatus.NOT_READY)

        state = self.state_of(slot_id, identity)

        if state is ClaimState.CLAIMED_BY_OTHER:
            return ToggleResult(slot_id=slot_id, status=ToggleStatus.IGNORED, previous_state=state)

        if state is ClaimState.UNCLAIMED:
            fields = SlotClaim(
                slot_id=slot_id,
                claimed_by=identity.user_id,
                claimant_name=identity.display_name,
                claimant_color=identity.color,
                claimed_at=epoch_millis(self.clock()),
            ).to_record()
            outcome = ToggleStatus.CLAIMED
        else:
            fields = empty_record()
            outcome = ToggleStatus.RELEASED

        try:
            await self.store.write(self.config.collection_key, slot_id, fields, merge=True)
        except SlotWriteError as e:
            log_slot_toggle(slot_id, identity.user_id, ToggleStatus.FAILED.value, str(e))
            return ToggleResult(
                slot_id=slot_id,
                status=ToggleStatus.FAILED,
                previous_state=state,
                error=str(e),
            )

        log_slot_toggle(slot_id, identity.user_id, outcome.value)
        return ToggleResult(slot_id=slot_id, status=outcome, previous_state=state)
