"""
Tests for the rota service lifecycle and grid derivation.
"""

import pytest

from rota.models.domain.identity_domain import Identity
from rota.models.domain.slot_domain import ClaimState
from rota.services.claim_service import ToggleStatus
from rota.services.identity.name_store import InMemoryDisplayNameStore
from rota.services.reconciliation_service import SyncStatus
from rota.services.rota_service import RotaService
from rota.services.store.offline_slot_store import OfflineSlotStore
from rota.services.store.redis_slot_store import RedisSlotStore


@pytest.fixture
def service(rota_config, memory_store, fixed_clock):
    return RotaService(rota_config, memory_store, InMemoryDisplayNameStore(), clock=fixed_clock)


@pytest.mark.asyncio
async def test_start_goes_live_and_stop_releases(service, memory_store):
    await service.start()
    assert await service.reconciler.wait_for_update(0, timeout=1)

    assert service.running
    assert service.sync_status is SyncStatus.LIVE
    assert memory_store.subscriber_count == 1

    await service.stop()

    assert not service.running
    assert service.sync_status is SyncStatus.STOPPED
    assert memory_store.subscriber_count == 0


@pytest.mark.asyncio
async def test_start_twice_keeps_one_subscription(service, memory_store):
    await service.start()
    await service.start()

    assert memory_store.subscriber_count <= 1
    await service.stop()


@pytest.mark.asyncio
async def test_offline_store_reports_offline(rota_config, fixed_clock):
    service = RotaService(rota_config, OfflineSlotStore(), InMemoryDisplayNameStore(), clock=fixed_clock)
    await service.start()
    await service.reconciler.wait_for_update(0, timeout=1)

    assert service.mode == "offline"
    assert service.sync_status is SyncStatus.OFFLINE
    await service.stop()


@pytest.mark.asyncio
async def test_rename_makes_identity_ready(service):
    await service.start()
    identity = await service.identity_for("A")
    assert not service.can_claim(identity)

    renamed = await service.rename(identity, "Alice")

    assert renamed.display_name == "Alice"
    assert (await service.identity_for("A")).display_name == "Alice"
    assert service.can_claim(renamed)
    await service.stop()


@pytest.mark.asyncio
async def test_weeks_anchor_on_clock_in_configured_timezone(service):
    weeks = service.weeks()

    assert len(weeks) == 8
    assert weeks[0].id == "2024-01-01"
    assert [day.is_today for day in weeks[0].days].index(True) == 2


@pytest.mark.asyncio
async def test_slot_views_follow_reconciled_claims(service, memory_store, rota_config):
    alice = Identity(user_id="A", display_name="Alice")
    await service.start()
    await service.reconciler.wait_for_update(0, timeout=1)
    version = service.reconciler.version

    await service.toggle(alice, "2024-01-02_Lunch")
    assert await service.reconciler.wait_for_update(version, timeout=1)

    views = service.slot_views(service.weeks(1)[0], alice)
    tuesday = {view.task: view for view in views[service.weeks(1)[0].days[1].date]}
    assert tuesday["Lunch"].state is ClaimState.CLAIMED_BY_ME
    assert tuesday["Lunch"].claim.claimant_name == "Alice"
    assert tuesday["Breakfast"].state is ClaimState.UNCLAIMED
    await service.stop()


@pytest.mark.asyncio
async def test_toggle_right_after_start_respects_existing_claim(service, memory_store, rota_config):
    slot_id = "2024-01-01_Breakfast"
    bobs_claim = {
        "claimedBy": "B",
        "claimantName": "Bob",
        "claimantColor": "hsl(0, 70%, 50%)",
        "claimedAt": 1704103200000,
    }
    await memory_store.write(rota_config.collection_key, slot_id, bobs_claim)

    await service.start()
    result = await service.toggle(Identity(user_id="A", display_name="Alice"), slot_id)

    assert result.status is ToggleStatus.IGNORED
    assert result.previous_state is ClaimState.CLAIMED_BY_OTHER
    assert memory_store.snapshot(rota_config.collection_key)[slot_id] == bobs_claim
    await service.stop()


@pytest.mark.asyncio
async def test_start_returns_when_subscription_fails_before_first_snapshot(
    rota_config, disconnected_redis_client, fixed_clock
):
    store = RedisSlotStore(disconnected_redis_client)
    service = RotaService(rota_config, store, InMemoryDisplayNameStore(), clock=fixed_clock)

    await service.start(first_snapshot_timeout=1)

    assert service.sync_status is SyncStatus.SYNC_LOST
    assert service.can_claim(Identity(user_id="A", display_name="Alice")) is False
    await service.stop()
