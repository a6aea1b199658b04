"""Tests for claim record persistence."""

import json
from datetime import datetime, timezone

import pytest

from claimsync.models.carrier import CarrierConfig
from claimsync.models.records import ActivityRecord, ClaimRecord, IntelRecord
from claimsync.storage.claim_store import InMemoryClaimStore, JsonFileClaimStore
from claimsync.storage.config_store import StaticCarrierConfigStore


@pytest.mark.asyncio
async def test_update_rejects_unknown_claim_and_fields():
    store = InMemoryClaimStore([ClaimRecord(id="c1", carrier="mock")])

    with pytest.raises(KeyError):
        await store.update_claim("missing", {"status": "approved"})
    with pytest.raises(ValueError):
        await store.update_claim("c1", {"favourite_colour": "blue"})


@pytest.mark.asyncio
async def test_returned_records_are_copies():
    store = InMemoryClaimStore([ClaimRecord(id="c1", carrier="mock")])

    claim = await store.get_claim("c1")
    claim.status = "approved"

    assert (await store.get_claim("c1")).status == "pending"


@pytest.mark.asyncio
async def test_find_open_claims_filters_terminal_and_unfiled():
    store = InMemoryClaimStore([
        ClaimRecord(id="open", carrier="mock", is_filed_with_carrier=True),
        ClaimRecord(id="paid", carrier="mock", is_filed_with_carrier=True, status="paid"),
        ClaimRecord(id="closed", carrier="mock", is_filed_with_carrier=True, status="closed"),
        ClaimRecord(id="denied", carrier="mock", is_filed_with_carrier=True, status="denied"),
        ClaimRecord(id="draft", carrier="mock"),
        ClaimRecord(id="elsewhere", carrier="state-farm", is_filed_with_carrier=True),
    ])

    open_ids = [claim.id for claim in await store.find_open_claims("mock")]

    assert open_ids == ["open", "paid"]


@pytest.mark.asyncio
async def test_find_by_carrier_reference():
    store = InMemoryClaimStore([
        ClaimRecord(id="c1", carrier="mock", carrier_claim_id="MCK-1", claim_number="MCK2024-000001"),
    ])

    assert (await store.find_by_carrier_reference(carrier_claim_id="MCK-1")).id == "c1"
    assert (await store.find_by_carrier_reference(claim_number="MCK2024-000001")).id == "c1"
    assert await store.find_by_carrier_reference("MCK-2", "MCK2024-000002") is None
    assert await store.find_by_carrier_reference() is None


@pytest.mark.asyncio
async def test_json_store_round_trip(tmp_path):
    path = tmp_path / "claims.json"
    store = JsonFileClaimStore(str(path))
    synced_at = datetime(2024, 6, 1, 12, 30, tzinfo=timezone.utc)

    await store.add_claim(ClaimRecord(id="c1", carrier="mock", customer_id="cust-1"))
    await store.update_claim("c1", {"approved_value": 1500.0, "last_sync_at": synced_at})
    await store.create_intel(IntelRecord(
        source="carrier-api", source_id="c1", title="t", content="c", priority="high"
    ))
    await store.create_activity(ActivityRecord(
        type="create", entity_type="claim", entity_id="c1", description="filed"
    ))

    data = json.loads(path.read_text())
    assert data["claims"][0]["last_sync_at"] == "2024-06-01T12:30:00Z"

    reloaded = JsonFileClaimStore(str(path))
    claim = await reloaded.get_claim("c1")
    assert claim.approved_value == 1500.0
    assert claim.last_sync_at == synced_at
    assert len(await reloaded.list_intel("c1")) == 1
    assert (await reloaded.list_activities("c1"))[0].description == "filed"


@pytest.mark.asyncio
async def test_config_store_returns_copies():
    store = StaticCarrierConfigStore({})
    store.put(CarrierConfig(carrier_code="mock", carrier_name="Mock"))

    config = await store.get_config("mock")
    config.is_active = False

    assert (await store.get_config("mock")).is_active is True
    assert [c.carrier_code for c in await store.list_configs()] == ["mock"]
    assert await store.get_config("usaa") is None


@pytest.mark.asyncio
async def test_failed_save_rolls_back_in_memory_state(tmp_path):
    path = tmp_path / "claims.json"
    store = JsonFileClaimStore(str(path))
    await store.add_claim(ClaimRecord(id="c1", carrier="mock"))

    path.unlink()
    path.mkdir()

    with pytest.raises(OSError):
        await store.update_claim("c1", {"status": "approved"})
    with pytest.raises(OSError):
        await store.add_claim(ClaimRecord(id="c2", carrier="mock"))
    with pytest.raises(OSError):
        await store.create_intel(IntelRecord(
            source="carrier-api", source_id="c1", title="t", content="c", priority="high"
        ))
    with pytest.raises(OSError):
        await store.create_activity(ActivityRecord(
            type="update", entity_type="claim", entity_id="c1", description="d"
        ))

    assert (await store.get_claim("c1")).status == "pending"
    assert await store.get_claim("c2") is None
    assert await store.list_intel() == []
    assert await store.list_activities() == []
    assert list(tmp_path.glob("*.tmp")) == []
