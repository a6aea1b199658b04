"""Tests for inbound webhook processing."""

import json

import pytest

from claimsync.adapters.registry import AdapterRegistry
from claimsync.adapters.transport import RequestLogBuffer, hmac_sha256_hex
from claimsync.models.records import ClaimRecord
from claimsync.orchestration.carrier_service import CarrierService
from claimsync.orchestration.webhooks import WebhookProcessor, signature_from_headers
from claimsync.storage.config_store import StaticCarrierConfigStore

from conftest import WEBHOOK_SECRET


def signed(payload: dict) -> tuple:
    body = json.dumps(payload)
    return body, hmac_sha256_hex(WEBHOOK_SECRET, body)


@pytest.fixture
def log_buffer():
    return RequestLogBuffer(forward=None)


@pytest.fixture
def processor(service, log_buffer):
    return WebhookProcessor(service, sink=log_buffer)


async def add_filed_claim(claim_store):
    return await claim_store.add_claim(ClaimRecord(
        id="claim-9",
        carrier="mock",
        customer_id="cust-9",
        carrier_claim_id="MCK-1",
        claim_number="MCK2024-000001",
        is_filed_with_carrier=True,
        supplement_count=1,
    ))


@pytest.mark.asyncio
async def test_invalid_signature_is_rejected_without_changes(processor, claim_store, log_buffer):
    await claim_store.add_claim(ClaimRecord(id="claim-9", carrier="mock", carrier_claim_id="MCK-1"))
    body, _ = signed({"event": "claim.approved", "claimId": "MCK-1", "data": {"approvedAmount": 100}})
    before = await claim_store.get_claim("claim-9")

    outcome = await processor.process("mock", body, hmac_sha256_hex("wrong-secret", body))

    assert outcome.success is False
    assert outcome.status_code == 401
    assert outcome.error == "Invalid signature"
    assert await claim_store.get_claim("claim-9") == before
    assert await claim_store.list_intel() == []
    assert log_buffer.entries[0].action == "webhook"
    assert log_buffer.entries[0].status == "failed"


@pytest.mark.asyncio
async def test_unconfigured_carrier_is_bad_request(claim_store, log_buffer):
    service = CarrierService(AdapterRegistry(StaticCarrierConfigStore({}), production=True), claim_store)
    outcome = await WebhookProcessor(service, sink=log_buffer).process("allstate", "{}", "sig")

    assert outcome.status_code == 400
    assert outcome.error == "Carrier not configured"


@pytest.mark.asyncio
async def test_status_change_updates_claim_and_emits_intel(processor, claim_store):
    await claim_store.add_claim(ClaimRecord(
        id="claim-9", carrier="mock", customer_id="cust-9", carrier_claim_id="MCK-1", is_filed_with_carrier=True
    ))
    body, signature = signed({"event": "claim.status_changed", "claimId": "MCK-1", "data": {"status": "REVIEW"}})

    outcome = await processor.process("mock", body, signature)

    assert outcome.success and outcome.processed
    assert outcome.claim_id == "claim-9"
    claim = await claim_store.get_claim("claim-9")
    assert claim.carrier_status == "under-review"
    assert claim.status == "pending"
    assert claim.last_sync_at is not None

    intel = await claim_store.list_intel("claim-9")
    assert len(intel) == 1
    assert intel[0].source == "carrier-webhook"
    assert intel[0].title == "mock Update: claim status changed"
    assert intel[0].content == "Claim status changed to: REVIEW"
    assert intel[0].customer_id == "cust-9"


@pytest.mark.asyncio
async def test_unknown_claim_is_acknowledged(processor, claim_store):
    body, signature = signed({"event": "claim.approved", "claimId": "MCK-404"})

    outcome = await processor.process("mock", body, signature)

    assert outcome.success is True
    assert outcome.processed is False
    assert outcome.status_code == 200
    assert outcome.message == "Claim not found in system"
    assert await claim_store.list_intel() == []


@pytest.mark.asyncio
async def test_approved_event_records_amounts(processor, claim_store):
    await add_filed_claim(claim_store)
    body, signature = signed({
        "event": "claim.approved",
        "claimNumber": "MCK2024-000001",
        "data": {"approvedAmount": "18,500.00", "acv": 16000, "rcv": 19000, "depreciation": 3000},
    })

    outcome = await processor.process("mock", body, signature)

    claim = await claim_store.get_claim("claim-9")
    assert outcome.processed
    assert claim.status == "approved"
    assert claim.approved_value == 18500.0
    assert (claim.acv, claim.rcv, claim.depreciation) == (16000.0, 19000.0, 3000.0)

    intel = (await claim_store.list_intel("claim-9"))[0]
    assert intel.content == "Claim APPROVED for $18,500.00"
    assert intel.priority == "critical"
    assert intel.actionable is True


@pytest.mark.asyncio
async def test_supplement_approved_event(processor, claim_store):
    await add_filed_claim(claim_store)
    body, signature = signed({
        "event": "supplement.approved",
        "claimId": "MCK-1",
        "data": {"approvedAmount": 2400},
    })

    await processor.process("mock", body, signature)

    claim = await claim_store.get_claim("claim-9")
    assert claim.supplement_count == 2
    assert claim.supplement_value == 2400.0
    assert claim.last_supplement_date is not None
    intel = (await claim_store.list_intel("claim-9"))[0]
    assert intel.title == "mock Update: supplement approved"
    assert intel.priority == "high"


@pytest.mark.asyncio
async def test_adjuster_assigned_event(processor, claim_store):
    await add_filed_claim(claim_store)
    body, signature = signed({
        "event": "claim.adjuster_assigned",
        "claimId": "MCK-1",
        "data": {"adjusterName": "Robin Shaw", "adjusterPhone": "5550001111"},
    })

    await processor.process("mock", body, signature)

    claim = await claim_store.get_claim("claim-9")
    assert claim.adjuster_name == "Robin Shaw"
    assert claim.adjuster_phone == "5550001111"
    assert (await claim_store.list_intel("claim-9"))[0].actionable is True


@pytest.mark.asyncio
async def test_malformed_body_with_valid_signature(processor, claim_store, log_buffer):
    body = "{not json"

    outcome = await processor.process("mock", body, hmac_sha256_hex(WEBHOOK_SECRET, body))

    assert outcome.success is False
    assert outcome.status_code == 200
    assert outcome.error
    assert await claim_store.list_intel() == []
    assert log_buffer.entries[0].request_data == body


def test_signature_from_headers():
    assert signature_from_headers({"x-webhook-signature": "abc"}) == "abc"
    assert signature_from_headers({"x-carrier-signature": "first", "x-signature": "last"}) == "first"
    assert signature_from_headers({}) == ""


async def deliver(processor, claim_store, event: str, data: dict):
    """Apply a signed event to the filed claim and return (claim, its single intel record)."""
    await add_filed_claim(claim_store)
    body, signature = signed({"event": event, "claimId": "MCK-1", "data": data})

    outcome = await processor.process("mock", body, signature)

    assert outcome.processed is True
    intel = await claim_store.list_intel("claim-9")
    assert len(intel) == 1
    return await claim_store.get_claim("claim-9"), intel[0]


@pytest.mark.asyncio
async def test_adjuster_assigned_keeps_fields_missing_from_payload(processor, claim_store):
    await claim_store.add_claim(ClaimRecord(
        id="claim-9",
        carrier="mock",
        carrier_claim_id="MCK-1",
        is_filed_with_carrier=True,
        adjuster_name="Old Name",
        adjuster_phone="5551234",
        adjuster_email="old@carrier.test",
        adjuster_company="Acme Adjusting",
    ))
    body, signature = signed({"event": "claim.adjuster_assigned", "claimId": "MCK-1", "data": {"adjusterName": "New"}})

    await processor.process("mock", body, signature)

    claim = await claim_store.get_claim("claim-9")
    assert claim.adjuster_name == "New"
    assert claim.adjuster_phone == "5551234"
    assert claim.adjuster_email == "old@carrier.test"
    assert claim.adjuster_company == "Acme Adjusting"


@pytest.mark.asyncio
async def test_inspection_scheduled_event(processor, claim_store):
    claim, intel = await deliver(processor, claim_store, "claim.inspection_scheduled", {
        "inspectionDate": "2024-06-10T09:00:00Z",
    })

    assert claim.inspection_date.isoformat() == "2024-06-10T09:00:00+00:00"
    assert intel.content == "Inspection scheduled for 2024-06-10"
    assert intel.priority == "high"
    assert intel.actionable is True


@pytest.mark.asyncio
async def test_inspection_complete_event(processor, claim_store):
    claim, intel = await deliver(processor, claim_store, "claim.inspection_complete", {
        "notes": "Hail hits on all slopes",
    })

    assert claim.status == "pending"
    assert intel.content == "Property inspection completed: Hail hits on all slopes"
    assert intel.priority == "medium"
    assert intel.actionable is False


@pytest.mark.asyncio
async def test_denied_event(processor, claim_store):
    claim, intel = await deliver(processor, claim_store, "claim.denied", {
        "status": "DENIED",
        "reason": "Wear and tear",
    })

    assert claim.status == "denied"
    assert claim.carrier_status == "denied"
    assert intel.content == "Claim DENIED: Wear and tear"
    assert intel.priority == "critical"
    assert intel.actionable is True


@pytest.mark.asyncio
async def test_payment_issued_event(processor, claim_store):
    claim, intel = await deliver(processor, claim_store, "claim.payment_issued", {"paymentAmount": 12000})

    assert claim.status == "paid"
    assert claim.total_paid == 12000.0
    assert intel.content == "Payment issued: $12,000.00"
    assert intel.priority == "high"
    assert intel.actionable is False


@pytest.mark.asyncio
async def test_document_requested_event(processor, claim_store):
    claim, intel = await deliver(processor, claim_store, "claim.document_requested", {
        "documentType": "Contractor invoice",
    })

    assert claim.status == "pending"
    assert intel.content == "Document requested: Contractor invoice"
    assert intel.priority == "high"
    assert intel.actionable is True


@pytest.mark.asyncio
async def test_supplement_denied_event(processor, claim_store):
    claim, intel = await deliver(processor, claim_store, "supplement.denied", {"reason": "Not storm related"})

    assert claim.supplement_count == 2
    assert claim.supplement_value is None
    assert claim.last_supplement_date is not None
    assert intel.content == "Supplement denied: Not storm related"
    assert intel.priority == "high"
    assert intel.actionable is True


@pytest.mark.asyncio
async def test_supplement_received_event(processor, claim_store):
    claim, intel = await deliver(processor, claim_store, "supplement.received", {})

    assert claim.supplement_count == 2
    assert claim.supplement_value is None
    assert intel.content == "Supplement request received by carrier"
    assert intel.title == "mock Update: supplement received"
    assert intel.priority == "medium"
    assert intel.actionable is False
