"""Tests for the offline mock carrier adapter."""

import json
import random
import re

import pytest

from claimsync.adapters.mock import MockCarrierAdapter
from claimsync.adapters.transport import hmac_sha256_hex
from claimsync.models.carrier import CarrierConfig
from claimsync.models.claim import DocumentType, DocumentUpload, SupplementSubmission
from claimsync.models.status import CarrierClaimStatus, WebhookEventType
from claimsync.utils.errors import ErrorType

SECRET = "mock-secret"


async def make_adapter(failure_rate: float = 0.0, seed: int = 7) -> MockCarrierAdapter:
    adapter = MockCarrierAdapter(failure_rate=failure_rate, latency_scale=0.0, rng=random.Random(seed))
    await adapter.initialize(CarrierConfig(carrier_code="mock", carrier_name="Mock Carrier", webhook_secret=SECRET))
    return adapter


@pytest.mark.asyncio
async def test_file_claim_scenario(sample_submission):
    adapter = await make_adapter()

    response = await adapter.file_claim(sample_submission)

    assert response.success
    result = response.data
    assert re.fullmatch(r"MCK\d{4}-\d{6}", result.claim_number)
    assert re.fullmatch(r"MCK-\d+-[A-Z0-9]{6}", result.carrier_claim_id)
    assert result.status == CarrierClaimStatus.RECEIVED
    assert len(result.next_steps) == 3
    assert result.tracking_url == f"https://claims.mock-insurance.dev/track/{result.claim_number}"
    assert result.estimated_response_date is not None


@pytest.mark.asyncio
async def test_file_claim_simulated_validation_failure(sample_submission):
    adapter = await make_adapter(failure_rate=1.0)

    response = await adapter.file_claim(sample_submission)

    assert not response.success
    assert response.error.code == ErrorType.VALIDATION_ERROR.value
    assert response.error.message == "Policy number not found in system"
    assert response.error.retryable is False


@pytest.mark.asyncio
async def test_filed_claim_lookups_are_consistent(sample_submission):
    adapter = await make_adapter()
    filing = (await adapter.file_claim(sample_submission)).data

    by_id = await adapter.get_claim_status(filing.carrier_claim_id)
    by_number = await adapter.get_claim_by_number(filing.claim_number)

    assert by_id.data.status == CarrierClaimStatus.RECEIVED
    assert by_id.data.claim_number == filing.claim_number
    assert by_number.data.carrier_claim_id == filing.carrier_claim_id


@pytest.mark.asyncio
async def test_advance_claim_moves_status(sample_submission):
    adapter = await make_adapter()
    filing = (await adapter.file_claim(sample_submission)).data

    adapter.advance_claim(filing.carrier_claim_id, CarrierClaimStatus.APPROVED, approved_amount=18500.0)
    status = (await adapter.get_claim_status(filing.carrier_claim_id)).data

    assert status.status == CarrierClaimStatus.APPROVED
    assert status.status_code == "APP"
    assert status.approved_amount == 18500.0
    assert status.timeline[-1].event == "Status changed to approved"

    with pytest.raises(KeyError):
        adapter.advance_claim("MCK-unknown", CarrierClaimStatus.CLOSED)


@pytest.mark.asyncio
async def test_unknown_claim_gets_plausible_snapshot():
    adapter = await make_adapter()

    response = await adapter.get_claim_status("MCK-never-filed")

    assert response.success
    snapshot = response.data
    assert snapshot.carrier_claim_id == "MCK-never-filed"
    assert snapshot.adjuster.name == "Jane Doe"
    assert snapshot.status in {
        CarrierClaimStatus.RECEIVED,
        CarrierClaimStatus.ASSIGNED,
        CarrierClaimStatus.INSPECTION_SCHEDULED,
        CarrierClaimStatus.INSPECTION_COMPLETE,
        CarrierClaimStatus.UNDER_REVIEW,
        CarrierClaimStatus.APPROVED,
        CarrierClaimStatus.PAYMENT_PROCESSING,
    }
    if snapshot.status == CarrierClaimStatus.APPROVED:
        assert 15000 <= snapshot.approved_amount <= 25000


@pytest.mark.asyncio
async def test_supplement_and_documents(sample_submission):
    adapter = await make_adapter()
    filing = (await adapter.file_claim(sample_submission)).data

    supplement = await adapter.file_supplement(SupplementSubmission(
        carrier_claim_id=filing.carrier_claim_id,
        claim_number=filing.claim_number,
        reason="Hidden decking damage",
        additional_damage=[],
        additional_amount=2400.0,
        internal_claim_id="claim-1",
    ))
    upload = await adapter.upload_document(DocumentUpload(
        carrier_claim_id=filing.carrier_claim_id,
        document_type=DocumentType.ESTIMATE,
        filename="estimate.pdf",
        content="aGVsbG8=",
        content_type="application/pdf",
    ))
    documents = await adapter.get_documents(filing.carrier_claim_id)

    assert supplement.data.status == "submitted"
    assert upload.data.status == "uploaded"
    assert len(documents.data) == 3
    status = (await adapter.get_claim_status(filing.carrier_claim_id)).data
    assert status.status == CarrierClaimStatus.SUPPLEMENT_REQUESTED


@pytest.mark.asyncio
async def test_verify_webhook():
    adapter = await make_adapter()
    payload = json.dumps({"event": "claim.approved", "claimId": "MCK-1"})
    signature = hmac_sha256_hex(SECRET, payload)

    assert adapter.verify_webhook(payload, signature) is True
    assert adapter.verify_webhook(payload, hmac_sha256_hex("other", payload)) is False
    assert adapter.verify_webhook(payload + " ", signature) is False
    assert adapter.verify_webhook(payload, "short") is False
    assert adapter.verify_webhook(payload, "") is False


@pytest.mark.asyncio
async def test_verify_webhook_without_secret_rejects():
    adapter = MockCarrierAdapter(latency_scale=0.0)
    await adapter.initialize(CarrierConfig(carrier_code="mock", carrier_name="Mock Carrier"))
    payload = "{}"
    assert adapter.verify_webhook(payload, hmac_sha256_hex("anything", payload)) is False


def test_parse_webhook():
    adapter = MockCarrierAdapter()
    event = adapter.parse_webhook(json.dumps({
        "event": "claim.payment_issued",
        "claimId": "MCK-1",
        "claimNumber": "MCK2024-000001",
        "timestamp": "2024-06-01T12:00:00Z",
        "data": {"paymentAmount": 1200},
    }))

    assert event.event_type == WebhookEventType.PAYMENT_ISSUED
    assert event.carrier_code == "mock"
    assert event.claim_id == "MCK-1"
    assert event.data == {"paymentAmount": 1200}
    assert event.timestamp.year == 2024

    fallback = adapter.parse_webhook(json.dumps({"event": "something.else"}))
    assert fallback.event_type == WebhookEventType.STATUS_CHANGED
    assert fallback.data == {}


def test_parse_webhook_rejects_malformed_json():
    with pytest.raises(ValueError):
        MockCarrierAdapter().parse_webhook("{not json")


@pytest.mark.asyncio
async def test_connection_always_available():
    adapter = await make_adapter()
    assert await adapter.test_connection() is True
    assert adapter.base_url == "https://api.mock-insurance.dev/v1"
