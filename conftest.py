"""Shared fixtures for carrier integration tests."""

import random
import time
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from claimsync.adapters.base import CarrierAdapter
from claimsync.adapters.mock import MockCarrierAdapter
from claimsync.adapters.registry import AdapterRegistry
from claimsync.models.carrier import (
    AdjusterInfo,
    CarrierConfig,
    CarrierError,
    CarrierResponse,
    ClaimFilingResult,
    ClaimStatusResult,
    DocumentUploadResult,
    SupplementResult,
    WebhookEvent,
)
from claimsync.models.claim import CauseOfLoss, ClaimSubmission, DamageArea, DamageType, Severity
from claimsync.models.records import ClaimRecord
from claimsync.models.status import CarrierClaimStatus, WebhookEventType, status_code_for
from claimsync.orchestration.carrier_service import CarrierService
from claimsync.storage.claim_store import InMemoryClaimStore
from claimsync.storage.config_store import StaticCarrierConfigStore
from claimsync.utils.errors import ErrorType

WEBHOOK_SECRET = "whsec-test"


def make_snapshot(
    status: CarrierClaimStatus = CarrierClaimStatus.UNDER_REVIEW,
    carrier_claim_id: str = "SCR-1",
    claim_number: str = "SCR2024-000001",
    **overrides: Any
) -> ClaimStatusResult:
    fields: Dict[str, Any] = dict(
        carrier_claim_id=carrier_claim_id,
        claim_number=claim_number,
        status=status,
        status_code=status_code_for(status),
        status_message=f"Carrier says {status.value}",
        last_updated=datetime(2024, 6, 1, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return ClaimStatusResult(**fields)


class ScriptedAdapter(CarrierAdapter):
    """Adapter returning queued responses and recording every call."""

    carrier_code = "scripted"
    carrier_name = "Scripted Carrier"

    def __init__(self, **kwargs: Any):
        super().__init__(**kwargs)
        self.filing_responses: List[Any] = []
        self.status_responses: List[Any] = []
        self.default_status: Optional[CarrierResponse[ClaimStatusResult]] = None
        self.calls: List[tuple] = []

    def default_endpoint(self) -> str:
        return "https://scripted.carrier.invalid/v1"

    def _next(self, queue: List[Any], fallback: Any) -> Any:
        item = queue.pop(0) if queue else fallback
        if isinstance(item, Exception):
            raise item
        return item

    async def file_claim(self, claim: ClaimSubmission) -> CarrierResponse[ClaimFilingResult]:
        self.calls.append(("file_claim", claim.internal_claim_id, time.monotonic()))
        return self._next(self.filing_responses, CarrierResponse.ok(ClaimFilingResult(
            carrier_claim_id="SCR-1",
            claim_number="SCR2024-000001",
            status=CarrierClaimStatus.RECEIVED,
            assigned_adjuster=AdjusterInfo(name="Pat Lee", phone="5551234567", company="Scripted Adjusting"),
        )))

    async def get_claim_status(self, carrier_claim_id: str) -> CarrierResponse[ClaimStatusResult]:
        self.calls.append(("get_claim_status", carrier_claim_id, time.monotonic()))
        fallback = self.default_status or CarrierResponse.ok(make_snapshot(carrier_claim_id=carrier_claim_id))
        return self._next(self.status_responses, fallback)

    async def get_claim_by_number(self, claim_number: str) -> CarrierResponse[ClaimStatusResult]:
        self.calls.append(("get_claim_by_number", claim_number, time.monotonic()))
        fallback = self.default_status or CarrierResponse.ok(make_snapshot(claim_number=claim_number))
        return self._next(self.status_responses, fallback)

    async def file_supplement(self, supplement) -> CarrierResponse[SupplementResult]:
        self.calls.append(("file_supplement", supplement.carrier_claim_id, time.monotonic()))
        return CarrierResponse.ok(SupplementResult(
            supplement_id="SUP-1",
            status="submitted",
            submitted_at=datetime(2024, 6, 2, tzinfo=timezone.utc),
        ))

    async def upload_document(self, document) -> CarrierResponse[DocumentUploadResult]:
        self.calls.append(("upload_document", document.carrier_claim_id, time.monotonic()))
        return CarrierResponse.ok(DocumentUploadResult(document_id="DOC-1", status="uploaded"))

    async def get_documents(self, carrier_claim_id: str):
        self.calls.append(("get_documents", carrier_claim_id, time.monotonic()))
        return CarrierResponse.ok([])

    def parse_webhook(self, payload: str) -> WebhookEvent:
        return WebhookEvent(
            event_type=WebhookEventType.STATUS_CHANGED,
            carrier_code=self.carrier_code,
            claim_id=None,
            claim_number=None,
            timestamp=datetime(2024, 6, 1, tzinfo=timezone.utc),
        )

    def map_status(self, carrier_status: str) -> CarrierClaimStatus:
        try:
            return CarrierClaimStatus(carrier_status)
        except ValueError:
            return CarrierClaimStatus.RECEIVED


def retryable_failure(message: str = "Service unavailable") -> CarrierResponse[Any]:
    return CarrierResponse.fail(CarrierError(code="HTTP_503", message=message, retryable=True))


def validation_failure(message: str = "Policy number not found in system") -> CarrierResponse[Any]:
    return CarrierResponse.fail(CarrierError.of(ErrorType.VALIDATION_ERROR, message, retryable=False))


def quiet_adapter_factory(adapter_class):
    """Build adapters with no simulated latency or random failures."""
    if issubclass(adapter_class, MockCarrierAdapter):
        return adapter_class(failure_rate=0.0, latency_scale=0.0, rng=random.Random(1234))
    return adapter_class()


@pytest.fixture
def sample_submission() -> ClaimSubmission:
    return ClaimSubmission(
        policy_number="POL-123",
        policyholder_first_name="Dana",
        policyholder_last_name="Rivera",
        policyholder_email="dana@example.com",
        policyholder_phone="(555) 123-4567",
        property_address="12 Elm St",
        property_city="Springfield",
        property_state="IL",
        property_zip_code="62701",
        date_of_loss=date(2024, 5, 20),
        cause_of_loss=CauseOfLoss.HAIL,
        loss_description="Hail storm damaged the roof",
        damage_areas=[DamageArea(type=DamageType.ROOF, severity=Severity.SEVERE)],
        emergency_repairs_needed=False,
        internal_claim_id="claim-1",
    )


@pytest.fixture
def carrier_configs() -> Dict[str, CarrierConfig]:
    return {
        "mock": CarrierConfig(
            carrier_code="mock",
            carrier_name="Mock Insurance",
            webhook_secret=WEBHOOK_SECRET,
            supports_direct_filing=True,
            supports_status_updates=True,
        ),
        "scripted": CarrierConfig(
            carrier_code="scripted",
            carrier_name="Scripted Carrier",
            webhook_secret=WEBHOOK_SECRET,
            supports_direct_filing=True,
        ),
    }


@pytest.fixture
def registry(carrier_configs) -> AdapterRegistry:
    return AdapterRegistry(
        StaticCarrierConfigStore(carrier_configs),
        adapter_classes={"mock": MockCarrierAdapter, "scripted": ScriptedAdapter},
        adapter_factory=quiet_adapter_factory,
    )


@pytest.fixture
def claim_store() -> InMemoryClaimStore:
    return InMemoryClaimStore(claims=[
        ClaimRecord(id="claim-1", carrier="mock", customer_id="cust-1"),
    ])


@pytest.fixture
def service(registry, claim_store) -> CarrierService:
    return CarrierService(registry, claim_store, pacing_delay=0.0)
