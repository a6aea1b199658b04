"""Offline carrier adapter used for development, demos and tests."""

import asyncio
import json
import logging
import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..models.carrier import (
    AdjusterInfo,
    CarrierDocument,
    CarrierError,
    CarrierResponse,
    ClaimFilingResult,
    ClaimStatusResult,
    ClaimTimelineEvent,
    DocumentUploadResult,
    SupplementResult,
    WebhookEvent,
)
from ..models.claim import ClaimSubmission, DocumentUpload, SupplementSubmission
from ..models.status import (
    CarrierClaimStatus,
    WebhookEventType,
    default_status_message,
    lookup_status,
    status_code_for,
)
from ..utils.errors import ErrorType
from ..utils.formatting import parse_datetime, utcnow
from .base import CarrierAdapter

logger = logging.getLogger(__name__)

MOCK_STATUS_MAP: Dict[str, CarrierClaimStatus] = {
    "NEW": CarrierClaimStatus.RECEIVED,
    "ASSIGNED": CarrierClaimStatus.ASSIGNED,
    "SCHEDULED": CarrierClaimStatus.INSPECTION_SCHEDULED,
    "INSPECTED": CarrierClaimStatus.INSPECTION_COMPLETE,
    "REVIEW": CarrierClaimStatus.UNDER_REVIEW,
    "APPROVED": CarrierClaimStatus.APPROVED,
    "PARTIAL": CarrierClaimStatus.PARTIALLY_APPROVED,
    "DENIED": CarrierClaimStatus.DENIED,
    "SUPPLEMENT": CarrierClaimStatus.SUPPLEMENT_REQUESTED,
    "PROCESSING": CarrierClaimStatus.PAYMENT_PROCESSING,
    "PAID": CarrierClaimStatus.PAYMENT_ISSUED,
    "CLOSED": CarrierClaimStatus.CLOSED,
}

# Statuses a synthesized snapshot may report for a claim this process never filed
_SYNTHETIC_STATUSES = [
    CarrierClaimStatus.RECEIVED,
    CarrierClaimStatus.ASSIGNED,
    CarrierClaimStatus.INSPECTION_SCHEDULED,
    CarrierClaimStatus.INSPECTION_COMPLETE,
    CarrierClaimStatus.UNDER_REVIEW,
    CarrierClaimStatus.APPROVED,
    CarrierClaimStatus.PAYMENT_PROCESSING,
]

_INSPECTED_STATUSES = {
    CarrierClaimStatus.INSPECTION_SCHEDULED,
    CarrierClaimStatus.INSPECTION_COMPLETE,
    CarrierClaimStatus.UNDER_REVIEW,
    CarrierClaimStatus.APPROVED,
    CarrierClaimStatus.PAYMENT_PROCESSING,
}

_DEFAULT_ADJUSTER = AdjusterInfo(
    name="John Smith",
    phone="1-800-555-0123",
    email="jsmith@mock-insurance.com",
    company="Mock Adjusting Services",
)


@dataclass
class _StoredClaim:
    submission: ClaimSubmission
    claim_number: str
    status: CarrierClaimStatus
    received_at: datetime
    approved_amount: Optional[float] = None
    paid_amount: Optional[float] = None
    timeline: List[ClaimTimelineEvent] = field(default_factory=list)


class MockCarrierAdapter(CarrierAdapter):
    """
    Simulated carrier with no network access.

    Filed claims are kept in memory so later lookups in the same process are
    consistent; unknown claims get a plausible random snapshot instead of an
    error. Latency and validation failures are simulated.

    Attributes:
        failure_rate: Probability that a filing is rejected with VALIDATION_ERROR
        latency_scale: Multiplier applied to simulated latency (0 disables it)
        rng: Random source, injectable for deterministic tests
    """

    carrier_code = "mock"
    carrier_name = "Mock Insurance Co."

    def __init__(
        self,
        failure_rate: float = 0.05,
        latency_scale: float = 1.0,
        rng: Optional[random.Random] = None,
        **kwargs: Any
    ):
        super().__init__(**kwargs)
        self.failure_rate = failure_rate
        self.latency_scale = latency_scale
        self.rng = rng or random.Random()
        self._claims: Dict[str, _StoredClaim] = {}

    def default_endpoint(self) -> str:
        return "https://api.mock-insurance.dev/v1"

    async def test_connection(self) -> bool:
        return True

    # Claim filing

    async def file_claim(self, claim: ClaimSubmission) -> CarrierResponse[ClaimFilingResult]:
        await self._simulate_delay(0.5, 1.5)

        if self.rng.random() < self.failure_rate:
            logger.info(f"Mock carrier rejecting claim {claim.internal_claim_id} (simulated validation error)")
            return CarrierResponse.fail(CarrierError.of(
                ErrorType.VALIDATION_ERROR,
                "Policy number not found in system",
                retryable=False,
            ))

        now = utcnow()
        suffix = "".join(self.rng.choices(string.ascii_uppercase + string.digits, k=6))
        carrier_claim_id = f"MCK-{int(time.time() * 1000)}-{suffix}"
        claim_number = f"MCK{now.year}-{self.rng.randint(0, 999999):06d}"

        self._claims[carrier_claim_id] = _StoredClaim(
            submission=claim,
            claim_number=claim_number,
            status=CarrierClaimStatus.RECEIVED,
            received_at=now,
            timeline=[ClaimTimelineEvent(date=now, event="Claim Received", description="Claim submitted successfully")],
        )

        adjuster = None
        if self.rng.random() > 0.5:
            adjuster = AdjusterInfo(
                name=_DEFAULT_ADJUSTER.name,
                phone=_DEFAULT_ADJUSTER.phone,
                email=_DEFAULT_ADJUSTER.email,
                company=_DEFAULT_ADJUSTER.company,
                assigned_date=now,
            )

        result = ClaimFilingResult(
            carrier_claim_id=carrier_claim_id,
            claim_number=claim_number,
            status=CarrierClaimStatus.RECEIVED,
            status_message=default_status_message(CarrierClaimStatus.RECEIVED),
            assigned_adjuster=adjuster,
            next_steps=[
                "An adjuster will contact you within 2-3 business days",
                "Gather any additional documentation of damage",
                "Do not dispose of damaged materials until inspection",
            ],
            estimated_response_date=now + timedelta(days=3),
            tracking_url=f"https://claims.mock-insurance.dev/track/{claim_number}",
        )
        logger.info(f"Mock carrier filed claim {claim.internal_claim_id} as {claim_number}")
        return CarrierResponse.ok(result)

    # Status checks

    async def get_claim_status(self, carrier_claim_id: str) -> CarrierResponse[ClaimStatusResult]:
        await self._simulate_delay(0.2, 0.5)
        return self._status_for(carrier_claim_id)

    async def get_claim_by_number(self, claim_number: str) -> CarrierResponse[ClaimStatusResult]:
        await self._simulate_delay(0.2, 0.5)

        for carrier_claim_id, stored in self._claims.items():
            if stored.claim_number == claim_number:
                return self._status_for(carrier_claim_id)

        return self._synthesize_status(f"mock-{claim_number}", claim_number)

    def advance_claim(
        self,
        carrier_claim_id: str,
        status: CarrierClaimStatus,
        approved_amount: Optional[float] = None,
        paid_amount: Optional[float] = None
    ) -> None:
        """
        Move a stored claim to a new status, as the carrier would.

        Raises:
            KeyError: If the claim was not filed through this adapter
        """
        stored = self._claims[carrier_claim_id]
        stored.status = status
        if approved_amount is not None:
            stored.approved_amount = approved_amount
        if paid_amount is not None:
            stored.paid_amount = paid_amount
        stored.timeline.append(ClaimTimelineEvent(date=utcnow(), event=f"Status changed to {status.value}"))

    def _status_for(self, carrier_claim_id: str) -> CarrierResponse[ClaimStatusResult]:
        stored = self._claims.get(carrier_claim_id)
        if stored is None:
            return self._synthesize_status(carrier_claim_id)

        result = ClaimStatusResult(
            carrier_claim_id=carrier_claim_id,
            claim_number=stored.claim_number,
            status=stored.status,
            status_code=status_code_for(stored.status),
            status_message=default_status_message(stored.status),
            last_updated=stored.timeline[-1].date,
            approved_amount=stored.approved_amount,
            paid_amount=stored.paid_amount,
            adjuster=AdjusterInfo(
                name=_DEFAULT_ADJUSTER.name,
                phone=_DEFAULT_ADJUSTER.phone,
                email=_DEFAULT_ADJUSTER.email,
            ),
            timeline=list(stored.timeline),
        )
        return CarrierResponse.ok(result)

    def _synthesize_status(
        self,
        carrier_claim_id: str,
        claim_number: Optional[str] = None
    ) -> CarrierResponse[ClaimStatusResult]:
        now = utcnow()
        status = self.rng.choice(_SYNTHETIC_STATUSES)

        result = ClaimStatusResult(
            carrier_claim_id=carrier_claim_id,
            claim_number=claim_number or f"MCK{now.year}-{self.rng.randint(0, 999999):06d}",
            status=status,
            status_code=status_code_for(status),
            status_message=default_status_message(status),
            last_updated=now,
            approved_amount=round(15000 + self.rng.random() * 10000, 2) if status == CarrierClaimStatus.APPROVED else None,
            paid_amount=12000.0 if status == CarrierClaimStatus.PAYMENT_PROCESSING else None,
            adjuster=AdjusterInfo(
                name="Jane Doe",
                phone="1-800-555-0124",
                email="jdoe@mock-insurance.com",
                company="Mock Claims Services",
                assigned_date=now - timedelta(days=2),
            ),
            inspection_date=now - timedelta(days=1) if status in _INSPECTED_STATUSES else None,
            timeline=[
                ClaimTimelineEvent(date=now - timedelta(days=5), event="Claim Received"),
                ClaimTimelineEvent(date=now - timedelta(days=4), event="Adjuster Assigned"),
                ClaimTimelineEvent(date=now - timedelta(days=2), event="Inspection Scheduled"),
            ],
        )
        return CarrierResponse.ok(result)

    # Supplements and documents

    async def file_supplement(self, supplement: SupplementSubmission) -> CarrierResponse[SupplementResult]:
        await self._simulate_delay(0.5, 1.0)
        stored = self._claims.get(supplement.carrier_claim_id)
        if stored is not None:
            stored.status = CarrierClaimStatus.SUPPLEMENT_REQUESTED
            stored.timeline.append(ClaimTimelineEvent(date=utcnow(), event="Supplement Received", description=supplement.reason))

        return CarrierResponse.ok(SupplementResult(
            supplement_id=f"SUP-{int(time.time() * 1000)}",
            status="submitted",
            submitted_at=utcnow(),
            notes="Supplement received. Under review by claims department.",
        ))

    async def upload_document(self, document: DocumentUpload) -> CarrierResponse[DocumentUploadResult]:
        await self._simulate_delay(0.3, 0.8)
        return CarrierResponse.ok(DocumentUploadResult(
            document_id=f"DOC-{int(time.time() * 1000)}",
            status="uploaded",
            message="Document uploaded successfully",
        ))

    async def get_documents(self, carrier_claim_id: str) -> CarrierResponse[List[CarrierDocument]]:
        await self._simulate_delay(0.2, 0.4)
        now = utcnow()
        documents = [
            CarrierDocument(id="doc-1", type="estimate", name="Initial Estimate.pdf", uploaded_at=now - timedelta(days=3)),
            CarrierDocument(id="doc-2", type="photo", name="Roof Damage Photo 1.jpg", uploaded_at=now - timedelta(days=3)),
            CarrierDocument(id="doc-3", type="scope-of-work", name="Scope of Work.pdf", uploaded_at=now - timedelta(days=1)),
        ]
        return CarrierResponse.ok(documents)

    # Webhooks

    def parse_webhook(self, payload: str) -> WebhookEvent:
        data = json.loads(payload)

        try:
            event_type = WebhookEventType(data.get("event"))
        except ValueError:
            event_type = WebhookEventType.STATUS_CHANGED

        return WebhookEvent(
            event_type=event_type,
            carrier_code=self.carrier_code,
            claim_id=data.get("claimId"),
            claim_number=data.get("claimNumber"),
            timestamp=parse_datetime(data.get("timestamp")) or utcnow(),
            data=data.get("data") or {},
        )

    # Status mapping

    def map_status(self, carrier_status: str) -> CarrierClaimStatus:
        return lookup_status(MOCK_STATUS_MAP, carrier_status)

    async def _simulate_delay(self, low: float, high: float) -> None:
        if self.latency_scale <= 0:
            return
        await asyncio.sleep(self.rng.uniform(low, high) * self.latency_scale)
