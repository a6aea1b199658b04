"""Canonical claim status vocabulary and its mapping to internal statuses."""

from enum import Enum
from typing import Any, Dict, FrozenSet


class CarrierClaimStatus(Enum):
    """
    Carrier-agnostic claim status every adapter maps into.

    The values form a loose progression, not a state machine: carriers may
    skip states, re-enter review after a supplement, or report a supplement
    approval after a denial.
    """
    RECEIVED = "received"
    ASSIGNED = "assigned"
    INSPECTION_SCHEDULED = "inspection-scheduled"
    INSPECTION_COMPLETE = "inspection-complete"
    UNDER_REVIEW = "under-review"
    APPROVED = "approved"
    PARTIALLY_APPROVED = "partially-approved"
    DENIED = "denied"
    SUPPLEMENT_REQUESTED = "supplement-requested"
    SUPPLEMENT_APPROVED = "supplement-approved"
    PAYMENT_PROCESSING = "payment-processing"
    PAYMENT_ISSUED = "payment-issued"
    CLOSED = "closed"


class InternalStatus(Enum):
    """Simplified status stored on the local claim record."""
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    SUPPLEMENT = "supplement"
    PAID = "paid"
    CLOSED = "closed"


class WebhookEventType(Enum):
    """Normalized event types for carrier-initiated notifications."""
    STATUS_CHANGED = "claim.status_changed"
    ADJUSTER_ASSIGNED = "claim.adjuster_assigned"
    INSPECTION_SCHEDULED = "claim.inspection_scheduled"
    INSPECTION_COMPLETE = "claim.inspection_complete"
    APPROVED = "claim.approved"
    DENIED = "claim.denied"
    PAYMENT_ISSUED = "claim.payment_issued"
    DOCUMENT_REQUESTED = "claim.document_requested"
    SUPPLEMENT_RECEIVED = "supplement.received"
    SUPPLEMENT_APPROVED = "supplement.approved"
    SUPPLEMENT_DENIED = "supplement.denied"


DEFAULT_CARRIER_STATUS = CarrierClaimStatus.RECEIVED
DEFAULT_INTERNAL_STATUS = InternalStatus.PENDING

INTERNAL_STATUS_MAP: Dict[CarrierClaimStatus, InternalStatus] = {
    CarrierClaimStatus.RECEIVED: InternalStatus.PENDING,
    CarrierClaimStatus.ASSIGNED: InternalStatus.PENDING,
    CarrierClaimStatus.INSPECTION_SCHEDULED: InternalStatus.PENDING,
    CarrierClaimStatus.INSPECTION_COMPLETE: InternalStatus.PENDING,
    CarrierClaimStatus.UNDER_REVIEW: InternalStatus.PENDING,
    CarrierClaimStatus.APPROVED: InternalStatus.APPROVED,
    CarrierClaimStatus.PARTIALLY_APPROVED: InternalStatus.APPROVED,
    CarrierClaimStatus.DENIED: InternalStatus.DENIED,
    CarrierClaimStatus.SUPPLEMENT_REQUESTED: InternalStatus.SUPPLEMENT,
    CarrierClaimStatus.SUPPLEMENT_APPROVED: InternalStatus.SUPPLEMENT,
    CarrierClaimStatus.PAYMENT_PROCESSING: InternalStatus.APPROVED,
    CarrierClaimStatus.PAYMENT_ISSUED: InternalStatus.PAID,
    CarrierClaimStatus.CLOSED: InternalStatus.CLOSED,
}

STATUS_CODES: Dict[CarrierClaimStatus, str] = {
    CarrierClaimStatus.RECEIVED: "RCV",
    CarrierClaimStatus.ASSIGNED: "ASN",
    CarrierClaimStatus.INSPECTION_SCHEDULED: "INS",
    CarrierClaimStatus.INSPECTION_COMPLETE: "INC",
    CarrierClaimStatus.UNDER_REVIEW: "REV",
    CarrierClaimStatus.APPROVED: "APP",
    CarrierClaimStatus.PARTIALLY_APPROVED: "PAP",
    CarrierClaimStatus.DENIED: "DEN",
    CarrierClaimStatus.SUPPLEMENT_REQUESTED: "SUP",
    CarrierClaimStatus.SUPPLEMENT_APPROVED: "SAP",
    CarrierClaimStatus.PAYMENT_PROCESSING: "PPR",
    CarrierClaimStatus.PAYMENT_ISSUED: "PID",
    CarrierClaimStatus.CLOSED: "CLS",
}

DEFAULT_STATUS_MESSAGES: Dict[CarrierClaimStatus, str] = {
    CarrierClaimStatus.RECEIVED: "Your claim has been received and is being processed.",
    CarrierClaimStatus.ASSIGNED: "An adjuster has been assigned to your claim.",
    CarrierClaimStatus.INSPECTION_SCHEDULED: "An inspection has been scheduled for your property.",
    CarrierClaimStatus.INSPECTION_COMPLETE: "The inspection has been completed. Your claim is under review.",
    CarrierClaimStatus.UNDER_REVIEW: "Your claim is being reviewed by the claims department.",
    CarrierClaimStatus.APPROVED: "Your claim has been approved!",
    CarrierClaimStatus.PARTIALLY_APPROVED: "Your claim has been partially approved.",
    CarrierClaimStatus.DENIED: "Unfortunately, your claim has been denied.",
    CarrierClaimStatus.SUPPLEMENT_REQUESTED: "Additional information has been requested for your claim.",
    CarrierClaimStatus.SUPPLEMENT_APPROVED: "Your supplement request has been approved.",
    CarrierClaimStatus.PAYMENT_PROCESSING: "Your payment is being processed.",
    CarrierClaimStatus.PAYMENT_ISSUED: "Payment has been issued for your claim.",
    CarrierClaimStatus.CLOSED: "Your claim has been closed.",
}

# Batch sync skips claims whose internal status is one of these
TERMINAL_INTERNAL_STATUSES: FrozenSet[InternalStatus] = frozenset({
    InternalStatus.CLOSED,
    InternalStatus.DENIED,
})

ACTIONABLE_INTERNAL_STATUSES: FrozenSet[InternalStatus] = frozenset({
    InternalStatus.APPROVED,
    InternalStatus.DENIED,
    InternalStatus.SUPPLEMENT,
})


def lookup_status(table: Dict[str, CarrierClaimStatus], carrier_status: Any) -> CarrierClaimStatus:
    """
    Resolve a carrier status string through a lookup table.

    Keys are compared upper-cased with surrounding whitespace removed.
    Anything that is not a known string (including None and non-strings)
    resolves to the default status instead of raising.

    Args:
        table: Carrier vocabulary keyed by upper-case status token
        carrier_status: Raw status value from the carrier

    Returns:
        Canonical CarrierClaimStatus
    """
    if not isinstance(carrier_status, str):
        return DEFAULT_CARRIER_STATUS
    return table.get(carrier_status.strip().upper(), DEFAULT_CARRIER_STATUS)


def to_internal_status(status: Any) -> InternalStatus:
    """Map a canonical status (enum or its string value) to the internal status."""
    if isinstance(status, str):
        try:
            status = CarrierClaimStatus(status)
        except ValueError:
            return DEFAULT_INTERNAL_STATUS
    return INTERNAL_STATUS_MAP.get(status, DEFAULT_INTERNAL_STATUS)


def status_code_for(status: CarrierClaimStatus) -> str:
    return STATUS_CODES.get(status, "UNK")


def default_status_message(status: CarrierClaimStatus) -> str:
    return DEFAULT_STATUS_MESSAGES.get(status, "Status update available.")
