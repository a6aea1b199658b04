"""Data models for claims, carrier responses and local records."""

from .status import (
    CarrierClaimStatus,
    InternalStatus,
    WebhookEventType,
    INTERNAL_STATUS_MAP,
    to_internal_status,
)
from .claim import (
    CauseOfLoss,
    DamageType,
    Severity,
    DocumentType,
    DamageArea,
    ClaimPhoto,
    ClaimSubmission,
    SupplementSubmission,
    DocumentUpload,
)
from .carrier import (
    CarrierConfig,
    CarrierError,
    CarrierResponse,
    AdjusterInfo,
    CarrierDocument,
    ClaimTimelineEvent,
    ClaimFilingResult,
    ClaimStatusResult,
    SupplementResult,
    DocumentUploadResult,
    WebhookEvent,
)
from .records import ClaimRecord, IntelRecord, ActivityRecord

__all__ = [
    "CarrierClaimStatus",
    "InternalStatus",
    "WebhookEventType",
    "INTERNAL_STATUS_MAP",
    "to_internal_status",
    "CauseOfLoss",
    "DamageType",
    "Severity",
    "DocumentType",
    "DamageArea",
    "ClaimPhoto",
    "ClaimSubmission",
    "SupplementSubmission",
    "DocumentUpload",
    "CarrierConfig",
    "CarrierError",
    "CarrierResponse",
    "AdjusterInfo",
    "CarrierDocument",
    "ClaimTimelineEvent",
    "ClaimFilingResult",
    "ClaimStatusResult",
    "SupplementResult",
    "DocumentUploadResult",
    "WebhookEvent",
    "ClaimRecord",
    "IntelRecord",
    "ActivityRecord",
]
