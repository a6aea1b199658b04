"""Carrier configuration and response data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from ..utils.errors import ErrorType
from ..utils.formatting import parse_datetime, utcnow
from .status import CarrierClaimStatus, WebhookEventType

T = TypeVar("T")


@dataclass
class CarrierConfig:
    """
    Connection settings for a single carrier.

    The adapter holds the authoritative copy during its lifetime; token
    refresh updates access_token, refresh_token and token_expiry in place.

    Attributes:
        carrier_code: Stable lowercase carrier code (e.g. "state-farm")
        carrier_name: Display name
        api_endpoint: Optional override for the carrier's default base URL
        api_key: API key credential
        client_id: OAuth client id
        client_secret: OAuth client secret
        access_token: Current bearer token
        refresh_token: OAuth refresh token
        token_expiry: When access_token expires
        webhook_secret: Shared secret for webhook signatures
        is_test_mode: Use the carrier's sandbox environment
    """
    carrier_code: str
    carrier_name: str
    api_endpoint: Optional[str] = None
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expiry: Optional[datetime] = None
    webhook_secret: Optional[str] = None
    is_test_mode: bool = True
    is_active: bool = True
    supports_direct_filing: bool = False
    supports_status_updates: bool = False

    def token_expired(self, now: Optional[datetime] = None) -> bool:
        if self.token_expiry is None:
            return False
        return self.token_expiry < (now or utcnow())

    @classmethod
    def from_dict(cls, carrier_code: str, data: Dict[str, Any]) -> "CarrierConfig":
        """
        Build a CarrierConfig from a configuration mapping.

        Args:
            carrier_code: Carrier code the mapping belongs to
            data: Mapping with snake_case keys (as found in config.yaml)

        Returns:
            CarrierConfig instance
        """
        return cls(
            carrier_code=carrier_code,
            carrier_name=data.get("carrier_name") or data.get("name") or carrier_code,
            api_endpoint=data.get("api_endpoint") or None,
            api_key=data.get("api_key") or None,
            api_secret=data.get("api_secret") or None,
            client_id=data.get("client_id") or None,
            client_secret=data.get("client_secret") or None,
            access_token=data.get("access_token") or None,
            refresh_token=data.get("refresh_token") or None,
            token_expiry=parse_datetime(data.get("token_expiry")),
            webhook_secret=data.get("webhook_secret") or None,
            is_test_mode=bool(data.get("is_test_mode", True)),
            is_active=bool(data.get("is_active", True)),
            supports_direct_filing=bool(data.get("supports_direct_filing", False)),
            supports_status_updates=bool(data.get("supports_status_updates", False)),
        )


@dataclass
class CarrierError:
    """
    Tagged failure returned by carrier operations.

    Attributes:
        code: Stable error code (ErrorType value or carrier/HTTP code)
        message: Human-readable error message
        retryable: Whether re-attempting the same call may succeed
        details: Optional carrier-supplied details
    """
    code: str
    message: str
    retryable: bool
    details: Optional[Dict[str, Any]] = None

    @classmethod
    def of(
        cls,
        error_type: ErrorType,
        message: str,
        retryable: bool,
        details: Optional[Dict[str, Any]] = None
    ) -> "CarrierError":
        return cls(code=error_type.value, message=message, retryable=retryable, details=details)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details or {},
        }


@dataclass
class CarrierResponse(Generic[T]):
    """Result of a carrier operation: either data or a CarrierError."""
    success: bool
    data: Optional[T] = None
    error: Optional[CarrierError] = None
    raw_response: Optional[Any] = None

    @classmethod
    def ok(cls, data: T, raw_response: Optional[Any] = None) -> "CarrierResponse[T]":
        return cls(success=True, data=data, raw_response=raw_response)

    @classmethod
    def fail(cls, error: CarrierError, raw_response: Optional[Any] = None) -> "CarrierResponse[T]":
        return cls(success=False, error=error, raw_response=raw_response)

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None


@dataclass
class AdjusterInfo:
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    assigned_date: Optional[datetime] = None


@dataclass
class CarrierDocument:
    id: str
    type: str
    name: str
    uploaded_at: datetime
    url: Optional[str] = None


@dataclass
class ClaimTimelineEvent:
    date: datetime
    event: str
    description: Optional[str] = None
    actor: Optional[str] = None


@dataclass
class ClaimFilingResult:
    """
    Carrier acknowledgment of a filed claim.

    Attributes:
        carrier_claim_id: Carrier-assigned claim identifier
        claim_number: Human-facing claim number
        status: Initial canonical status
        status_message: Optional carrier message
        assigned_adjuster: Adjuster, when assigned at filing time
        next_steps: Guidance for the policyholder
        estimated_response_date: When the carrier expects to respond
        tracking_url: Public tracking link
    """
    carrier_claim_id: str
    claim_number: str
    status: CarrierClaimStatus
    status_message: Optional[str] = None
    assigned_adjuster: Optional[AdjusterInfo] = None
    next_steps: List[str] = field(default_factory=list)
    estimated_response_date: Optional[datetime] = None
    tracking_url: Optional[str] = None


@dataclass
class ClaimStatusResult:
    """
    Full status snapshot exchanged on every poll or webhook.

    Financial figures are optional and carrier-dependent.
    """
    carrier_claim_id: str
    claim_number: str
    status: CarrierClaimStatus
    status_code: str
    status_message: str
    last_updated: datetime
    approved_amount: Optional[float] = None
    paid_amount: Optional[float] = None
    depreciation: Optional[float] = None
    acv: Optional[float] = None
    rcv: Optional[float] = None
    adjuster: Optional[AdjusterInfo] = None
    inspection_scheduled: Optional[bool] = None
    inspection_date: Optional[datetime] = None
    inspection_notes: Optional[str] = None
    documents: List[CarrierDocument] = field(default_factory=list)
    timeline: List[ClaimTimelineEvent] = field(default_factory=list)


@dataclass
class SupplementResult:
    supplement_id: str
    status: str  # "submitted" | "under-review" | "approved" | "denied"
    submitted_at: datetime
    approved_amount: Optional[float] = None
    notes: Optional[str] = None


@dataclass
class DocumentUploadResult:
    document_id: str
    status: str  # "uploaded" | "processing" | "accepted" | "rejected"
    message: Optional[str] = None


@dataclass
class WebhookEvent:
    """
    Normalized carrier webhook notification.

    Attributes:
        event_type: Normalized event type
        carrier_code: Carrier that sent the event
        claim_id: Carrier claim identifier
        claim_number: Carrier claim number
        timestamp: When the carrier emitted the event
        data: Carrier-specific payload
    """
    event_type: WebhookEventType
    carrier_code: str
    claim_id: Optional[str]
    claim_number: Optional[str]
    timestamp: datetime
    data: Dict[str, Any] = field(default_factory=dict)
