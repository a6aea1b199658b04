"""Outbound claim data models sent to carriers."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Union


class CauseOfLoss(Enum):
    """Peril that caused the property damage."""
    HAIL = "hail"
    WIND = "wind"
    TORNADO = "tornado"
    HURRICANE = "hurricane"
    FIRE = "fire"
    WATER = "water"
    LIGHTNING = "lightning"
    FALLEN_TREE = "fallen-tree"
    VANDALISM = "vandalism"
    THEFT = "theft"
    OTHER = "other"


class DamageType(Enum):
    """Part of the property that was damaged."""
    ROOF = "roof"
    SIDING = "siding"
    GUTTERS = "gutters"
    WINDOWS = "windows"
    DOORS = "doors"
    INTERIOR = "interior"
    HVAC = "hvac"
    FENCE = "fence"
    GARAGE = "garage"
    DECK = "deck"
    OTHER = "other"


class Severity(Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"


class DocumentType(Enum):
    """Kinds of documents that can be attached to a carrier claim."""
    ESTIMATE = "estimate"
    INVOICE = "invoice"
    PHOTO = "photo"
    CONTRACT = "contract"
    SCOPE_OF_WORK = "scope-of-work"
    CERTIFICATE_OF_COMPLETION = "certificate-of-completion"
    SUPPLEMENT = "supplement"
    OTHER = "other"


@dataclass(frozen=True)
class DamageArea:
    """
    A damaged area of the property.

    Attributes:
        type: Damaged component
        severity: How badly the component is damaged
        description: Optional free-text description
        photos: Optional photo references for the area
    """
    type: DamageType
    severity: Severity
    description: Optional[str] = None
    photos: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ClaimPhoto:
    """A photo attached to a claim, referenced by URL or inline base64 content."""
    filename: str
    category: str
    url: Optional[str] = None
    base64: Optional[str] = None
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    captured_at: Optional[datetime] = None


@dataclass(frozen=True)
class ClaimSubmission:
    """
    Claim filing payload passed once per filing attempt.

    Attributes:
        policy_number: Policy the claim is filed against
        policyholder_first_name: Policyholder first name
        policyholder_last_name: Policyholder last name
        property_address: Street address of the damaged property
        property_city: City of the damaged property
        property_state: State of the damaged property
        property_zip_code: ZIP code of the damaged property
        date_of_loss: Date the loss occurred
        cause_of_loss: Peril that caused the loss
        loss_description: Narrative description of the loss
        damage_areas: Damaged areas with severity
        emergency_repairs_needed: Whether emergency repairs are required
        internal_claim_id: Local claim identifier used for correlation
    """
    policy_number: str
    policyholder_first_name: str
    policyholder_last_name: str
    property_address: str
    property_city: str
    property_state: str
    property_zip_code: str
    date_of_loss: Union[date, datetime]
    cause_of_loss: CauseOfLoss
    loss_description: str
    damage_areas: List[DamageArea]
    emergency_repairs_needed: bool
    internal_claim_id: str
    policyholder_email: Optional[str] = None
    policyholder_phone: Optional[str] = None
    property_type: Optional[str] = None
    time_of_loss: Optional[str] = None
    emergency_repairs_performed: Optional[bool] = None
    temporary_repairs_cost: Optional[float] = None
    initial_estimate: Optional[float] = None
    estimate_document: Optional[str] = None  # URL or base64
    photos: List[ClaimPhoto] = field(default_factory=list)
    previous_claims: Optional[int] = None
    mortgage_company: Optional[str] = None

    @property
    def damage_types(self) -> List[DamageType]:
        """Distinct damage types across all areas, in first-seen order."""
        seen: List[DamageType] = []
        for area in self.damage_areas:
            if area.type not in seen:
                seen.append(area.type)
        return seen


@dataclass(frozen=True)
class SupplementSubmission:
    """Additional claim amendment filed after the original claim."""
    carrier_claim_id: str
    claim_number: str
    reason: str
    additional_damage: List[DamageArea]
    additional_amount: float
    internal_claim_id: str
    scope_of_work: Optional[str] = None
    photos: List[ClaimPhoto] = field(default_factory=list)
    supporting_documents: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DocumentUpload:
    """A document to attach to a carrier claim."""
    carrier_claim_id: str
    document_type: DocumentType
    filename: str
    content: str  # base64 or URL
    content_type: str
    description: Optional[str] = None
