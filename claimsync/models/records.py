"""Persisted claim record and the side-records written during sync."""

import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, Optional

from ..utils.formatting import format_datetime, parse_datetime, utcnow
from .status import DEFAULT_INTERNAL_STATUS

_DATETIME_FIELDS = {"inspection_date", "last_sync_at", "last_supplement_date", "date_of_loss", "created_at"}


@dataclass
class ClaimRecord:
    """
    Local claim record kept in sync with the carrier's system of record.

    Created unfiled by claim intake; becomes filed once a filing succeeds.
    `status` holds the internal status value, `carrier_status` the raw
    canonical value last reported by the carrier.
    """
    id: str
    carrier: str
    customer_id: Optional[str] = None
    carrier_claim_id: Optional[str] = None
    claim_number: Optional[str] = None
    carrier_status: Optional[str] = None
    status: str = DEFAULT_INTERNAL_STATUS.value
    approved_value: Optional[float] = None
    total_paid: Optional[float] = None
    depreciation: Optional[float] = None
    acv: Optional[float] = None
    rcv: Optional[float] = None
    adjuster_name: Optional[str] = None
    adjuster_phone: Optional[str] = None
    adjuster_email: Optional[str] = None
    adjuster_company: Optional[str] = None
    inspection_date: Optional[datetime] = None
    is_filed_with_carrier: bool = False
    last_sync_at: Optional[datetime] = None
    last_sync_error: Optional[str] = None
    supplement_count: int = 0
    supplement_value: Optional[float] = None
    last_supplement_date: Optional[datetime] = None
    date_of_loss: Optional[datetime] = None
    initial_estimate: Optional[float] = None

    @classmethod
    def field_names(cls) -> set:
        return {f.name for f in fields(cls)}

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClaimRecord":
        return cls(**_deserialize(cls, data))


@dataclass
class IntelRecord:
    """Append-only notification for downstream awareness of claim changes."""
    source: str
    source_id: str
    title: str
    content: str
    priority: str  # "low" | "medium" | "high" | "critical"
    actionable: bool = False
    customer_id: Optional[str] = None
    category: str = "insurance"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IntelRecord":
        return cls(**_deserialize(cls, data))


@dataclass
class ActivityRecord:
    """Append-only audit entry for actions taken against a claim or carrier."""
    type: str
    entity_type: str
    entity_id: str
    description: str
    user_id: str = "system"
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActivityRecord":
        return cls(**_deserialize(cls, data))


def _serialize(record: Any) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for f in fields(record):
        value = getattr(record, f.name)
        if isinstance(value, datetime):
            value = format_datetime(value)
        result[f.name] = value
    return result


def _deserialize(cls: Any, data: Dict[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in fields(cls)}
    kwargs: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            continue
        if key in _DATETIME_FIELDS:
            value = parse_datetime(value)
        kwargs[key] = value
    return kwargs
