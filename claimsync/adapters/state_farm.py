"""State Farm claims API adapter."""

import asyncio
import hmac
import json
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

import httpx

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
from ..models.claim import ClaimSubmission, DamageArea, DocumentUpload, SupplementSubmission
from ..models.status import (
    CarrierClaimStatus,
    WebhookEventType,
    lookup_status,
    status_code_for,
)
from ..utils.errors import ErrorType, TokenRefreshError
from .base import CarrierAdapter
from .transport import (
    format_date,
    hmac_sha256_hex,
    parse_amount,
    parse_datetime,
    sanitize_phone,
    utcnow,
)

logger = logging.getLogger(__name__)

SANDBOX_ENDPOINT = "https://api-sandbox.statefarm.com/v1/claims"
PRODUCTION_ENDPOINT = "https://api.statefarm.com/v1/claims"
SANDBOX_TOKEN_URL = "https://auth-sandbox.statefarm.com/oauth/token"
PRODUCTION_TOKEN_URL = "https://auth.statefarm.com/oauth/token"

STATE_FARM_STATUS_MAP: Dict[str, CarrierClaimStatus] = {
    "RECEIVED": CarrierClaimStatus.RECEIVED,
    "PENDING": CarrierClaimStatus.RECEIVED,
    "ASSIGNED": CarrierClaimStatus.ASSIGNED,
    "ADJUSTER_ASSIGNED": CarrierClaimStatus.ASSIGNED,
    "INSPECTION_SCHEDULED": CarrierClaimStatus.INSPECTION_SCHEDULED,
    "SCHEDULED": CarrierClaimStatus.INSPECTION_SCHEDULED,
    "INSPECTION_COMPLETE": CarrierClaimStatus.INSPECTION_COMPLETE,
    "INSPECTED": CarrierClaimStatus.INSPECTION_COMPLETE,
    "UNDER_REVIEW": CarrierClaimStatus.UNDER_REVIEW,
    "IN_REVIEW": CarrierClaimStatus.UNDER_REVIEW,
    "APPROVED": CarrierClaimStatus.APPROVED,
    "PARTIALLY_APPROVED": CarrierClaimStatus.PARTIALLY_APPROVED,
    "DENIED": CarrierClaimStatus.DENIED,
    "REJECTED": CarrierClaimStatus.DENIED,
    "SUPPLEMENT_REQUESTED": CarrierClaimStatus.SUPPLEMENT_REQUESTED,
    "SUPPLEMENT_PENDING": CarrierClaimStatus.SUPPLEMENT_REQUESTED,
    "SUPPLEMENT_APPROVED": CarrierClaimStatus.SUPPLEMENT_APPROVED,
    "PAYMENT_PENDING": CarrierClaimStatus.PAYMENT_PROCESSING,
    "PROCESSING_PAYMENT": CarrierClaimStatus.PAYMENT_PROCESSING,
    "PAYMENT_ISSUED": CarrierClaimStatus.PAYMENT_ISSUED,
    "PAID": CarrierClaimStatus.PAYMENT_ISSUED,
    "CLOSED": CarrierClaimStatus.CLOSED,
    "COMPLETE": CarrierClaimStatus.CLOSED,
}

CAUSE_OF_LOSS_MAP: Dict[str, str] = {
    "hail": "HAIL",
    "wind": "WIND",
    "tornado": "TORNADO",
    "hurricane": "HURRICANE",
    "fire": "FIRE",
    "water": "WATER_DAMAGE",
    "lightning": "LIGHTNING",
    "fallen-tree": "FALLING_OBJECTS",
    "vandalism": "VANDALISM",
    "theft": "THEFT",
    "other": "OTHER",
}

DAMAGE_TYPE_MAP: Dict[str, str] = {
    "roof": "ROOF",
    "siding": "SIDING",
    "gutters": "GUTTERS",
    "windows": "WINDOWS",
    "doors": "DOORS",
    "interior": "INTERIOR",
    "hvac": "HVAC",
    "fence": "FENCE",
    "garage": "GARAGE",
    "deck": "DECK",
    "other": "OTHER",
}

WEBHOOK_EVENT_MAP: Dict[str, WebhookEventType] = {
    "CLAIM_STATUS_UPDATE": WebhookEventType.STATUS_CHANGED,
    "ADJUSTER_ASSIGNED": WebhookEventType.ADJUSTER_ASSIGNED,
    "INSPECTION_SCHEDULED": WebhookEventType.INSPECTION_SCHEDULED,
    "INSPECTION_COMPLETE": WebhookEventType.INSPECTION_COMPLETE,
    "CLAIM_APPROVED": WebhookEventType.APPROVED,
    "CLAIM_DENIED": WebhookEventType.DENIED,
    "PAYMENT_ISSUED": WebhookEventType.PAYMENT_ISSUED,
    "DOCUMENT_REQUESTED": WebhookEventType.DOCUMENT_REQUESTED,
    "SUPPLEMENT_RECEIVED": WebhookEventType.SUPPLEMENT_RECEIVED,
    "SUPPLEMENT_APPROVED": WebhookEventType.SUPPLEMENT_APPROVED,
    "SUPPLEMENT_DENIED": WebhookEventType.SUPPLEMENT_DENIED,
}

STATUS_MESSAGES: Dict[CarrierClaimStatus, str] = {
    CarrierClaimStatus.RECEIVED: "Your claim has been received by State Farm.",
    CarrierClaimStatus.ASSIGNED: "An adjuster has been assigned to your claim.",
    CarrierClaimStatus.INSPECTION_SCHEDULED: "A property inspection has been scheduled.",
    CarrierClaimStatus.INSPECTION_COMPLETE: "The inspection is complete. Your claim is under review.",
    CarrierClaimStatus.UNDER_REVIEW: "Your claim is being reviewed by our team.",
    CarrierClaimStatus.APPROVED: "Great news! Your claim has been approved.",
    CarrierClaimStatus.PARTIALLY_APPROVED: "Your claim has been partially approved.",
    CarrierClaimStatus.DENIED: "Your claim has been denied.",
    CarrierClaimStatus.SUPPLEMENT_REQUESTED: "Additional documentation is needed for your claim.",
    CarrierClaimStatus.SUPPLEMENT_APPROVED: "Your supplement request has been approved.",
    CarrierClaimStatus.PAYMENT_PROCESSING: "Your payment is being processed.",
    CarrierClaimStatus.PAYMENT_ISSUED: "Payment has been issued for your claim.",
    CarrierClaimStatus.CLOSED: "Your claim has been closed.",
}


def map_cause_of_loss(cause: Any) -> str:
    value = getattr(cause, "value", cause)
    return CAUSE_OF_LOSS_MAP.get(value, "OTHER")


def map_damage_type(damage_type: Any) -> str:
    value = getattr(damage_type, "value", damage_type)
    return DAMAGE_TYPE_MAP.get(value, "OTHER")


def _damage_payload(areas: List[DamageArea]) -> List[Dict[str, Any]]:
    return [
        {
            "type": map_damage_type(area.type),
            "severity": area.severity.value,
            "description": area.description,
        }
        for area in areas
    ]


class StateFarmAdapter(CarrierAdapter):
    """
    State Farm claims API integration.

    Uses OAuth bearer tokens. An expired access token is refreshed with the
    refresh-token grant before the next request; concurrent callers share a
    single refresh.
    """

    carrier_code = "state-farm"
    carrier_name = "State Farm"

    def __init__(self, **kwargs: Any):
        super().__init__(**kwargs)
        self._refresh_lock = asyncio.Lock()

    def default_endpoint(self) -> str:
        if self.config is None or self.config.is_test_mode:
            return SANDBOX_ENDPOINT
        return PRODUCTION_ENDPOINT

    def token_url(self) -> str:
        if self.config is None or self.config.is_test_mode:
            return SANDBOX_TOKEN_URL
        return PRODUCTION_TOKEN_URL

    # OAuth token refresh

    async def refresh_token(self) -> None:
        """
        Exchange the refresh token for a new access token.

        Updates access_token, refresh_token and token_expiry on the live
        configuration so the transport picks them up on the next call.

        Raises:
            TokenRefreshError: If credentials are missing, the token endpoint
                is unreachable or it rejects the request
        """
        config = self.config
        if config is None or not (config.refresh_token and config.client_id and config.client_secret):
            raise TokenRefreshError.missing_credentials(self.carrier_code)

        async with self._refresh_lock:
            # Another task may have refreshed while we waited
            if config.access_token and not config.token_expired():
                return

            try:
                response = await self.transport.send_raw(
                    "POST",
                    self.token_url(),
                    data={
                        "grant_type": "refresh_token",
                        "refresh_token": config.refresh_token,
                        "client_id": config.client_id,
                        "client_secret": config.client_secret,
                    },
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
            except httpx.HTTPError as e:
                raise TokenRefreshError.request_failed(self.carrier_code, error=e)

            if not response.is_success:
                raise TokenRefreshError.request_failed(self.carrier_code, status_code=response.status_code)

            try:
                data = response.json()
                access_token = data["access_token"]
                expires_in = int(data.get("expires_in") or 3600)
            except (ValueError, KeyError, TypeError) as e:
                raise TokenRefreshError.request_failed(self.carrier_code, error=e)

            config.access_token = access_token
            config.refresh_token = data.get("refresh_token") or config.refresh_token
            config.token_expiry = utcnow() + timedelta(seconds=expires_in)
            logger.info(f"Refreshed {self.carrier_code} access token (expires {config.token_expiry.isoformat()})")

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> CarrierResponse[Any]:
        if self.config is not None and self.config.token_expired():
            await self.refresh_token()
        return await super()._request(method, path, body=body, params=params, headers=headers)

    # Claim filing

    async def file_claim(self, claim: ClaimSubmission) -> CarrierResponse[ClaimFilingResult]:
        payload = {
            "claim": {
                "policyInfo": {
                    "policyNumber": claim.policy_number,
                    "insuredName": {
                        "firstName": claim.policyholder_first_name,
                        "lastName": claim.policyholder_last_name,
                    },
                    "contact": {
                        "email": claim.policyholder_email,
                        "phone": sanitize_phone(claim.policyholder_phone or ""),
                    },
                },
                "lossInfo": {
                    "dateOfLoss": format_date(claim.date_of_loss),
                    "timeOfLoss": claim.time_of_loss or "12:00",
                    "causeOfLoss": map_cause_of_loss(claim.cause_of_loss),
                    "lossDescription": claim.loss_description,
                },
                "propertyInfo": {
                    "address": {
                        "street": claim.property_address,
                        "city": claim.property_city,
                        "state": claim.property_state,
                        "zipCode": claim.property_zip_code,
                    },
                    "propertyType": claim.property_type or "single-family",
                },
                "damageInfo": {
                    "areas": _damage_payload(claim.damage_areas),
                    "emergencyRepairs": claim.emergency_repairs_needed,
                    "emergencyRepairsCost": claim.temporary_repairs_cost,
                },
                "estimate": (
                    {"amount": claim.initial_estimate, "currency": "USD"}
                    if claim.initial_estimate else None
                ),
                "externalReference": claim.internal_claim_id,
            }
        }

        response = await self._request("POST", "/submit", payload)
        if not response.success or not response.data:
            return self._passthrough_failure(response)

        data = response.data
        result = ClaimFilingResult(
            carrier_claim_id=data.get("claimId"),
            claim_number=data.get("claimNumber"),
            status=self.map_status(data.get("status")),
            status_message=data.get("statusMessage"),
            assigned_adjuster=self._parse_adjuster(data.get("adjuster"), default_company="State Farm"),
            next_steps=list(data.get("nextSteps") or []),
            estimated_response_date=parse_datetime(data.get("estimatedResponseDate")),
            tracking_url=f"https://www.statefarm.com/claims/track/{data.get('claimNumber')}",
        )
        return CarrierResponse.ok(result, raw_response=response.raw_response)

    # Status checks

    async def get_claim_status(self, carrier_claim_id: str) -> CarrierResponse[ClaimStatusResult]:
        response = await self._request("GET", f"/claims/{carrier_claim_id}/status")
        if not response.success or not response.data:
            return self._passthrough_failure(response)
        return CarrierResponse.ok(self._transform_status(response.data), raw_response=response.raw_response)

    async def get_claim_by_number(self, claim_number: str) -> CarrierResponse[ClaimStatusResult]:
        response = await self._request("GET", "/claims", params={"claimNumber": claim_number})
        if not response.success or not response.data:
            return self._passthrough_failure(response)
        return CarrierResponse.ok(self._transform_status(response.data), raw_response=response.raw_response)

    def _transform_status(self, data: Dict[str, Any]) -> ClaimStatusResult:
        status = self.map_status(data.get("status"))
        inspection = data.get("inspection") or {}

        return ClaimStatusResult(
            carrier_claim_id=data.get("claimId"),
            claim_number=data.get("claimNumber"),
            status=status,
            status_code=data.get("statusCode") or status_code_for(status),
            status_message=data.get("statusMessage") or self.status_message(status),
            last_updated=parse_datetime(data.get("lastUpdated")) or utcnow(),
            approved_amount=parse_amount(data.get("approvedAmount")),
            paid_amount=parse_amount(data.get("paidAmount")),
            depreciation=parse_amount(data.get("depreciation")),
            acv=parse_amount(data.get("acv")),
            rcv=parse_amount(data.get("rcv")),
            adjuster=self._parse_adjuster(data.get("adjuster"), default_company="State Farm"),
            inspection_scheduled=bool(inspection.get("scheduled")),
            inspection_date=parse_datetime(inspection.get("date")),
            inspection_notes=inspection.get("notes"),
            documents=self._parse_documents(data.get("documents")),
            timeline=[
                ClaimTimelineEvent(
                    date=parse_datetime(event.get("date")) or utcnow(),
                    event=event.get("event", ""),
                    description=event.get("description"),
                    actor=event.get("actor"),
                )
                for event in data.get("timeline") or []
            ],
        )

    # Supplements

    async def file_supplement(self, supplement: SupplementSubmission) -> CarrierResponse[SupplementResult]:
        payload = {
            "claimId": supplement.carrier_claim_id,
            "supplement": {
                "reason": supplement.reason,
                "additionalDamage": _damage_payload(supplement.additional_damage),
                "requestedAmount": supplement.additional_amount,
                "scopeOfWork": supplement.scope_of_work,
                "externalReference": supplement.internal_claim_id,
            },
        }

        response = await self._request("POST", f"/claims/{supplement.carrier_claim_id}/supplements", payload)
        if not response.success or not response.data:
            return self._passthrough_failure(response)

        data = response.data
        return CarrierResponse.ok(SupplementResult(
            supplement_id=data.get("supplementId"),
            status=data.get("status") or "submitted",
            submitted_at=parse_datetime(data.get("submittedAt")) or utcnow(),
            approved_amount=parse_amount(data.get("approvedAmount")),
            notes=data.get("notes"),
        ), raw_response=response.raw_response)

    # Documents

    async def upload_document(self, document: DocumentUpload) -> CarrierResponse[DocumentUploadResult]:
        payload = {
            "document": {
                "type": document.document_type.value,
                "name": document.filename,
                "contentType": document.content_type,
                "content": document.content,
                "description": document.description,
            }
        }

        response = await self._request("POST", f"/claims/{document.carrier_claim_id}/documents", payload)
        if not response.success or not response.data:
            return self._passthrough_failure(response)

        data = response.data
        return CarrierResponse.ok(DocumentUploadResult(
            document_id=data.get("documentId"),
            status=data.get("status") or "uploaded",
            message=data.get("message"),
        ), raw_response=response.raw_response)

    async def get_documents(self, carrier_claim_id: str) -> CarrierResponse[List[CarrierDocument]]:
        response = await self._request("GET", f"/claims/{carrier_claim_id}/documents")
        if not response.success or not response.data:
            return self._passthrough_failure(response)
        return CarrierResponse.ok(
            self._parse_documents(response.data.get("documents")),
            raw_response=response.raw_response,
        )

    # Webhooks

    def verify_webhook(self, payload: str, signature: str) -> bool:
        """
        Verify the hex HMAC-SHA256 signature State Farm sends with webhooks.

        Signatures that are not valid hex, or decode to a different length,
        are rejected rather than raising.
        """
        if not self.config or not self.config.webhook_secret or not signature:
            return False

        expected = bytes.fromhex(hmac_sha256_hex(self.config.webhook_secret, payload))
        try:
            provided = bytes.fromhex(signature.strip())
        except ValueError:
            return False
        return hmac.compare_digest(provided, expected)

    def parse_webhook(self, payload: str) -> WebhookEvent:
        data = json.loads(payload)
        return WebhookEvent(
            event_type=WEBHOOK_EVENT_MAP.get(data.get("eventType"), WebhookEventType.STATUS_CHANGED),
            carrier_code=self.carrier_code,
            claim_id=data.get("claimId"),
            claim_number=data.get("claimNumber"),
            timestamp=parse_datetime(data.get("timestamp")) or utcnow(),
            data=data.get("payload") or {},
        )

    # Status mapping

    def map_status(self, carrier_status: str) -> CarrierClaimStatus:
        return lookup_status(STATE_FARM_STATUS_MAP, carrier_status)

    @staticmethod
    def status_message(status: CarrierClaimStatus) -> str:
        return STATUS_MESSAGES.get(status, "Status update available.")

    # Field mapping helpers

    @staticmethod
    def _passthrough_failure(response: CarrierResponse[Any]) -> CarrierResponse[Any]:
        if response.success:
            # 2xx with an empty body
            return CarrierResponse.fail(
                CarrierError.of(ErrorType.INVALID_RESPONSE, "Carrier returned an empty response", retryable=True),
                raw_response=response.raw_response,
            )
        return CarrierResponse.fail(response.error, raw_response=response.raw_response)

    @staticmethod
    def _parse_adjuster(data: Optional[Dict[str, Any]], default_company: str) -> Optional[AdjusterInfo]:
        if not data:
            return None
        return AdjusterInfo(
            name=data.get("name", ""),
            phone=data.get("phone"),
            email=data.get("email"),
            company=data.get("company") or default_company,
            assigned_date=parse_datetime(data.get("assignedDate")),
        )

    @staticmethod
    def _parse_documents(items: Optional[List[Dict[str, Any]]]) -> List[CarrierDocument]:
        return [
            CarrierDocument(
                id=doc.get("id"),
                type=doc.get("type"),
                name=doc.get("name"),
                url=doc.get("url"),
                uploaded_at=parse_datetime(doc.get("uploadedAt")) or utcnow(),
            )
            for doc in items or []
        ]
