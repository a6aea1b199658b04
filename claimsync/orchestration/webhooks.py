"""Inbound carrier webhook processing."""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..adapters.base import CarrierAdapter
from ..adapters.transport import RequestLogEntry, RequestLogSink, logging_sink
from ..models.carrier import WebhookEvent
from ..models.records import ClaimRecord, IntelRecord
from ..models.status import InternalStatus, WebhookEventType
from ..utils.formatting import format_date, parse_amount, parse_datetime, utcnow
from ..utils.logging import log_context
from .carrier_service import CarrierService

logger = logging.getLogger(__name__)

# Header names carriers use for the webhook signature, in lookup order
SIGNATURE_HEADERS = ("x-carrier-signature", "x-webhook-signature", "x-signature")

# Raw bodies are truncated before they reach the request log
_MAX_LOGGED_BODY = 10000


@dataclass
class WebhookOutcome:
    """
    Result of processing one webhook delivery.

    Attributes:
        success: False when the delivery was rejected or could not be applied
        status_code: HTTP status to answer the carrier with
        processed: True when a claim record was updated
        claim_id: Local claim the event applied to
        event_type: Normalized event type
        message: Informational message
        error: Error message for failed deliveries
    """
    success: bool
    status_code: int = 200
    processed: bool = False
    claim_id: Optional[str] = None
    event_type: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success, "processed": self.processed}
        for key in ("claim_id", "event_type", "message", "error"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result


def signature_from_headers(headers: Any) -> str:
    """Pick the webhook signature from request headers (case-insensitive mapping)."""
    for name in SIGNATURE_HEADERS:
        value = headers.get(name)
        if value:
            return value
    return ""


def _money(amount: Optional[float]) -> str:
    return f"${amount:,.2f}" if amount is not None else "TBD"


class WebhookProcessor:
    """
    Verifies, parses and applies carrier webhook deliveries.

    Signatures are checked before the payload is parsed. Deliveries for
    claims unknown to this system are acknowledged so the carrier stops
    retrying them. Processing errors produce a failed outcome with a 200
    status instead of an exception.
    """

    def __init__(self, service: CarrierService, sink: Optional[RequestLogSink] = None):
        self.service = service
        self.sink = sink or logging_sink

    async def process(self, carrier_code: str, raw_body: str, signature: str) -> WebhookOutcome:
        """
        Process one webhook delivery.

        Args:
            carrier_code: Carrier the delivery is addressed to
            raw_body: Raw request body, exactly as received
            signature: Signature header value (empty when absent)

        Returns:
            WebhookOutcome describing what happened
        """
        start = time.monotonic()

        with log_context(carrier_code=carrier_code):
            try:
                adapter = await self.service.get_adapter(carrier_code)
                if adapter is None:
                    outcome = WebhookOutcome(success=False, status_code=400, error="Carrier not configured")
                elif not adapter.verify_webhook(raw_body, signature):
                    outcome = WebhookOutcome(success=False, status_code=401, error="Invalid signature")
                else:
                    outcome = await self._apply(carrier_code, adapter, adapter.parse_webhook(raw_body))
            except Exception as e:
                logger.error(f"Webhook processing failed for {carrier_code}: {str(e)}", exc_info=True)
                outcome = WebhookOutcome(success=False, status_code=200, error=str(e) or "Webhook processing failed")

        self._log(carrier_code, raw_body, outcome, start)
        return outcome

    async def _apply(self, carrier_code: str, adapter: CarrierAdapter, event: WebhookEvent) -> WebhookOutcome:
        store = self.service.claim_store
        claim = await store.find_by_carrier_reference(event.claim_id, event.claim_number)
        if claim is None:
            logger.info(f"Webhook {event.event_type.value} for unknown claim {event.claim_id or event.claim_number}")
            return WebhookOutcome(
                success=True,
                processed=False,
                event_type=event.event_type.value,
                message="Claim not found in system",
            )

        async with self.service.claim_lock(claim.id):
            # Re-read under the lock; a concurrent sync may have changed it
            claim = await store.get_claim(claim.id) or claim
            changes, content, priority, actionable = self.event_changes(adapter, claim, event)
            await store.update_claim(claim.id, changes)

            await store.create_intel(IntelRecord(
                customer_id=claim.customer_id,
                source="carrier-webhook",
                source_id=claim.id,
                title=f"{carrier_code} Update: {event.event_type.value.replace('.', ' ', 1).replace('_', ' ')}",
                content=content,
                priority=priority,
                actionable=actionable,
            ))

        logger.info(f"Applied webhook {event.event_type.value} to claim {claim.id}")
        return WebhookOutcome(
            success=True,
            processed=True,
            claim_id=claim.id,
            event_type=event.event_type.value,
        )

    @staticmethod
    def event_changes(
        adapter: CarrierAdapter,
        claim: ClaimRecord,
        event: WebhookEvent
    ) -> Tuple[Dict[str, Any], str, str, bool]:
        """
        Translate a webhook event into claim changes and intel content.

        Returns:
            Tuple of (claim changes, intel content, intel priority, actionable)
        """
        data = event.data or {}
        changes: Dict[str, Any] = {"last_sync_at": utcnow()}
        priority = "medium"
        actionable = False

        if data.get("status"):
            changes["carrier_status"] = adapter.map_status(data["status"]).value

        event_type = event.event_type

        if event_type == WebhookEventType.STATUS_CHANGED:
            internal = adapter.map_status_to_internal(adapter.map_status(data.get("status")))
            changes["status"] = internal.value
            content = f"Claim status changed to: {data.get('status')}"

        elif event_type == WebhookEventType.ADJUSTER_ASSIGNED:
            # Fields missing from the payload keep their stored values
            for field_name, key in (("adjuster_name", "adjusterName"), ("adjuster_phone", "adjusterPhone"),
                                    ("adjuster_email", "adjusterEmail"), ("adjuster_company", "adjusterCompany")):
                if data.get(key):
                    changes[field_name] = data[key]
            content = f"Adjuster assigned: {data.get('adjusterName')}"
            actionable = True

        elif event_type == WebhookEventType.INSPECTION_SCHEDULED:
            inspection_date = parse_datetime(data.get("inspectionDate"))
            if inspection_date is not None:
                changes["inspection_date"] = inspection_date
                content = f"Inspection scheduled for {format_date(inspection_date)}"
            else:
                content = "Inspection scheduled"
            priority = "high"
            actionable = True

        elif event_type == WebhookEventType.INSPECTION_COMPLETE:
            content = "Property inspection completed"
            if data.get("notes"):
                content += f": {data['notes']}"

        elif event_type == WebhookEventType.APPROVED:
            approved = parse_amount(data.get("approvedAmount"))
            changes["status"] = InternalStatus.APPROVED.value
            for field_name, key in (("approved_value", "approvedAmount"), ("acv", "acv"),
                                    ("rcv", "rcv"), ("depreciation", "depreciation")):
                amount = parse_amount(data.get(key))
                if amount is not None:
                    changes[field_name] = amount
            content = f"Claim APPROVED for {_money(approved)}"
            priority = "critical"
            actionable = True

        elif event_type == WebhookEventType.DENIED:
            changes["status"] = InternalStatus.DENIED.value
            content = f"Claim DENIED: {data.get('reason') or 'No reason provided'}"
            priority = "critical"
            actionable = True

        elif event_type == WebhookEventType.PAYMENT_ISSUED:
            paid = parse_amount(data.get("paymentAmount"))
            changes["status"] = InternalStatus.PAID.value
            if paid is not None:
                changes["total_paid"] = paid
            content = f"Payment issued: {_money(paid)}"
            priority = "high"

        elif event_type == WebhookEventType.DOCUMENT_REQUESTED:
            content = f"Document requested: {data.get('documentType') or 'Additional documentation needed'}"
            priority = "high"
            actionable = True

        elif event_type in (
            WebhookEventType.SUPPLEMENT_RECEIVED,
            WebhookEventType.SUPPLEMENT_APPROVED,
            WebhookEventType.SUPPLEMENT_DENIED,
        ):
            changes["supplement_count"] = claim.supplement_count + 1
            changes["last_supplement_date"] = utcnow()
            if event_type == WebhookEventType.SUPPLEMENT_APPROVED:
                approved = parse_amount(data.get("approvedAmount"))
                if approved is not None:
                    changes["supplement_value"] = approved
                content = f"Supplement approved: {_money(approved)}"
                priority = "high"
            elif event_type == WebhookEventType.SUPPLEMENT_DENIED:
                content = f"Supplement denied: {data.get('reason') or 'No reason provided'}"
                priority = "high"
                actionable = True
            else:
                content = "Supplement request received by carrier"

        else:
            content = f"Carrier update: {event_type.value}"

        return changes, content, priority, actionable

    def _log(self, carrier_code: str, raw_body: str, outcome: WebhookOutcome, start: float) -> None:
        entry = RequestLogEntry(
            carrier_code=carrier_code,
            method="POST",
            path="/webhook",
            action="webhook",
            status="success" if outcome.success else "failed",
            status_code=outcome.status_code,
            duration_ms=int((time.monotonic() - start) * 1000),
            error_message=outcome.error,
            request_data=raw_body[:_MAX_LOGGED_BODY],
            response_data=outcome.to_dict(),
        )
        try:
            self.sink(entry)
        except Exception as e:  # pragma: no cover - a broken sink must not fail the delivery
            logger.error(f"Webhook log sink failed for {carrier_code}: {str(e)}")
