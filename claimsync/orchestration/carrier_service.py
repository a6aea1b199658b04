"""
Carrier service: files claims with carriers and keeps local claim records
in sync with the carrier's system of record.
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ..adapters.base import CarrierAdapter
from ..adapters.registry import AdapterRegistry, carrier_display_name
from ..models.carrier import (
    CarrierDocument,
    CarrierError,
    CarrierResponse,
    ClaimFilingResult,
    ClaimStatusResult,
    DocumentUploadResult,
    SupplementResult,
)
from ..models.claim import ClaimSubmission, DamageArea, DocumentUpload, SupplementSubmission
from ..models.records import ActivityRecord, ClaimRecord, IntelRecord
from ..models.status import ACTIONABLE_INTERNAL_STATUSES, InternalStatus
from ..storage.claim_store import ClaimStore
from ..utils.errors import ErrorType
from ..utils.formatting import utcnow
from ..utils.logging import log_context
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

_ACTIONABLE_VALUES = {status.value for status in ACTIONABLE_INTERNAL_STATUSES}


@dataclass
class SyncSummary:
    """
    Outcome of a batch sync.

    Attributes:
        synced: Claims synced successfully
        failed: Claims whose sync failed
        errors: One "<claim id>: <message>" entry per failure
        cancelled: Claims skipped because the batch was cancelled
    """
    synced: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    cancelled: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "synced": self.synced,
            "failed": self.failed,
            "errors": list(self.errors),
            "cancelled": self.cancelled,
        }


def _failure(error_type: ErrorType, message: str, retryable: bool) -> CarrierResponse[Any]:
    return CarrierResponse.fail(CarrierError.of(error_type, message, retryable=retryable))


def status_snapshot_changes(snapshot: ClaimStatusResult, internal_status: InternalStatus) -> Dict[str, Any]:
    """
    Claim record changes for a carrier status snapshot.

    Fields the snapshot leaves empty are omitted, so a sparse snapshot never
    erases values recorded earlier.
    """
    changes: Dict[str, Any] = {
        "carrier_status": snapshot.status.value,
        "status": internal_status.value,
    }

    optional = {
        "approved_value": snapshot.approved_amount,
        "total_paid": snapshot.paid_amount,
        "depreciation": snapshot.depreciation,
        "acv": snapshot.acv,
        "rcv": snapshot.rcv,
        "inspection_date": snapshot.inspection_date,
    }
    if snapshot.adjuster:
        optional.update({
            "adjuster_name": snapshot.adjuster.name or None,
            "adjuster_phone": snapshot.adjuster.phone or None,
            "adjuster_email": snapshot.adjuster.email or None,
            "adjuster_company": snapshot.adjuster.company or None,
        })

    changes.update({key: value for key, value in optional.items() if value is not None})
    return changes


class CarrierService:
    """
    Orchestrates claim filing and status synchronization.

    Every public operation returns a CarrierResponse; unexpected exceptions
    are converted into tagged failures and recorded on the claim as
    last_sync_error. Read-modify-write on a single claim runs under a
    per-claim lock, so a poll and a webhook for the same claim never
    interleave.

    Attributes:
        registry: Adapter registry used to resolve carriers
        claim_store: Claim record persistence
        pacing_delay: Seconds to wait between consecutive carrier calls in a batch
        retry_policy: Optional policy wrapping status lookups
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        claim_store: ClaimStore,
        pacing_delay: float = 0.1,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None
    ):
        self.registry = registry
        self.claim_store = claim_store
        self.pacing_delay = pacing_delay
        self.retry_policy = retry_policy
        self._sleep = sleep or asyncio.sleep
        # Entries vanish once no task holds or waits on the lock
        self._claim_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

        logger.info(f"Initialized CarrierService (pacing_delay={pacing_delay}s)")

    async def get_adapter(self, carrier_code: str) -> Optional[CarrierAdapter]:
        return await self.registry.get_adapter(carrier_code)

    def claim_lock(self, claim_id: str) -> asyncio.Lock:
        """Lock serializing updates to one claim record."""
        lock = self._claim_locks.get(claim_id)
        if lock is None:
            lock = asyncio.Lock()
            self._claim_locks[claim_id] = lock
        return lock

    # Claim filing

    async def file_claim(
        self,
        claim_id: str,
        carrier_code: str,
        submission: ClaimSubmission
    ) -> CarrierResponse[ClaimFilingResult]:
        """
        File a claim with a carrier and record the carrier's references.

        Args:
            claim_id: Local claim identifier
            carrier_code: Carrier to file with
            submission: Claim filing payload

        Returns:
            The adapter's response, or a tagged failure
        """
        with log_context(carrier_code=carrier_code, claim_id=claim_id):
            try:
                adapter = await self.get_adapter(carrier_code)
                if adapter is None:
                    return _failure(
                        ErrorType.CARRIER_NOT_AVAILABLE,
                        f"Carrier {carrier_code} is not configured or available",
                        retryable=False,
                    )

                async with self.claim_lock(claim_id):
                    if await self.claim_store.get_claim(claim_id) is None:
                        return _failure(ErrorType.CLAIM_NOT_FOUND, "Claim not found", retryable=False)

                    result = await adapter.file_claim(submission)

                    if result.success and result.data:
                        await self._record_filing(claim_id, carrier_code, result.data)
                    else:
                        logger.warning(f"Filing with {carrier_code} failed: {result.error_message}")
                        await self._record_failure(claim_id, result.error_message)

                return result

            except Exception as e:
                logger.error(f"Unexpected error filing claim with {carrier_code}: {str(e)}", exc_info=True)
                message = str(e) or "Failed to file claim"
                await self._record_failure(claim_id, message)
                return _failure(ErrorType.FILING_FAILED, message, retryable=True)

    async def _record_filing(self, claim_id: str, carrier_code: str, filing: ClaimFilingResult) -> None:
        changes: Dict[str, Any] = {
            "carrier": carrier_code,
            "carrier_claim_id": filing.carrier_claim_id,
            "claim_number": filing.claim_number,
            "carrier_status": filing.status.value,
            "is_filed_with_carrier": True,
            "last_sync_at": utcnow(),
            "last_sync_error": None,
        }
        adjuster = filing.assigned_adjuster
        if adjuster:
            changes.update({
                "adjuster_name": adjuster.name,
                "adjuster_phone": adjuster.phone,
                "adjuster_email": adjuster.email,
                "adjuster_company": adjuster.company,
            })

        await self.claim_store.update_claim(claim_id, changes)
        await self.claim_store.create_activity(ActivityRecord(
            type="create",
            entity_type="claim",
            entity_id=claim_id,
            description=f"Claim filed with {carrier_display_name(carrier_code)}. Claim #: {filing.claim_number}",
            metadata={"carrier": carrier_code, "carrier_claim_id": filing.carrier_claim_id},
        ))
        logger.info(f"Claim {claim_id} filed with {carrier_code} as {filing.claim_number}")

    # Status sync

    async def sync_claim_status(self, claim_id: str) -> CarrierResponse[ClaimStatusResult]:
        """
        Pull the carrier's current status for a claim and persist it.

        Args:
            claim_id: Local claim identifier

        Returns:
            The adapter's status response, or a tagged failure
        """
        with log_context(claim_id=claim_id):
            try:
                async with self.claim_lock(claim_id):
                    claim = await self.claim_store.get_claim(claim_id)
                    if claim is None:
                        return _failure(ErrorType.CLAIM_NOT_FOUND, "Claim not found", retryable=False)

                    if not claim.carrier_claim_id and not claim.claim_number:
                        return _failure(
                            ErrorType.NOT_FILED,
                            "Claim has not been filed with carrier",
                            retryable=False,
                        )

                    adapter = await self.get_adapter(claim.carrier)
                    if adapter is None:
                        return _failure(
                            ErrorType.CARRIER_NOT_AVAILABLE,
                            f"Carrier {claim.carrier} is not available",
                            retryable=False,
                        )

                    result = await self._lookup_status(adapter, claim)

                    if result.success and result.data:
                        await self._apply_snapshot(claim, adapter, result.data)
                    else:
                        logger.warning(f"Status sync for {claim_id} failed: {result.error_message}")
                        await self._record_failure(claim_id, result.error_message)

                return result

            except Exception as e:
                logger.error(f"Unexpected error syncing claim {claim_id}: {str(e)}", exc_info=True)
                message = str(e) or "Failed to sync status"
                await self._record_failure(claim_id, message)
                return _failure(ErrorType.SYNC_FAILED, message, retryable=True)

    async def _lookup_status(self, adapter: CarrierAdapter, claim: ClaimRecord) -> CarrierResponse[ClaimStatusResult]:
        if claim.carrier_claim_id:
            operation = lambda: adapter.get_claim_status(claim.carrier_claim_id)
        else:
            operation = lambda: adapter.get_claim_by_number(claim.claim_number)

        if self.retry_policy is None:
            return await operation()
        return await self.retry_policy.run(operation, description=f"status lookup for {claim.id}")

    async def _apply_snapshot(self, claim: ClaimRecord, adapter: CarrierAdapter, snapshot: ClaimStatusResult) -> None:
        internal_status = adapter.map_status_to_internal(snapshot.status)

        changes = status_snapshot_changes(snapshot, internal_status)
        changes["last_sync_at"] = utcnow()
        changes["last_sync_error"] = None
        await self.claim_store.update_claim(claim.id, changes)

        if internal_status.value != claim.status:
            logger.info(f"Claim {claim.id} status changed: {claim.status} -> {internal_status.value}")
            await self.claim_store.create_intel(IntelRecord(
                customer_id=claim.customer_id,
                source="carrier-api",
                source_id=claim.id,
                title=f"Claim status updated to {internal_status.value}",
                content=snapshot.status_message or f"Carrier status: {snapshot.status.value}",
                priority="high" if internal_status == InternalStatus.APPROVED else "medium",
                actionable=internal_status.value in _ACTIONABLE_VALUES,
            ))

    async def sync_all_claims(
        self,
        carrier_code: str,
        cancel_event: Optional[asyncio.Event] = None
    ) -> SyncSummary:
        """
        Sync every open filed claim for a carrier, one at a time.

        Consecutive carrier calls are separated by pacing_delay. When
        cancel_event is set, remaining claims are skipped and counted as
        cancelled.

        Args:
            carrier_code: Carrier whose claims to sync
            cancel_event: Optional event that stops the batch early

        Returns:
            SyncSummary with synced + failed + cancelled equal to the number
            of claims found
        """
        claims = await self.claim_store.find_open_claims(carrier_code)
        summary = SyncSummary()

        logger.info(f"Starting batch sync for {carrier_code}: {len(claims)} claims")

        for index, claim in enumerate(claims):
            if index > 0 and self.pacing_delay > 0:
                await self._sleep(self.pacing_delay)

            if cancel_event is not None and cancel_event.is_set():
                summary.cancelled = len(claims) - index
                logger.info(f"Batch sync for {carrier_code} cancelled, {summary.cancelled} claims skipped")
                break

            result = await self.sync_claim_status(claim.id)
            if result.success:
                summary.synced += 1
            else:
                summary.failed += 1
                if result.error:
                    summary.errors.append(f"{claim.id}: {result.error.message}")

        logger.info(
            f"Batch sync for {carrier_code} finished: "
            f"synced={summary.synced}, failed={summary.failed}, cancelled={summary.cancelled}"
        )
        return summary

    # Supplements and documents

    async def file_supplement(
        self,
        claim_id: str,
        reason: str,
        additional_damage: List[DamageArea],
        additional_amount: float,
        scope_of_work: Optional[str] = None
    ) -> CarrierResponse[SupplementResult]:
        """
        File a supplement for a claim already filed with its carrier.

        On success increments supplement_count, adds the amount to
        supplement_value and records last_supplement_date.
        """
        with log_context(claim_id=claim_id):
            try:
                async with self.claim_lock(claim_id):
                    claim, adapter, failure = await self._resolve_filed_claim(claim_id)
                    if failure is not None:
                        return failure

                    result = await adapter.file_supplement(SupplementSubmission(
                        carrier_claim_id=claim.carrier_claim_id,
                        claim_number=claim.claim_number or "",
                        reason=reason,
                        additional_damage=list(additional_damage),
                        additional_amount=additional_amount,
                        internal_claim_id=claim.id,
                        scope_of_work=scope_of_work,
                    ))

                    if result.success and result.data:
                        await self.claim_store.update_claim(claim_id, {
                            "supplement_count": claim.supplement_count + 1,
                            "supplement_value": (claim.supplement_value or 0.0) + additional_amount,
                            "last_supplement_date": utcnow(),
                        })
                        await self.claim_store.create_activity(ActivityRecord(
                            type="update",
                            entity_type="claim",
                            entity_id=claim_id,
                            description=f"Supplement filed with {carrier_display_name(claim.carrier)}: {reason}",
                            metadata={"supplement_id": result.data.supplement_id, "amount": additional_amount},
                        ))
                    else:
                        await self._record_failure(claim_id, result.error_message)

                return result

            except Exception as e:
                logger.error(f"Unexpected error filing supplement for {claim_id}: {str(e)}", exc_info=True)
                message = str(e) or "Failed to file supplement"
                await self._record_failure(claim_id, message)
                return _failure(ErrorType.FILING_FAILED, message, retryable=True)

    async def upload_document(self, claim_id: str, document: DocumentUpload) -> CarrierResponse[DocumentUploadResult]:
        """Attach a document to the carrier claim behind a local claim."""
        with log_context(claim_id=claim_id):
            try:
                claim, adapter, failure = await self._resolve_filed_claim(claim_id)
                if failure is not None:
                    return failure

                document = replace(document, carrier_claim_id=claim.carrier_claim_id)
                result = await adapter.upload_document(document)
                if result.success and result.data:
                    await self.claim_store.create_activity(ActivityRecord(
                        type="update",
                        entity_type="claim",
                        entity_id=claim_id,
                        description=f"Document {document.filename} uploaded to {carrier_display_name(claim.carrier)}",
                        metadata={"document_id": result.data.document_id, "type": document.document_type.value},
                    ))
                return result

            except Exception as e:
                logger.error(f"Unexpected error uploading document for {claim_id}: {str(e)}", exc_info=True)
                return _failure(ErrorType.UNKNOWN_ERROR, str(e) or "Failed to upload document", retryable=True)

    async def get_documents(self, claim_id: str) -> CarrierResponse[List[CarrierDocument]]:
        with log_context(claim_id=claim_id):
            try:
                claim, adapter, failure = await self._resolve_filed_claim(claim_id)
                if failure is not None:
                    return failure
                return await adapter.get_documents(claim.carrier_claim_id)

            except Exception as e:
                logger.error(f"Unexpected error listing documents for {claim_id}: {str(e)}", exc_info=True)
                return _failure(ErrorType.UNKNOWN_ERROR, str(e) or "Failed to list documents", retryable=True)

    async def _resolve_filed_claim(
        self,
        claim_id: str
    ) -> Tuple[Optional[ClaimRecord], Optional[CarrierAdapter], Optional[CarrierResponse[Any]]]:
        claim = await self.claim_store.get_claim(claim_id)
        if claim is None:
            return None, None, _failure(ErrorType.CLAIM_NOT_FOUND, "Claim not found", retryable=False)

        if not claim.carrier_claim_id:
            return claim, None, _failure(
                ErrorType.NOT_FILED,
                "Claim has not been filed with carrier",
                retryable=False,
            )

        adapter = await self.get_adapter(claim.carrier)
        if adapter is None:
            return claim, None, _failure(
                ErrorType.CARRIER_NOT_AVAILABLE,
                f"Carrier {claim.carrier} is not available",
                retryable=False,
            )

        return claim, adapter, None

    async def _record_failure(self, claim_id: str, message: Optional[str]) -> None:
        """Persist a failed call on the claim, touching only the error and timestamp."""
        try:
            await self.claim_store.update_claim(claim_id, {
                "last_sync_error": message or "Unknown error",
                "last_sync_at": utcnow(),
            })
        except Exception as e:
            logger.error(f"Failed to record sync error on claim {claim_id}: {str(e)}")
