"""FastAPI surface for carrier claim filing, status sync and webhooks."""

from __future__ import annotations

import logging
import os
from datetime import date
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from claimsync.adapters.registry import CARRIER_NAMES, AdapterRegistry, carrier_display_name
from claimsync.models.claim import CauseOfLoss, ClaimSubmission, DamageArea, DamageType, Severity
from claimsync.models.records import ActivityRecord, IntelRecord
from claimsync.orchestration.carrier_service import CarrierService
from claimsync.orchestration.retry import RetryPolicy
from claimsync.orchestration.webhooks import WebhookProcessor, signature_from_headers
from claimsync.storage.claim_store import ClaimStore, InMemoryClaimStore, JsonFileClaimStore
from claimsync.storage.config_store import StaticCarrierConfigStore
from claimsync.utils.config import Config
from claimsync.utils.logging import setup_logging

APP_TITLE = "Carrier Claim Sync"
CONFIG_PATH = os.getenv("CLAIMSYNC_CONFIG", "config.yaml")

logger = logging.getLogger(__name__)


class DamageAreaIn(BaseModel):
    type: DamageType
    severity: Severity
    description: Optional[str] = None


class FileClaimRequest(BaseModel):
    """Body of POST /api/carriers/{code}/file-claim."""

    claim_id: str
    policy_number: str
    policyholder_first_name: str
    policyholder_last_name: str
    policyholder_email: Optional[str] = None
    policyholder_phone: Optional[str] = None
    property_address: str
    property_city: str
    property_state: str
    property_zip_code: str
    property_type: Optional[str] = None
    date_of_loss: date
    time_of_loss: Optional[str] = None
    cause_of_loss: CauseOfLoss
    loss_description: str = Field(min_length=1)
    damage_areas: List[DamageAreaIn] = Field(min_length=1)
    emergency_repairs_needed: bool = False
    temporary_repairs_cost: Optional[float] = None
    initial_estimate: Optional[float] = None


# Components are built once per process and replaced via dependency_overrides in tests


@lru_cache(maxsize=1)
def get_config() -> Config:
    config = Config.load(CONFIG_PATH)
    setup_logging(config.logging.level, config.logging.format, config.logging.file or None)
    return config


@lru_cache(maxsize=1)
def get_carrier_service() -> CarrierService:
    config = get_config()

    claim_store: ClaimStore
    if config.storage.claims_path:
        claim_store = JsonFileClaimStore(config.storage.claims_path)
    else:
        claim_store = InMemoryClaimStore()

    registry = AdapterRegistry(
        StaticCarrierConfigStore(config.carriers),
        production=config.is_production,
        adapter_factory=lambda adapter_class: adapter_class(timeout=config.http.timeout),
    )
    return CarrierService(
        registry,
        claim_store,
        pacing_delay=config.sync.pacing_delay,
        retry_policy=RetryPolicy.from_config(config.sync.retry),
    )


def get_webhook_processor(service: CarrierService = Depends(get_carrier_service)) -> WebhookProcessor:
    return WebhookProcessor(service)


app = FastAPI(title=APP_TITLE)


def _error(status_code: int, message: str, details: Optional[Dict[str, Any]] = None) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "error": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


@app.get("/api/carriers")
async def list_carriers(service: CarrierService = Depends(get_carrier_service)) -> Dict[str, Any]:
    """All known carriers; unconfigured ones are listed with filing disabled."""
    configured = {item["code"]: item for item in await service.registry.get_available_carriers()}

    carriers = []
    for code, name in CARRIER_NAMES.items():
        item = configured.pop(code, None)
        if item is None:
            item = {
                "code": code,
                "name": name,
                "supports_direct_filing": False,
                "supports_status_updates": False,
                "is_test_mode": True,
                "is_configured": False,
            }
        else:
            item = {**item, "is_configured": True}
        carriers.append({**item, "display_name": name})

    # Configured carriers without a display name entry
    for code, item in configured.items():
        carriers.append({**item, "display_name": item["name"], "is_configured": True})

    return {"success": True, "data": carriers}


@app.post("/api/carriers/{code}/file-claim")
async def file_claim(
    code: str,
    body: FileClaimRequest,
    service: CarrierService = Depends(get_carrier_service),
):
    if not await service.registry.is_carrier_available(code):
        return _error(400, f"Carrier {code} is not configured for direct filing")

    claim = await service.claim_store.get_claim(body.claim_id)
    if claim is None:
        raise HTTPException(status_code=404, detail="Claim not found")

    if claim.claim_number:
        return _error(400, "Claim has already been filed with carrier")

    submission = ClaimSubmission(
        policy_number=body.policy_number,
        policyholder_first_name=body.policyholder_first_name,
        policyholder_last_name=body.policyholder_last_name,
        policyholder_email=body.policyholder_email,
        policyholder_phone=body.policyholder_phone,
        property_address=body.property_address,
        property_city=body.property_city,
        property_state=body.property_state,
        property_zip_code=body.property_zip_code,
        property_type=body.property_type,
        date_of_loss=body.date_of_loss,
        time_of_loss=body.time_of_loss,
        cause_of_loss=body.cause_of_loss,
        loss_description=body.loss_description,
        damage_areas=[
            DamageArea(type=area.type, severity=area.severity, description=area.description)
            for area in body.damage_areas
        ],
        emergency_repairs_needed=body.emergency_repairs_needed,
        temporary_repairs_cost=body.temporary_repairs_cost,
        initial_estimate=body.initial_estimate if body.initial_estimate is not None else claim.initial_estimate,
        internal_claim_id=claim.id,
    )

    result = await service.file_claim(claim.id, code, submission)
    if not result.success:
        return _error(500, result.error_message or "Failed to file claim", result.error.to_dict() if result.error else None)

    await service.claim_store.create_intel(IntelRecord(
        customer_id=claim.customer_id,
        source="carrier-api",
        source_id=claim.id,
        title=f"Claim filed with {carrier_display_name(code)}",
        content=f"Claim #{result.data.claim_number} filed successfully. {result.data.status_message or ''}".strip(),
        priority="high",
        actionable=True,
    ))

    return JSONResponse(jsonable_encoder({"success": True, "data": result.data}))


@app.post("/api/carriers/{code}/sync")
async def sync_carrier(
    code: str,
    claim_id: Optional[str] = Query(default=None, alias="claimId"),
    service: CarrierService = Depends(get_carrier_service),
):
    if code != "mock" and not await service.registry.is_carrier_available(code):
        return _error(400, f"Carrier {code} is not configured")

    if claim_id:
        result = await service.sync_claim_status(claim_id)
        if not result.success:
            return _error(500, result.error_message or "Sync failed", result.error.to_dict() if result.error else None)
        return JSONResponse(jsonable_encoder({
            "success": True,
            "data": result.data,
            "message": "Claim synced successfully",
        }))

    summary = await service.sync_all_claims(code)
    await service.claim_store.create_activity(ActivityRecord(
        user_id="api",
        type="sync",
        entity_type="carrier",
        entity_id=code,
        description=(
            f"Synced {summary.synced} claims with {carrier_display_name(code)}. "
            f"{summary.failed} failed."
        ),
        metadata={"synced": summary.synced, "failed": summary.failed, "errors": summary.errors[:10]},
    ))

    return {
        "success": True,
        "data": summary.to_dict(),
        "message": f"Synced {summary.synced} claims, {summary.failed} failed",
    }


@app.post("/api/carriers/{code}/webhook")
async def carrier_webhook(
    code: str,
    request: Request,
    processor: WebhookProcessor = Depends(get_webhook_processor),
):
    raw_body = (await request.body()).decode("utf-8", errors="replace")
    outcome = await processor.process(code, raw_body, signature_from_headers(request.headers))
    return JSONResponse(status_code=outcome.status_code, content=outcome.to_dict())


@app.get("/health")
async def healthcheck() -> Dict[str, str]:
    return {"status": "ok"}
