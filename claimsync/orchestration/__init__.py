"""Orchestration layer: claim filing, status sync, webhooks and retries."""

from .carrier_service import CarrierService, SyncSummary
from .retry import RetryPolicy
from .webhooks import WebhookOutcome, WebhookProcessor, signature_from_headers

__all__ = [
    'CarrierService',
    'SyncSummary',
    'RetryPolicy',
    'WebhookOutcome',
    'WebhookProcessor',
    'signature_from_headers',
]
