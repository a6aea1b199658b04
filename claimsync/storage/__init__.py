"""Storage layer for claim records and carrier configuration."""

from .claim_store import ClaimStore, InMemoryClaimStore, JsonFileClaimStore
from .config_store import CarrierConfigStore, StaticCarrierConfigStore

__all__ = [
    'ClaimStore',
    'InMemoryClaimStore',
    'JsonFileClaimStore',
    'CarrierConfigStore',
    'StaticCarrierConfigStore',
]
