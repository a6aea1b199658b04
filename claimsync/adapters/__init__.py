"""Carrier adapters and the registry that creates them."""

from .base import CarrierAdapter
from .transport import CarrierTransport, RequestLogBuffer, RequestLogEntry
from .mock import MockCarrierAdapter
from .state_farm import StateFarmAdapter
from .registry import AdapterRegistry, CARRIER_NAMES, carrier_display_name

__all__ = [
    'CarrierAdapter',
    'CarrierTransport',
    'RequestLogBuffer',
    'RequestLogEntry',
    'MockCarrierAdapter',
    'StateFarmAdapter',
    'AdapterRegistry',
    'CARRIER_NAMES',
    'carrier_display_name',
]
