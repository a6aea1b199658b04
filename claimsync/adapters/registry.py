"""Adapter registry: maps carrier codes to initialized adapter instances."""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Type

from ..models.carrier import CarrierConfig
from ..storage.config_store import CarrierConfigStore
from .base import CarrierAdapter
from .mock import MockCarrierAdapter
from .state_farm import StateFarmAdapter

logger = logging.getLogger(__name__)

DEFAULT_ADAPTERS: Dict[str, Type[CarrierAdapter]] = {
    "mock": MockCarrierAdapter,
    "state-farm": StateFarmAdapter,
}

# Display names for carriers, including those without an adapter yet
CARRIER_NAMES: Dict[str, str] = {
    "mock": "Mock Insurance",
    "state-farm": "State Farm",
    "allstate": "Allstate",
    "usaa": "USAA",
    "liberty-mutual": "Liberty Mutual",
    "farmers": "Farmers Insurance",
    "nationwide": "Nationwide",
    "progressive": "Progressive",
    "travelers": "Travelers",
    "amica": "Amica",
    "auto-owners": "Auto-Owners",
    "erie": "Erie Insurance",
    "american-family": "American Family",
}

AdapterFactory = Callable[[Type[CarrierAdapter]], CarrierAdapter]


def carrier_display_name(carrier_code: str) -> str:
    return CARRIER_NAMES.get(carrier_code, carrier_code)


class AdapterRegistry:
    """
    Creates, initializes and caches one adapter per carrier code.

    Outside production, a carrier with no active configuration falls back to
    a mock adapter. The mock is cached under the requested code when that
    code is a known carrier or has a configuration, so its simulated claims
    survive across calls.

    Attributes:
        config_store: Source of carrier configurations
        production: Disables the mock fallback when True
    """

    def __init__(
        self,
        config_store: CarrierConfigStore,
        adapter_classes: Optional[Dict[str, Type[CarrierAdapter]]] = None,
        production: bool = False,
        adapter_factory: Optional[AdapterFactory] = None
    ):
        """
        Initialize AdapterRegistry.

        Args:
            config_store: Source of carrier configurations
            adapter_classes: Carrier code to adapter class (defaults to the
                built-in adapters)
            production: Disables the mock fallback when True
            adapter_factory: Builds an adapter instance from its class
                (defaults to calling the class with no arguments)
        """
        self.config_store = config_store
        self.production = production
        self._classes: Dict[str, Type[CarrierAdapter]] = dict(adapter_classes or DEFAULT_ADAPTERS)
        self._factory: AdapterFactory = adapter_factory or (lambda adapter_class: adapter_class())
        self._adapters: Dict[str, CarrierAdapter] = {}
        self._lock = asyncio.Lock()

    def register(self, carrier_code: str, adapter_class: Type[CarrierAdapter]) -> None:
        self._classes[carrier_code] = adapter_class
        self._adapters.pop(carrier_code, None)
        logger.info(f"Registered adapter {adapter_class.__name__} for {carrier_code}")

    def registered_codes(self) -> List[str]:
        return sorted(self._classes)

    async def get_adapter(self, carrier_code: str) -> Optional[CarrierAdapter]:
        """
        Get an initialized adapter for a carrier.

        Args:
            carrier_code: Carrier code

        Returns:
            Cached or newly initialized adapter, or None when the carrier is
            not configured or has no registered adapter

        Raises:
            TokenRefreshError: If initialization needs a token refresh that fails
        """
        cached = self._adapters.get(carrier_code)
        if cached is not None:
            return cached

        async with self._lock:
            cached = self._adapters.get(carrier_code)
            if cached is not None:
                return cached

            config = await self.config_store.get_config(carrier_code)
            if config is None or not config.is_active:
                if self.production:
                    logger.info(f"Carrier {carrier_code} is not configured")
                    return None
                # Unknown codes get an uncached mock
                known = config is not None or carrier_code in CARRIER_NAMES
                return await self._create_mock_fallback(carrier_code, cache=known)

            adapter_class = self._classes.get(carrier_code)
            if adapter_class is None:
                logger.warning(f"No adapter registered for carrier: {carrier_code}")
                return None

            adapter = self._factory(adapter_class)
            await adapter.initialize(config)
            self._adapters[carrier_code] = adapter
            return adapter

    async def _create_mock_fallback(self, carrier_code: str, cache: bool = True) -> CarrierAdapter:
        logger.info(f"No active configuration for {carrier_code}, using mock adapter")
        adapter = self._factory(self._classes.get("mock", MockCarrierAdapter))
        await adapter.initialize(CarrierConfig(
            carrier_code="mock",
            carrier_name="Mock Carrier",
            is_test_mode=True,
        ))
        if cache:
            self._adapters[carrier_code] = adapter
        return adapter

    def invalidate(self, carrier_code: Optional[str] = None) -> None:
        """Drop cached adapters so the next lookup re-reads configuration."""
        if carrier_code is None:
            self._adapters.clear()
        else:
            self._adapters.pop(carrier_code, None)

    async def is_carrier_available(self, carrier_code: str) -> bool:
        """True when the carrier is active and supports direct filing."""
        config = await self.config_store.get_config(carrier_code)
        return bool(config and config.is_active and config.supports_direct_filing)

    async def get_available_carriers(self) -> List[Dict[str, Any]]:
        configs = await self.config_store.list_configs()
        return [
            {
                "code": config.carrier_code,
                "name": config.carrier_name or carrier_display_name(config.carrier_code),
                "supports_direct_filing": config.supports_direct_filing,
                "supports_status_updates": config.supports_status_updates,
                "is_test_mode": config.is_test_mode,
            }
            for config in configs
            if config.is_active
        ]
