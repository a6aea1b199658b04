"""Carrier configuration lookup."""

import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, List, Optional

from ..models.carrier import CarrierConfig

logger = logging.getLogger(__name__)


class CarrierConfigStore(ABC):
    """Source of carrier configurations keyed by carrier code."""

    @abstractmethod
    async def get_config(self, carrier_code: str) -> Optional[CarrierConfig]:
        """Return the configuration for a carrier, or None when unknown."""
        pass

    @abstractmethod
    async def list_configs(self) -> List[CarrierConfig]:
        pass


class StaticCarrierConfigStore(CarrierConfigStore):
    """
    Config store backed by a fixed mapping, usually Config.carriers.

    Each lookup returns a copy, so token refreshes on an adapter's config do
    not mutate the source mapping.
    """

    def __init__(self, configs: Optional[Dict[str, CarrierConfig]] = None):
        self._configs: Dict[str, CarrierConfig] = dict(configs or {})
        logger.info(f"Initialized StaticCarrierConfigStore with {len(self._configs)} carriers")

    def put(self, config: CarrierConfig) -> None:
        self._configs[config.carrier_code] = config

    async def get_config(self, carrier_code: str) -> Optional[CarrierConfig]:
        config = self._configs.get(carrier_code)
        return replace(config) if config else None

    async def list_configs(self) -> List[CarrierConfig]:
        return [replace(config) for config in self._configs.values()]
