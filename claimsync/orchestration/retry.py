"""Caller-side retry policy for carrier operations."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from ..models.carrier import CarrierResponse
from ..utils.config import RetryConfig

logger = logging.getLogger(__name__)


class RetryPolicy:
    """
    Re-invoke a carrier operation while its failure is marked retryable.

    Adapters never retry on their own; callers that want retries wrap the
    call in a policy. Backoff is exponential: base_delay, 2x, 4x, ...
    capped at max_delay.

    Attributes:
        max_attempts: Total attempts including the first
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound on any single delay, in seconds
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep or asyncio.sleep

    @classmethod
    def from_config(cls, config: RetryConfig) -> "RetryPolicy":
        return cls(max_attempts=config.max_attempts, base_delay=config.base_delay)

    def delay_for(self, attempt: int) -> float:
        """Delay after the given zero-based failed attempt."""
        return min(self.base_delay * (2 ** attempt), self.max_delay)

    async def run(
        self,
        operation: Callable[[], Awaitable[CarrierResponse[Any]]],
        description: str = "carrier operation"
    ) -> CarrierResponse[Any]:
        """
        Run an operation with retries.

        Args:
            operation: Zero-argument coroutine factory returning a CarrierResponse
            description: Label used in log messages

        Returns:
            The first successful or non-retryable response, or the last
            response once attempts are exhausted
        """
        response: Optional[CarrierResponse[Any]] = None

        for attempt in range(self.max_attempts):
            response = await operation()

            if response.success or response.error is None or not response.error.retryable:
                return response

            logger.warning(
                f"{description} failed (attempt {attempt + 1}/{self.max_attempts}): "
                f"{response.error.code} - {response.error.message}"
            )

            if attempt < self.max_attempts - 1:
                wait_time = self.delay_for(attempt)
                logger.info(f"Retrying in {wait_time} seconds...")
                await self._sleep(wait_time)

        logger.error(f"{description} failed after {self.max_attempts} attempts")
        return response
