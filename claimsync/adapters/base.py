"""Base contract implemented by every carrier integration."""

import hmac
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from ..models.carrier import (
    CarrierConfig,
    CarrierDocument,
    CarrierResponse,
    ClaimFilingResult,
    ClaimStatusResult,
    DocumentUploadResult,
    SupplementResult,
    WebhookEvent,
)
from ..models.claim import ClaimSubmission, DocumentUpload, SupplementSubmission
from ..models.status import CarrierClaimStatus, InternalStatus, to_internal_status
from .transport import CarrierTransport, RequestLogSink, hmac_sha256_hex

logger = logging.getLogger(__name__)


class CarrierAdapter(ABC):
    """
    Base class for all carrier adapters.

    Concrete adapters implement the claim, document, webhook and status
    mapping operations. Expected failures are returned as a failed
    CarrierResponse, never raised, and adapters never retry on their own.

    Attributes:
        carrier_code: Stable lowercase registry key
        carrier_name: Display name
        config: Carrier configuration, set by initialize()
        base_url: Resolved API base URL
        transport: HTTP transport built during initialize()
    """

    carrier_code: str = ""
    carrier_name: str = ""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        sink: Optional[RequestLogSink] = None,
        timeout: float = 30.0
    ):
        self.config: Optional[CarrierConfig] = None
        self.base_url: str = ""
        self.transport: Optional[CarrierTransport] = None
        self._client = client
        self._sink = sink
        self._timeout = timeout

    async def initialize(self, config: CarrierConfig) -> None:
        """
        Store configuration, resolve the endpoint and refresh an expired token.

        Args:
            config: Carrier configuration

        Raises:
            TokenRefreshError: If the token is expired and cannot be refreshed
        """
        self.config = config
        self.base_url = config.api_endpoint or self.default_endpoint()
        self.transport = CarrierTransport(
            carrier_code=self.carrier_code,
            base_url=self.base_url,
            config=config,
            timeout=self._timeout,
            client=self._client,
            sink=self._sink,
        )

        if config.token_expired():
            logger.info(f"Access token for {self.carrier_code} expired, refreshing")
            await self.refresh_token()

        logger.info(
            f"Initialized {self.__class__.__name__}: {self.carrier_code} "
            f"(test_mode={config.is_test_mode}, endpoint={self.base_url})"
        )

    @abstractmethod
    def default_endpoint(self) -> str:
        """Base URL used when the configuration does not override it."""
        pass

    async def test_connection(self) -> bool:
        """Best-effort health check; never raises."""
        try:
            response = await self._request("GET", "/health")
            return response.success
        except Exception as e:
            logger.warning(f"Connection test for {self.carrier_code} failed: {str(e)}")
            return False

    async def refresh_token(self) -> None:
        """Refresh the access token. No-op unless the carrier uses OAuth."""
        return None

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> CarrierResponse[Any]:
        if self.transport is None:
            raise RuntimeError(f"{self.__class__.__name__} used before initialize()")
        return await self.transport.request(method, path, body=body, params=params, headers=headers)

    # Claim filing and status

    @abstractmethod
    async def file_claim(self, claim: ClaimSubmission) -> CarrierResponse[ClaimFilingResult]:
        pass

    @abstractmethod
    async def get_claim_status(self, carrier_claim_id: str) -> CarrierResponse[ClaimStatusResult]:
        pass

    @abstractmethod
    async def get_claim_by_number(self, claim_number: str) -> CarrierResponse[ClaimStatusResult]:
        pass

    # Supplements and documents

    @abstractmethod
    async def file_supplement(self, supplement: SupplementSubmission) -> CarrierResponse[SupplementResult]:
        pass

    @abstractmethod
    async def upload_document(self, document: DocumentUpload) -> CarrierResponse[DocumentUploadResult]:
        pass

    @abstractmethod
    async def get_documents(self, carrier_claim_id: str) -> CarrierResponse[List[CarrierDocument]]:
        pass

    # Webhooks

    def verify_webhook(self, payload: str, signature: str) -> bool:
        """
        Verify an HMAC-SHA256 hex signature over the raw payload.

        Comparison is constant-time. Returns False when no webhook secret is
        configured or the signature is missing.
        """
        if not self.config or not self.config.webhook_secret or not signature:
            return False
        expected = hmac_sha256_hex(self.config.webhook_secret, payload)
        return hmac.compare_digest(signature.strip().encode("utf-8"), expected.encode("utf-8"))

    @abstractmethod
    def parse_webhook(self, payload: str) -> WebhookEvent:
        pass

    # Status mapping

    @abstractmethod
    def map_status(self, carrier_status: str) -> CarrierClaimStatus:
        """Map a carrier status string to the canonical status (total)."""
        pass

    def map_status_to_internal(self, carrier_status: CarrierClaimStatus) -> InternalStatus:
        """Map a canonical status to the internal status (total)."""
        return to_internal_status(carrier_status)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(carrier_code={self.carrier_code})"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(carrier_code={self.carrier_code}, base_url={self.base_url})"
