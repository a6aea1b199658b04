"""HTTP transport shared by carrier adapters through composition."""

import base64
import hashlib
import hmac
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import httpx

from ..models.carrier import CarrierConfig, CarrierError, CarrierResponse
from ..utils.errors import ErrorType, http_error_code, is_retryable_status
from ..utils.formatting import (  # noqa: F401 - re-exported for adapters
    format_date,
    format_datetime,
    parse_amount,
    parse_datetime,
    sanitize_phone,
    utcnow,
)

logger = logging.getLogger(__name__)


@dataclass
class RequestLogEntry:
    """
    Record of one outbound carrier call.

    Attributes:
        carrier_code: Carrier the call was made to
        method: HTTP method
        path: Request path relative to the carrier base URL
        action: Coarse action derived from the path (file, status-check, ...)
        status: "success" or "failed"
        status_code: HTTP status code, None when no response was received
        duration_ms: Wall-clock duration of the call
        error_message: Error message for failed calls
        request_data: Request body sent, if any
        response_data: Parsed response body, if any
    """
    carrier_code: str
    method: str
    path: str
    action: str
    status: str
    status_code: Optional[int]
    duration_ms: int
    error_message: Optional[str] = None
    request_data: Optional[Any] = None
    response_data: Optional[Any] = None
    created_at: datetime = field(default_factory=utcnow)


RequestLogSink = Callable[[RequestLogEntry], None]


def logging_sink(entry: RequestLogEntry) -> None:
    """Default sink: write one line per call through the module logger."""
    logger.info(
        f"[{entry.carrier_code}] {entry.method} {entry.path} - {entry.status} "
        f"({entry.status_code if entry.status_code is not None else 'N/A'}) {entry.duration_ms}ms"
    )
    if entry.error_message:
        logger.warning(f"[{entry.carrier_code}] Error: {entry.error_message}")


class RequestLogBuffer:
    """In-memory sink keeping the most recent request log entries."""

    def __init__(self, max_entries: int = 1000, forward: Optional[RequestLogSink] = logging_sink):
        self.entries: List[RequestLogEntry] = []
        self.max_entries = max_entries
        self.forward = forward

    def __call__(self, entry: RequestLogEntry) -> None:
        self.entries.append(entry)
        if len(self.entries) > self.max_entries:
            del self.entries[: len(self.entries) - self.max_entries]
        if self.forward:
            self.forward(entry)

    def clear(self) -> None:
        self.entries.clear()


def action_from_path(path: str) -> str:
    """Classify a request path into the action recorded in sync logs."""
    if "file" in path or "submit" in path:
        return "file"
    if "status" in path:
        return "status-check"
    if "document" in path or "upload" in path:
        return "document-upload"
    if "supplement" in path:
        return "supplement"
    return "api-call"


def build_auth_headers(config: Optional[CarrierConfig]) -> Dict[str, str]:
    """
    Build authentication headers from carrier credentials.

    Priority: bearer token, then API key, then HTTP basic with the client
    id/secret, otherwise no headers.

    Args:
        config: Carrier configuration (may be None before initialization)

    Returns:
        Header mapping
    """
    if config is None:
        return {}

    if config.access_token:
        return {"Authorization": f"Bearer {config.access_token}"}

    if config.api_key:
        return {"X-API-Key": config.api_key}

    if config.client_id and config.client_secret:
        encoded = base64.b64encode(f"{config.client_id}:{config.client_secret}".encode("utf-8")).decode("ascii")
        return {"Authorization": f"Basic {encoded}"}

    return {}


def parse_error_response(data: Any, status_code: int) -> CarrierError:
    """
    Classify a non-2xx carrier response.

    Args:
        data: Parsed response body (anything; non-dicts are ignored)
        status_code: HTTP status code

    Returns:
        CarrierError marked retryable for 5xx and 429 responses
    """
    body = data if isinstance(data, dict) else {}
    nested = body.get("error") if isinstance(body.get("error"), dict) else {}

    return CarrierError(
        code=nested.get("code") or body.get("errorCode") or http_error_code(status_code),
        message=nested.get("message") or body.get("message") or body.get("errorMessage") or "Unknown error",
        details=nested.get("details") or body.get("details"),
        retryable=is_retryable_status(status_code),
    )


def hmac_sha256_hex(secret: str, payload: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


class CarrierTransport:
    """
    Outbound request executor used by every carrier adapter.

    Adapters hold a transport rather than inheriting from it. The transport
    keeps a reference to the adapter's live CarrierConfig so a refreshed
    token is picked up by the next call.

    Attributes:
        carrier_code: Carrier code used in log entries
        base_url: Carrier API base URL
        config: Carrier configuration providing credentials
        timeout: Per-request timeout in seconds
        sink: Callable receiving a RequestLogEntry for every call
    """

    def __init__(
        self,
        carrier_code: str,
        base_url: str,
        config: Optional[CarrierConfig] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        sink: Optional[RequestLogSink] = None
    ):
        """
        Initialize the transport.

        Args:
            carrier_code: Carrier code used in log entries
            base_url: Carrier API base URL
            config: Carrier configuration providing credentials
            timeout: Per-request timeout in seconds
            client: Optional shared httpx.AsyncClient (a short-lived client
                is opened per call when omitted)
            sink: Request log sink (defaults to logging_sink)
        """
        self.carrier_code = carrier_code
        self.base_url = base_url.rstrip("/")
        self.config = config
        self.timeout = timeout
        self.client = client
        self.sink = sink or logging_sink

    async def request(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> CarrierResponse[Any]:
        """
        Execute a JSON request against the carrier API.

        Never raises for expected failures: HTTP errors, transport errors and
        unparseable bodies come back as a failed CarrierResponse.

        Args:
            method: HTTP method
            path: Path relative to base_url
            body: JSON-serializable request body
            params: Query parameters
            headers: Extra headers (override auth and content headers)

        Returns:
            CarrierResponse with the parsed JSON body as data
        """
        start = time.monotonic()
        status_code: Optional[int] = None

        request_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **build_auth_headers(self.config),
            **(headers or {}),
        }

        try:
            response = await self._send(
                method,
                f"{self.base_url}{path}",
                json=body,
                params=params,
                headers=request_headers,
            )
        except httpx.HTTPError as e:
            error = CarrierError.of(
                ErrorType.NETWORK_ERROR,
                str(e) or "Network error occurred",
                retryable=True,
            )
            self._log(method, path, body, None, "failed", status_code, error.message, start)
            return CarrierResponse.fail(error)

        status_code = response.status_code
        try:
            data = response.json() if response.content else None
        except ValueError:
            data = None
            if response.is_success:
                error = CarrierError.of(
                    ErrorType.INVALID_RESPONSE,
                    f"Carrier returned a non-JSON body (HTTP {status_code})",
                    retryable=True,
                )
                self._log(method, path, body, None, "failed", status_code, error.message, start)
                return CarrierResponse.fail(error, raw_response=response.text)

        if not response.is_success:
            error = parse_error_response(data, status_code)
            if error.message == "Unknown error" and response.reason_phrase:
                error.message = response.reason_phrase
            self._log(method, path, body, data, "failed", status_code, error.message, start)
            return CarrierResponse.fail(error, raw_response=data)

        self._log(method, path, body, data, "success", status_code, None, start)
        return CarrierResponse.ok(data, raw_response=data)

    async def send_raw(
        self,
        method: str,
        url: str,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """
        Send a request to an absolute URL without auth headers or
        classification (used for token endpoints).

        Raises:
            httpx.HTTPError: On transport failure
        """
        return await self._send(method, url, data=data, headers=headers or {})

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        if self.client is not None:
            return await self.client.request(method, url, **kwargs)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.request(method, url, **kwargs)

    def _log(
        self,
        method: str,
        path: str,
        request_data: Any,
        response_data: Any,
        status: str,
        status_code: Optional[int],
        error_message: Optional[str],
        start: float
    ) -> None:
        entry = RequestLogEntry(
            carrier_code=self.carrier_code,
            method=method,
            path=path,
            action=action_from_path(path),
            status=status,
            status_code=status_code,
            duration_ms=int((time.monotonic() - start) * 1000),
            error_message=error_message,
            request_data=request_data,
            response_data=response_data,
        )
        try:
            self.sink(entry)
        except Exception as e:  # pragma: no cover - a broken sink must not fail the call
            logger.error(f"Request log sink failed for {self.carrier_code}: {str(e)}")
