"""Error handling utilities for the carrier integration layer."""

from dataclasses import dataclass
from typing import Optional, Dict, Any
from enum import Enum


class ErrorType(Enum):
    """Enumeration of stable error codes reported by carrier operations."""

    # Carrier API Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    TOKEN_REFRESH_FAILED = "TOKEN_REFRESH_FAILED"

    # Orchestration Errors
    CARRIER_NOT_AVAILABLE = "CARRIER_NOT_AVAILABLE"
    CLAIM_NOT_FOUND = "CLAIM_NOT_FOUND"
    NOT_FILED = "NOT_FILED"
    FILING_FAILED = "FILING_FAILED"
    SYNC_FAILED = "SYNC_FAILED"

    # Configuration Errors
    CONFIG_MISSING = "CONFIG_MISSING"
    CONFIG_INVALID = "CONFIG_INVALID"

    # General Errors
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


def http_error_code(status_code: int) -> str:
    """Build the code used for an HTTP failure without a carrier-supplied code."""
    return f"HTTP_{status_code}"


def is_retryable_status(status_code: int) -> bool:
    """
    Determine if an HTTP status code is worth retrying.

    Args:
        status_code: HTTP status code returned by the carrier

    Returns:
        True for server errors and rate limiting, False otherwise
    """
    return status_code >= 500 or status_code == 429


@dataclass
class ErrorContext:
    """
    Context information for errors raised by the carrier integration layer.

    Attributes:
        error_type: Type of error from ErrorType enum
        message: Human-readable error message
        retryable: Whether the operation may succeed if attempted again
        details: Optional additional error details
        original_exception: Optional original exception that caused this error
    """

    error_type: ErrorType
    message: str
    retryable: bool
    details: Optional[Dict[str, Any]] = None
    original_exception: Optional[Exception] = None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error context to dictionary for logging/serialization.

        Returns:
            Dictionary representation of error context
        """
        return {
            "error_type": self.error_type.value,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details or {},
            "original_exception": str(self.original_exception) if self.original_exception else None
        }


class CarrierIntegrationError(Exception):
    """
    Base exception for carrier integration failures that cannot be
    expressed as a failed CarrierResponse.

    Attributes:
        context: ErrorContext with detailed error information
    """

    def __init__(self, context: ErrorContext):
        self.context = context
        super().__init__(context.message)

    def __str__(self) -> str:
        return f"{self.context.error_type.value}: {self.context.message}"

    def to_dict(self) -> Dict[str, Any]:
        return self.context.to_dict()


class TokenRefreshError(CarrierIntegrationError):
    """Exception for OAuth token refresh failures."""

    @classmethod
    def missing_credentials(cls, carrier_code: str) -> "TokenRefreshError":
        """
        Create error for an adapter lacking refresh token or client credentials.

        Args:
            carrier_code: Carrier whose credentials are incomplete

        Returns:
            TokenRefreshError instance
        """
        context = ErrorContext(
            error_type=ErrorType.TOKEN_REFRESH_FAILED,
            message=f"Missing OAuth credentials for token refresh ({carrier_code})",
            retryable=False,
            details={"carrier_code": carrier_code}
        )
        return cls(context)

    @classmethod
    def request_failed(
        cls,
        carrier_code: str,
        status_code: Optional[int] = None,
        error: Optional[Exception] = None
    ) -> "TokenRefreshError":
        """
        Create error for a rejected or unreachable token endpoint.

        Args:
            carrier_code: Carrier whose token endpoint failed
            status_code: HTTP status returned, if any
            error: Original transport exception, if any

        Returns:
            TokenRefreshError instance
        """
        reason = f"HTTP {status_code}" if status_code is not None else str(error)
        context = ErrorContext(
            error_type=ErrorType.TOKEN_REFRESH_FAILED,
            message=f"Failed to refresh {carrier_code} access token: {reason}",
            retryable=status_code is None or is_retryable_status(status_code),
            details={"carrier_code": carrier_code, "status_code": status_code},
            original_exception=error
        )
        return cls(context)


class ConfigurationError(CarrierIntegrationError):
    """Exception for missing or malformed configuration."""

    @classmethod
    def missing(cls, key: str) -> "ConfigurationError":
        context = ErrorContext(
            error_type=ErrorType.CONFIG_MISSING,
            message=f"Required configuration value '{key}' is missing",
            retryable=False,
            details={"key": key}
        )
        return cls(context)

    @classmethod
    def invalid(cls, key: str, value: Any, error: Optional[Exception] = None) -> "ConfigurationError":
        context = ErrorContext(
            error_type=ErrorType.CONFIG_INVALID,
            message=f"Invalid value for configuration '{key}': {value!r}",
            retryable=False,
            details={"key": key},
            original_exception=error
        )
        return cls(context)
