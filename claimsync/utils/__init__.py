"""Utility modules for errors, configuration, formatting and logging."""

from .errors import (
    ErrorType,
    ErrorContext,
    CarrierIntegrationError,
    TokenRefreshError,
    ConfigurationError,
)

__all__ = [
    'ErrorType',
    'ErrorContext',
    'CarrierIntegrationError',
    'TokenRefreshError',
    'ConfigurationError',
]
